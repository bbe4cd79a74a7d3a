"""ANSI color codes for terminal output.

All colors use the 256-color palette for consistency.

Usage:
    from trycore.logging.colors import RED, RESET

    print(f"{RED}Error occurred{RESET}")
"""

RESET = "\033[0m"

# Status colors
RED = "\033[38;5;196m"  # bright red
YELLOW = "\033[38;5;226m"  # bright yellow

# Informational colors
LIGHT_BLUE = "\033[38;5;153m"
CYAN = "\033[38;5;51m"
MAGENTA = "\033[38;5;201m"

LEVEL_COLORS = {
    "DEBUG": LIGHT_BLUE,
    "INFO": CYAN,
    "WARNING": YELLOW,
    "ERROR": RED,
    "CRITICAL": RED,
}

__all__ = [
    "RESET",
    "RED",
    "YELLOW",
    "LIGHT_BLUE",
    "CYAN",
    "MAGENTA",
    "LEVEL_COLORS",
]
