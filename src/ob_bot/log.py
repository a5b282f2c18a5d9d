import logging
import sys

import colorama
from colorama import Fore, Style

_LEVEL_COLORS = {
    logging.DEBUG: Style.DIM,
    logging.INFO: "",
    logging.WARNING: Fore.YELLOW,
    logging.ERROR: Fore.RED,
    logging.CRITICAL: Fore.RED + Style.BRIGHT,
}

FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class ColorFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        color = _LEVEL_COLORS.get(record.levelno, "")
        return f"{color}{text}{Style.RESET_ALL}" if color else text


def setup_logging(level: str = "INFO") -> None:
    """Route every `ob_bot.*` logger to stdout. Safe to call more than once."""
    colorama.just_fix_windows_console()

    root = logging.getLogger("ob_bot")
    root.setLevel(level)
    for h in list(root.handlers):
        if getattr(h, "_ob_bot", False):
            root.removeHandler(h)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(ColorFormatter(FORMAT))
    handler._ob_bot = True
    root.addHandler(handler)
    root.propagate = False
