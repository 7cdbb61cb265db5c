import logging

from rich.console import Console
from rich.logging import RichHandler

# Finer than DEBUG: every visited mission node and every stock livery
TRACE = 5
logging.addLevelName(TRACE, "TRACE")

COLOR_MODES = ("auto", "always", "never")


def level_for(verbose):
    if verbose <= 0:
        return logging.WARNING
    if verbose == 1:
        return logging.INFO
    if verbose == 2:
        return logging.DEBUG
    return TRACE


def make_console(color="auto", stderr=False):
    if color == "always":
        return Console(stderr=stderr, force_terminal=True)
    if color == "never":
        return Console(stderr=stderr, color_system=None, highlight=False)
    return Console(stderr=stderr)


def init_logger(verbose=0, color="auto"):
    """Route all logging through rich on stderr at the requested verbosity."""
    if color not in COLOR_MODES:
        raise ValueError(f"Unknown color mode: {color}")

    handler = RichHandler(
        console=make_console(color, stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
    )
    logging.basicConfig(level=level_for(verbose), format="%(message)s", handlers=[handler], force=True)
    return handler
