import logging
import os

from rich.console import Console
from rich.logging import RichHandler

from build_resolver.constants import LOG_LEVEL_ENV

_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def setup_logging(level: str | None = None, console: Console | None = None) -> None:
    """Route library logging through rich.

    The level comes from ``level``, then ``LOG_LEVEL``, then ``WARNING``.
    Calling this again replaces the previous handler.
    """
    if level is None:
        level = os.environ.get(LOG_LEVEL_ENV, "WARNING")
    level = str(level).upper().strip()
    if level not in _LEVELS:
        level = "WARNING"

    root = logging.getLogger()
    for handler in list(root.handlers):
        if isinstance(handler, RichHandler):
            root.removeHandler(handler)

    handler = RichHandler(
        console=console or Console(stderr=True),
        rich_tracebacks=True,
        show_path=False,
        show_time=False,
    )
    handler.setFormatter(logging.Formatter("%(message)s"))
    root.addHandler(handler)
    root.setLevel(level)
