"""Logging setup for the ``deckhand`` CLI.

Modules log through ``logging.getLogger(__name__)``; this module only wires
the root logger to a rich handler on stderr so log lines never mix with the
command's own console output.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler

_HANDLER_NAME = "deckhand-rich"


def configure_logging(level: str | int = "INFO") -> None:
    """Install (or re-level) the rich log handler on the root logger."""
    root = logging.getLogger()
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    for handler in root.handlers:
        if handler.get_name() == _HANDLER_NAME:
            handler.setLevel(level)
            root.setLevel(level)
            return

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        rich_tracebacks=True,
    )
    handler.set_name(_HANDLER_NAME)
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)
    root.setLevel(level)
