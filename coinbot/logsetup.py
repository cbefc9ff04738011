"""Send log records both to standard output and to a log file."""

from __future__ import annotations

import logging
import sys
from os import PathLike

_HANDLER_PREFIX = "coinbot."
_FORMAT = "%(asctime)s %(filename)s:%(lineno)d: %(message)s"
_DATE_FORMAT = "%Y/%m/%d %H:%M:%S"


def configure_logging(log_file: str | PathLike[str]) -> logging.FileHandler:
    """Route the root logger to stdout and to ``log_file`` (appended to).

    Handlers installed by an earlier call are replaced. Returns the file
    handler. Raises OSError when the file cannot be opened.
    """
    file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
    stream_handler = logging.StreamHandler(sys.stdout)

    root = logging.getLogger()
    for handler in list(root.handlers):
        if (handler.get_name() or "").startswith(_HANDLER_PREFIX):
            root.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(_FORMAT, datefmt=_DATE_FORMAT)
    for name, handler in (("stdout", stream_handler), ("file", file_handler)):
        handler.set_name(_HANDLER_PREFIX + name)
        handler.setFormatter(formatter)
        root.addHandler(handler)
    root.setLevel(logging.DEBUG)
    return file_handler