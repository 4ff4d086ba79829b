"""Logging helpers shared by the codegate CLI and library entrypoints."""

from __future__ import annotations

import logging
import sys
from pathlib import Path
from typing import Callable

_ROOT = "codegate"
_CONSOLE_FORMAT = "[codegate] %(levelname)s %(message)s"
_FILE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def get_logger(name: str | None = None) -> logging.Logger:
    """Return ``codegate`` or one of its children, e.g. ``codegate.staleness``."""
    if not name:
        return logging.getLogger(_ROOT)
    return logging.getLogger(f"{_ROOT}.{name}")


def tool_output_sink(tool_name: str) -> Callable[[str], None]:
    """Return a line sink that relays a child process's output at INFO level.

    Lines are logged under ``codegate.output.<tool>`` so they can be silenced
    independently of codegate's own messages.
    """
    logger = get_logger(f"output.{tool_name}")

    def _emit(line: str) -> None:
        logger.info("%s", line)

    return _emit


def configure_logging(
    *, verbose: bool = False, log_file: Path | None = None
) -> logging.Logger:
    """Send codegate records to stderr and, optionally, to ``log_file``.

    Calling this again replaces the handlers installed by a previous call.
    """
    level = logging.DEBUG if verbose else logging.INFO
    root = logging.getLogger(_ROOT)
    root.setLevel(level)
    root.propagate = False
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(level)
    console.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    root.addHandler(console)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        # The file always records debug detail so failed runs can be diagnosed afterwards.
        root.setLevel(logging.DEBUG)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(_FILE_FORMAT))
        root.addHandler(file_handler)

    return root


__all__ = ["configure_logging", "get_logger", "tool_output_sink"]
