"""Runs external executables and streams their output into the log."""

from __future__ import annotations

import os
import shlex
import subprocess
import threading
from pathlib import Path
from typing import IO, Callable, List, Sequence

from .errors import BuildError
from .logging import get_logger
from .models import CompilationResult

LineSink = Callable[[str], None]

_SIGNAL_EXIT_BASE = 128
_SIGINT_EXIT_CODE = _SIGNAL_EXIT_BASE + 2


class ProcessRunner:
    """Spawns a process without a shell and forwards each stdout line as it arrives."""

    def __init__(self, sink: LineSink | None = None) -> None:
        self.logger = get_logger("process")
        self._sink = sink or self.logger.info

    def run(self, executable: str | Path, arguments: str | Sequence[str] = ()) -> int:
        """Block until the process exits and return its raw exit code."""
        args = [os.fspath(executable), *self._split(arguments)]
        self.logger.debug("Running external executable: %s", shlex.join(args))
        try:
            process = subprocess.Popen(
                args,
                stdout=subprocess.PIPE,
                stdin=subprocess.DEVNULL,
                text=True,
                errors="replace",
                bufsize=1,
            )
        except OSError as exc:
            raise BuildError(f"Unable to start {executable}: {exc}") from exc

        assert process.stdout is not None
        reader = threading.Thread(
            target=self._pump,
            args=(process.stdout,),
            name=f"codegate-output-{process.pid}",
            daemon=True,
        )
        reader.start()
        try:
            return process.wait()
        finally:
            reader.join()
            process.stdout.close()

    def _pump(self, stream: IO[str]) -> None:
        # Keep reading to EOF even if the sink fails, or the child blocks on a full pipe.
        sink_failed = False
        for line in stream:
            text = line.rstrip("\r\n")
            if not text or sink_failed:
                continue
            try:
                self._sink(text)
            except Exception:
                sink_failed = True
                self.logger.exception("Output sink failed; discarding the remaining process output")

    @staticmethod
    def _split(arguments: str | Sequence[str]) -> List[str]:
        if isinstance(arguments, str):
            return shlex.split(arguments, posix=os.name != "nt")
        return [os.fspath(argument) for argument in arguments]


def interpret_exit_code(code: int, *, posix: bool) -> CompilationResult:
    """Map a generator exit code onto a :class:`CompilationResult`.

    POSIX shells report ``128 + N`` when a process dies from signal ``N``;
    Python reports the same death as ``-N``. Both forms are folded together.
    """
    if code in (CompilationResult.SUCCEEDED, CompilationResult.UP_TO_DATE):
        return CompilationResult(code)
    if posix:
        if code < 0:
            code = _SIGNAL_EXIT_BASE - code
        if code >= _SIGNAL_EXIT_BASE:
            if code == _SIGINT_EXIT_CODE:
                return CompilationResult.CANCELED
            return CompilationResult.CRASH_OR_ASSERT
    try:
        return CompilationResult(code)
    except ValueError:
        return CompilationResult.UNKNOWN


__all__ = ["LineSink", "ProcessRunner", "interpret_exit_code"]
