"""Per-module record of the headers processed by the last successful run."""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import List, Optional, Sequence

from ..errors import BuildError

FINGERPRINT_FILENAME = "Timestamp"


class FingerprintStore:
    """Reads and writes the ``Timestamp`` file kept in each generated-code directory.

    The file holds one absolute header path per line, classes headers first,
    then public, then private. Its modification time is the baseline that
    staleness checks compare against.
    """

    def path_for(self, generated_directory: str | Path) -> Path:
        return Path(generated_directory) / FINGERPRINT_FILENAME

    def timestamp(self, generated_directory: str | Path) -> Optional[float]:
        try:
            return self.path_for(generated_directory).stat().st_mtime
        except FileNotFoundError:
            return None

    def read(self, generated_directory: str | Path) -> List[str]:
        path = self.path_for(generated_directory)
        return path.read_text(encoding="utf-8").splitlines()

    def write(self, generated_directory: str | Path, headers: Sequence[str]) -> Path:
        """Replace the record wholesale; a partially written file is never left behind."""
        directory = Path(generated_directory)
        path = self.path_for(directory)
        content = "".join(f"{header}\n" for header in headers)
        try:
            directory.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(prefix=f".{FINGERPRINT_FILENAME}.", dir=directory)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(content)
                # mkstemp creates 0600; give the record the permissions of a regular file.
                os.chmod(temp_name, _regular_file_mode())
                os.replace(temp_name, path)
            except BaseException:
                if os.path.exists(temp_name):
                    os.remove(temp_name)
                raise
        except OSError as exc:
            raise BuildError(f"Couldn't write header fingerprint {path}: {exc}") from exc
        return path


def _regular_file_mode() -> int:
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


__all__ = ["FINGERPRINT_FILENAME", "FingerprintStore"]
