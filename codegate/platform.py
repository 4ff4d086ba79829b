"""Host platform helpers: binary naming and default tool locations."""

from __future__ import annotations

import sys
from pathlib import Path

_POSIX_PLATFORMS = {"linux", "mac"}


def current_host_platform() -> str:
    """Return the build-system name of the platform this process runs on."""
    if sys.platform.startswith("win"):
        return "Win64"
    if sys.platform == "darwin":
        return "Mac"
    return "Linux"


def is_posix_host(platform: str) -> bool:
    return platform.lower() in _POSIX_PLATFORMS


def executable_extension(platform: str) -> str:
    return ".exe" if platform.lower().startswith("win") else ""


def binaries_directory(engine_root: Path, platform: str) -> Path:
    return engine_root / "Binaries" / platform


def tool_executable_path(engine_root: Path, platform: str, tool_name: str) -> Path:
    return binaries_directory(engine_root, platform) / f"{tool_name}{executable_extension(platform)}"


def receipt_path(engine_root: Path, platform: str, tool_name: str) -> Path:
    """Default location of the receipt written when the tool is built in Development."""
    return binaries_directory(engine_root, platform) / f"{tool_name}.target"


__all__ = [
    "binaries_directory",
    "current_host_platform",
    "executable_extension",
    "is_posix_host",
    "receipt_path",
    "tool_executable_path",
]
