"""Configuration loading for codegate (.codegate.yml)."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import yaml

from .platform import current_host_platform

CONFIG_FILENAME = ".codegate.yml"

ENV_FORCE_GENERATION = "CODEGATE_FORCE_GENERATION"
ENV_INSTALLED = "CODEGATE_INSTALLED"


class ConfigError(RuntimeError):
    """Raised when the configuration file cannot be parsed."""


@dataclass
class ToolConfig:
    """Settings for the generator tool and its self-build."""

    name: str = "UnrealHeaderTool"
    skip_build: bool = False
    hot_reload_from_ide: bool = False
    build_executable: Optional[Path] = None
    propagated_flags: List[str] = field(default_factory=lambda: ["-noxge", "-2015"])
    host_arguments: List[str] = field(default_factory=list)


@dataclass
class BuildConfig:
    """Represents the high-level settings defined in .codegate.yml."""

    engine_root: Path
    root_directory: Optional[Path] = None
    remote_root: Optional[str] = None
    host_platform: str = field(default_factory=current_host_platform)
    installed: bool = False
    force_generation: bool = False
    gathering: bool = True
    assembling: bool = True
    # Directory mtimes are a best-effort signal for added or removed headers.
    check_directory_timestamps: bool = True
    fail_if_generated_code_changes: bool = False
    print_performance_info: bool = False
    core_module: str = "CoreUObject"
    tool: ToolConfig = field(default_factory=ToolConfig)

    @property
    def full_rescan(self) -> bool:
        """True unless replaying a previously gathered build in assemble-only mode."""
        return self.gathering or not self.assembling

    @property
    def local_root(self) -> Path:
        return self.root_directory if self.root_directory is not None else self.engine_root.parent

    @property
    def build_root(self) -> str:
        if self.remote_root:
            return self.remote_root
        return str(self.local_root) + os.sep

    def is_protected(self, directory: str | Path) -> bool:
        """Return True when ``directory`` is inside the read-only installed engine tree."""
        return self.installed and is_under_directory(directory, self.engine_root)


def is_under_directory(path: str | Path, directory: str | Path) -> bool:
    candidate = os.path.normcase(os.path.abspath(os.fspath(path)))
    parent = os.path.normcase(os.path.abspath(os.fspath(directory)))
    if candidate == parent:
        return True
    return candidate.startswith(parent.rstrip(os.sep) + os.sep)


def load_config(config_path: Path) -> BuildConfig:
    """Load configuration from disk, applying environment overrides."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return _apply_env_overrides(BuildConfig(engine_root=root))

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{CONFIG_FILENAME} must contain a mapping at the root")

    engine_root_str = _as_str(data.get("engine_root"))
    engine_root = _resolve_path(root, engine_root_str) if engine_root_str else root
    root_directory_str = _as_str(data.get("root_directory"))

    config = BuildConfig(
        engine_root=engine_root,
        root_directory=_resolve_path(root, root_directory_str) if root_directory_str else None,
        remote_root=_as_str(data.get("remote_root")),
    )
    host_platform = _as_str(data.get("host_platform"))
    if host_platform:
        config.host_platform = host_platform
    core_module = _as_str(data.get("core_module"))
    if core_module:
        config.core_module = core_module

    for name in (
        "installed",
        "force_generation",
        "gathering",
        "assembling",
        "check_directory_timestamps",
        "fail_if_generated_code_changes",
        "print_performance_info",
    ):
        value = _as_bool(data.get(name))
        if value is not None:
            setattr(config, name, value)

    tool_data = _as_dict(data.get("tool"))
    if tool_data:
        tool = config.tool
        tool_name = _as_str(tool_data.get("name"))
        if tool_name:
            tool.name = tool_name
        tool.skip_build = _as_bool(tool_data.get("skip_build")) or False
        tool.hot_reload_from_ide = _as_bool(tool_data.get("hot_reload_from_ide")) or False
        build_executable = _as_str(tool_data.get("build_executable"))
        if build_executable:
            tool.build_executable = _resolve_path(root, build_executable)
        if "propagated_flags" in tool_data:
            tool.propagated_flags = _as_str_list(tool_data.get("propagated_flags"))
        tool.host_arguments = _as_str_list(tool_data.get("host_arguments"))

    return _apply_env_overrides(config)


def _apply_env_overrides(config: BuildConfig) -> BuildConfig:
    force = _parse_env_bool(os.getenv(ENV_FORCE_GENERATION))
    if force is not None:
        config.force_generation = force
    installed = _parse_env_bool(os.getenv(ENV_INSTALLED))
    if installed is not None:
        config.installed = installed
    return config


def _parse_env_bool(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return _as_bool(value)


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _resolve_path(root: Path, value: str) -> Path:
    path = Path(value).expanduser()
    if not path.is_absolute():
        path = root / path
    return path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1", "on"}:
            return True
        if lowered in {"false", "no", "0", "off"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "BuildConfig",
    "CONFIG_FILENAME",
    "ConfigError",
    "ToolConfig",
    "is_under_directory",
    "load_config",
]
