"""Construction of module descriptors from headers or a build description file."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, List, Optional

import yaml

from .errors import BuildError
from .models import GeneratedCodeVersion, ModuleInfo, TargetInfo, TargetType

_REFLECTION_MARKERS = re.compile(r"^\s*(UCLASS|USTRUCT|UENUM|UINTERFACE|UDELEGATE)\s*\(", re.MULTILINE)


@dataclass
class BuildDescription:
    """A target plus the modules it needs generated code for."""

    target: TargetInfo
    modules: List[ModuleInfo] = field(default_factory=list)


def has_reflection_markers(path: str) -> bool:
    try:
        text = Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return False
    return _REFLECTION_MARKERS.search(text) is not None


def create_module_info(
    header_filenames: Iterable[str],
    *,
    name: str,
    directory: str,
    kind: str,
    generated_base: str,
    codegen_version: GeneratedCodeVersion | None = None,
    has_reflected_types: Callable[[str], bool] = has_reflection_markers,
) -> ModuleInfo:
    """Partition a module's headers into classes, public and private roles.

    Headers without reflected types are left out; input order is preserved
    within each role.
    """
    directory = os.path.abspath(directory)
    classes_folder = os.path.join(directory, "Classes") + os.sep
    public_folder = os.path.join(directory, "Public") + os.sep

    classes: List[str] = []
    public: List[str] = []
    private: List[str] = []
    for header in header_filenames:
        absolute = os.path.abspath(header)
        if not has_reflected_types(absolute):
            continue
        if absolute.startswith(classes_folder):
            classes.append(absolute)
        elif absolute.startswith(public_folder):
            public.append(absolute)
        else:
            private.append(absolute)

    return ModuleInfo(
        name=name,
        directory=directory,
        kind=kind,
        classes_headers=classes,
        public_headers=public,
        private_headers=private,
        generated_base=generated_base,
        codegen_version=GeneratedCodeVersion.latest() if codegen_version is None else codegen_version,
    )


def find_private_pch(module: ModuleInfo) -> Optional[str]:
    """Default PCH resolver: the module's ``<Name>PrivatePCH.h``, if any."""
    conventional = Path(module.directory) / "Private" / f"{module.name}PrivatePCH.h"
    if conventional.is_file():
        return str(conventional)
    root = Path(module.directory)
    if not root.is_dir():
        return None
    for candidate in sorted(root.rglob("*PrivatePCH.h")):
        return str(candidate)
    return None


def load_build_description(path: Path) -> BuildDescription:
    """Load a YAML build description; relative paths resolve against its directory."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        raise BuildError(f"Unable to read build description {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise BuildError(f"Build description {path} must contain a mapping at the root")

    base = path.parent.resolve()
    target = _parse_target(data.get("target"), base, path)
    raw_modules = data.get("modules") or []
    if not isinstance(raw_modules, list):
        raise BuildError(f"Build description {path} has a malformed modules list")
    modules = [_parse_module(entry, base, path) for entry in raw_modules]
    return BuildDescription(target=target, modules=modules)


def _parse_target(raw: Any, base: Path, source: Path) -> TargetInfo:
    if not isinstance(raw, dict) or not raw.get("name"):
        raise BuildError(f"Build description {source} must name a target")
    target_type = str(raw.get("type", TargetType.GAME.value)).lower()
    try:
        parsed_type = TargetType(target_type)
    except ValueError as exc:
        raise BuildError(f"Unknown target type '{target_type}' in {source}") from exc
    project_file = raw.get("project_file")
    return TargetInfo(
        name=str(raw["name"]),
        target_type=parsed_type,
        platform=str(raw.get("platform", "")),
        project_file=Path(_resolve(base, str(project_file))) if project_file else None,
    )


def _parse_module(raw: Any, base: Path, source: Path) -> ModuleInfo:
    if not isinstance(raw, dict) or not raw.get("name"):
        raise BuildError(f"Build description {source} contains a module without a name")
    name = str(raw["name"])
    if not raw.get("generated_base"):
        raise BuildError(f"Module {name} in {source} does not declare generated_base")
    try:
        version = GeneratedCodeVersion.parse(raw.get("codegen_version"))
    except ValueError as exc:
        raise BuildError(f"Module {name} in {source}: {exc}") from exc
    directory = _resolve(base, str(raw.get("directory", ".")))
    kind = str(raw.get("kind", ""))
    generated_base = _resolve(base, str(raw["generated_base"]))
    pch = raw.get("pch")

    headers = raw.get("headers") or {}
    if isinstance(headers, list):
        # An unsorted header list is classified by folder and reflection markers.
        module = create_module_info(
            _resolve_all(base, headers),
            name=name,
            directory=directory,
            kind=kind,
            generated_base=generated_base,
            codegen_version=version,
        )
        module.pch = _resolve(base, str(pch)) if pch else ""
        return module
    if not isinstance(headers, dict):
        raise BuildError(f"Module {name} in {source} has malformed headers")

    return ModuleInfo(
        name=name,
        directory=directory,
        kind=kind,
        classes_headers=_resolve_all(base, headers.get("classes")),
        public_headers=_resolve_all(base, headers.get("public")),
        private_headers=_resolve_all(base, headers.get("private")),
        pch=_resolve(base, str(pch)) if pch else "",
        generated_base=generated_base,
        codegen_version=version,
    )


def _resolve_all(base: Path, values: Any) -> List[str]:
    if not values:
        return []
    return [_resolve(base, str(value)) for value in values]


def _resolve(base: Path, value: str) -> str:
    return os.path.abspath(os.path.join(base, os.path.expanduser(value)))


__all__ = [
    "BuildDescription",
    "create_module_info",
    "find_private_pch",
    "has_reflection_markers",
    "load_build_description",
]
