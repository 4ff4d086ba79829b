"""Manifest handed to the generator describing every module to process."""

from __future__ import annotations

import os
from pathlib import Path
from typing import Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .config import BuildConfig
from .models import GeneratedCodeVersion, ModuleInfo, TargetInfo


class ManifestModule(BaseModel):
    """Projection of one module. Field aliases are the generator's JSON keys."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str = Field(alias="Name")
    module_type: str = Field(alias="ModuleType")
    base_directory: str = Field(alias="BaseDirectory")
    include_base: str = Field(alias="IncludeBase")
    output_directory: str = Field(alias="OutputDirectory")
    classes_headers: Tuple[str, ...] = Field(alias="ClassesHeaders")
    public_headers: Tuple[str, ...] = Field(alias="PublicHeaders")
    private_headers: Tuple[str, ...] = Field(alias="PrivateHeaders")
    pch: str = Field(alias="PCH")
    generated_cpp_filename_base: str = Field(alias="GeneratedCPPFilenameBase")
    save_exported_headers: bool = Field(alias="SaveExportedHeaders")
    generated_code_version: GeneratedCodeVersion = Field(alias="UHTGeneratedCodeVersion")


class Manifest(BaseModel):
    """A single generation request."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    is_game_target: bool = Field(alias="IsGameTarget")
    root_local_path: str = Field(alias="RootLocalPath")
    root_build_path: str = Field(alias="RootBuildPath")
    target_name: str = Field(alias="TargetName")
    modules: Tuple[ManifestModule, ...] = Field(alias="Modules")

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)


def build_manifest(
    target: TargetInfo, modules: Sequence[ModuleInfo], config: BuildConfig
) -> Manifest:
    """Project module descriptors into the manifest, preserving their order."""
    return Manifest(
        is_game_target=target.target_type.is_game,
        root_local_path=str(config.local_root),
        root_build_path=config.build_root,
        target_name=target.name,
        modules=tuple(_project_module(module, config) for module in modules),
    )


def write_manifest(manifest: Manifest, path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(manifest.to_json(), encoding="utf-8")
    return path


def _project_module(module: ModuleInfo, config: BuildConfig) -> ManifestModule:
    return ManifestModule(
        name=module.name,
        module_type=module.kind,
        base_directory=module.directory,
        include_base=module.directory,
        output_directory=module.generated_directory,
        classes_headers=tuple(_absolute(header) for header in module.classes_headers),
        public_headers=tuple(_absolute(header) for header in module.public_headers),
        private_headers=tuple(_absolute(header) for header in module.private_headers),
        pch=module.pch,
        generated_cpp_filename_base=module.generated_base,
        save_exported_headers=not config.is_protected(module.directory),
        generated_code_version=module.codegen_version,
    )


def _absolute(path: str) -> str:
    return os.path.abspath(path)


__all__ = ["Manifest", "ManifestModule", "build_manifest", "write_manifest"]
