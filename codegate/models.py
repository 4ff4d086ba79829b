"""Core data models shared across codegate components."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum, IntEnum
from pathlib import Path
from typing import List, Optional


class GeneratedCodeVersion(IntEnum):
    """Schema version of generated code. Values are part of the generator contract."""

    NONE = 0
    V1 = 1
    V2 = 2

    @classmethod
    def latest(cls) -> "GeneratedCodeVersion":
        return cls.V2

    @classmethod
    def parse(cls, value: object) -> "GeneratedCodeVersion":
        """Accept an enum member, its integer value, or a name such as ``v1``/``latest``."""
        if isinstance(value, cls):
            return value
        if value is None:
            return cls.latest()
        if isinstance(value, int) and not isinstance(value, bool):
            return cls(value)
        if isinstance(value, str):
            key = value.strip().upper()
            if key in {"", "LATEST", "VLATEST"}:
                return cls.latest()
            if key.isdigit():
                return cls(int(key))
            try:
                return cls[key]
            except KeyError:
                pass
        raise ValueError(f"Unknown generated code version: {value!r}")


class CompilationResult(IntEnum):
    """Outcome of a generation run. Values are shared with the generator and editor."""

    SUCCEEDED = 0
    CANCELED = 1
    UP_TO_DATE = 2
    CRASH_OR_ASSERT = 3
    FAILED_DUE_TO_HEADER_CHANGE = 4
    OTHER_COMPILATION_ERROR = 5
    UNSUPPORTED = 6
    UNKNOWN = 7

    @property
    def succeeded(self) -> bool:
        return self in (CompilationResult.SUCCEEDED, CompilationResult.UP_TO_DATE)


class TargetType(str, Enum):
    """Kind of build target being compiled."""

    GAME = "game"
    CLIENT = "client"
    SERVER = "server"
    EDITOR = "editor"
    PROGRAM = "program"

    @property
    def is_game(self) -> bool:
        return self in (TargetType.GAME, TargetType.CLIENT, TargetType.SERVER)


@dataclass
class TargetInfo:
    """The build target whose modules are being processed."""

    name: str
    target_type: TargetType = TargetType.GAME
    platform: str = ""
    project_file: Optional[Path] = None


@dataclass
class ModuleInfo:
    """Generation inputs and outputs for a single module.

    Header lists hold absolute paths. Their order is significant: the
    fingerprint written after a successful run is the concatenation of
    ``classes_headers``, ``public_headers`` and ``private_headers``.
    """

    name: str
    directory: str
    kind: str
    classes_headers: List[str] = field(default_factory=list)
    public_headers: List[str] = field(default_factory=list)
    private_headers: List[str] = field(default_factory=list)
    pch: str = ""
    generated_base: str = ""
    codegen_version: GeneratedCodeVersion = field(default_factory=GeneratedCodeVersion.latest)

    @property
    def generated_directory(self) -> str:
        return os.path.dirname(self.generated_base)

    def all_headers(self) -> List[str]:
        return [*self.classes_headers, *self.public_headers, *self.private_headers]

    def __str__(self) -> str:
        return self.name


@dataclass
class GenerationOutcome:
    """Result of one orchestration run."""

    success: bool
    result: CompilationResult
