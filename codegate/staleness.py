"""Decides whether generated code is out of date with respect to its inputs."""

from __future__ import annotations

import math
import os
from typing import Dict, Iterator, Optional, Sequence

from .config import BuildConfig
from .errors import BuildError
from .logging import get_logger
from .models import ModuleInfo
from .stores import FileInfoCache, FingerprintStore

GENERATED_SOURCE_SUFFIX = ".generated.cpp"


class StalenessEvaluator:
    """Combines tool, baseline, header and directory signals into one verdict.

    The verdict is conservative: any single signal for any module makes the
    whole set stale.
    """

    def __init__(
        self,
        config: BuildConfig,
        fingerprints: FingerprintStore | None = None,
        file_cache: FileInfoCache | None = None,
    ) -> None:
        self.config = config
        self.fingerprints = fingerprints or FingerprintStore()
        self.file_cache = file_cache if file_cache is not None else FileInfoCache()
        self.logger = get_logger("staleness")

    def is_stale(self, modules: Sequence[ModuleInfo], tool_timestamp: float) -> bool:
        for module, reason in self._iter_stale(modules, tool_timestamp):
            self.logger.debug("Code generation needs to run because %s", reason)
            return True
        return False

    def stale_reasons(
        self, modules: Sequence[ModuleInfo], tool_timestamp: float
    ) -> Dict[str, str]:
        """Return ``module name -> reason`` for every stale module."""
        return {module.name: reason for module, reason in self._iter_stale(modules, tool_timestamp)}

    def core_generated_timestamp(self, modules: Sequence[ModuleInfo]) -> float:
        core = self._find_core_module(modules)
        if self.config.installed:
            # Installed engine headers are never rechecked.
            return -math.inf
        generated_file = os.path.join(
            core.generated_directory, core.name + GENERATED_SOURCE_SUFFIX
        )
        try:
            return os.path.getmtime(generated_file)
        except FileNotFoundError:
            return math.inf

    def check_module(
        self, module: ModuleInfo, tool_timestamp: float, core_timestamp: float
    ) -> Optional[str]:
        """Return why ``module`` is stale, or None when its generated code is current."""
        if self.config.is_protected(module.directory):
            return None

        generated_directory = module.generated_directory
        if not os.path.isdir(generated_directory):
            return f"no generated code directory was found for module {module.name}"

        saved_timestamp = self.fingerprints.timestamp(generated_directory)
        if saved_timestamp is None:
            return f"the header fingerprint did not exist for module {module.name}"

        if tool_timestamp > saved_timestamp or core_timestamp > saved_timestamp:
            return (
                f"the {self.config.tool.name} binaries or {self.config.core_module} "
                f"generated code are newer than the fingerprint for module {module.name}"
            )

        headers = module.all_headers()
        previous = self.fingerprints.read(generated_directory)
        if len(headers) != len(previous):
            return f"there are a different number of reflected headers in module {module.name}"
        for current, recorded in zip(headers, previous):
            if current.lower() != recorded.lower():
                return f"the set of reflected headers in module {module.name} has changed"

        check_directories = self.config.full_rescan and self.config.check_directory_timestamps
        for header in headers:
            header_timestamp = self.file_cache.mtime(header)
            if header_timestamp is None:
                return f"header {header} in module {module.name} no longer exists"
            if header_timestamp > saved_timestamp:
                return f"header {header} is newer than the fingerprint for module {module.name}"
            if check_directories:
                # Best effort: directory mtimes do not reliably reflect deletions everywhere.
                directory_timestamp = os.path.getmtime(os.path.dirname(header))
                if directory_timestamp > saved_timestamp:
                    return (
                        f"the directory containing {header} has changed, and headers may "
                        f"have been added to or deleted from module {module.name}"
                    )
        return None

    def _iter_stale(
        self, modules: Sequence[ModuleInfo], tool_timestamp: float
    ) -> Iterator[tuple[ModuleInfo, str]]:
        core_timestamp = self.core_generated_timestamp(modules)
        for module in modules:
            reason = self.check_module(module, tool_timestamp, core_timestamp)
            if reason is not None:
                yield module, reason

    def _find_core_module(self, modules: Sequence[ModuleInfo]) -> ModuleInfo:
        wanted = self.config.core_module.lower()
        for module in modules:
            if module.name.lower() == wanted:
                return module
        raise BuildError(
            f"Could not find {self.config.core_module} in the list of modules to generate code for"
        )


__all__ = ["GENERATED_SOURCE_SUFFIX", "StalenessEvaluator"]
