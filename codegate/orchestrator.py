"""Decides whether code generation must run, and runs it."""

from __future__ import annotations

import time
from pathlib import Path
from typing import Any, Callable, List, Optional, Sequence

from .config import BuildConfig
from .errors import BuildError
from .logging import get_logger, tool_output_sink
from .manifest import Manifest, build_manifest, write_manifest
from .models import CompilationResult, GenerationOutcome, ModuleInfo, TargetInfo
from .modules import find_private_pch
from .platform import is_posix_host, tool_executable_path
from .process import ProcessRunner, interpret_exit_code
from .staleness import StalenessEvaluator
from .stores import FileInfoCache, FingerprintStore
from .tool import NEVER_BUILT, ToolValidityChecker

DEFAULT_TARGET_NAME = "UE4"
TOOL_BUILD_CONFIGURATION = "Development"
LOG_OVERRIDES = "-LogCmds=loginit warning, logexit warning, logdatabase error"
INSTALLED_FLAGS = ("-rocket", "-installed")
FAIL_IF_CHANGED_FLAG = "-FailIfGeneratedCodeChanges"

TargetBuilder = Callable[[str, Sequence[str]], int]
PCHResolver = Callable[[ModuleInfo, Any], Optional[str]]
PostCodeGeneration = Callable[[Manifest], None]


class Orchestrator:
    """Runs the generator only when its output is out of date."""

    def __init__(
        self,
        config: BuildConfig,
        *,
        tool_checker: ToolValidityChecker | None = None,
        fingerprints: FingerprintStore | None = None,
        file_cache: FileInfoCache | None = None,
        evaluator: StalenessEvaluator | None = None,
        process_runner: ProcessRunner | None = None,
        target_builder: TargetBuilder | None = None,
        pch_resolver: PCHResolver | None = None,
        post_codegen: PostCodeGeneration | None = None,
    ) -> None:
        self.config = config
        self.tool_checker = tool_checker or ToolValidityChecker(config)
        self.fingerprints = fingerprints or FingerprintStore()
        self.file_cache = file_cache if file_cache is not None else FileInfoCache()
        self.evaluator = evaluator or StalenessEvaluator(config, self.fingerprints, self.file_cache)
        self.process_runner = process_runner or ProcessRunner(sink=tool_output_sink(config.tool.name))
        self._target_builder = target_builder or self._build_with_host_executable
        self._pch_resolver = pch_resolver or _default_pch_resolver
        self._post_codegen = post_codegen or _no_post_codegen
        self.logger = get_logger("orchestrator")

    def execute_if_necessary(
        self,
        target: TargetInfo,
        compile_environment: Any,
        modules: List[ModuleInfo],
        manifest_path: Path,
    ) -> GenerationOutcome:
        """Regenerate code for ``modules`` if required and record new fingerprints."""
        # Never run the tool while building the tool itself.
        building_tool = target.name.lower() == self.config.tool.name.lower()

        have_tool = False
        tool_timestamp = NEVER_BUILT
        if not building_tool:
            status = self.tool_checker.check()
            have_tool, tool_timestamp = status.valid, status.timestamp

        needs_run = (
            self.config.force_generation
            or not have_tool
            or self.evaluator.is_stale(modules, tool_timestamp)
        )

        if self.config.gathering:
            # Cached now so an assemble-only replay never has to rescan.
            self._resolve_precompiled_headers(modules, compile_environment)

        manifest = build_manifest(target, modules, self.config)
        result = CompilationResult.UP_TO_DATE

        if not building_tool and needs_run:
            if self._should_build_tool(have_tool):
                self.logger.info("Building %s...", self.config.tool.name)
                if self._target_builder(self.config.tool.name, self._tool_build_arguments()) != 0:
                    self.logger.error("Failed to build %s", self.config.tool.name)
                    return GenerationOutcome(False, CompilationResult.OTHER_COMPILATION_ERROR)

            result = self._generate(target, manifest, manifest_path)
            if not result.succeeded:
                return GenerationOutcome(False, result)
        else:
            self.logger.debug("Generated code is up to date.")

        if not building_tool:
            # Also needed when nothing ran: remote builds expect every generated header mirrored.
            self._post_codegen(manifest)

        self._update_fingerprints(modules)
        return GenerationOutcome(True, result)

    def _should_build_tool(self, have_tool: bool) -> bool:
        config = self.config
        if config.installed or config.tool.skip_build or config.tool.hot_reload_from_ide:
            return False
        # Assemble-only replays trust an existing valid tool.
        if have_tool and not config.gathering and config.assembling:
            return False
        return True

    def _tool_build_arguments(self) -> List[str]:
        arguments = [
            self.config.host_platform,
            TOOL_BUILD_CONFIGURATION,
            "-NoMutex",
        ]
        host_arguments = {argument.lower() for argument in self.config.tool.host_arguments}
        for flag in self.config.tool.propagated_flags:
            if flag.lower() in host_arguments:
                arguments.append(flag)
        return arguments

    def _generate(
        self, target: TargetInfo, manifest: Manifest, manifest_path: Path
    ) -> CompilationResult:
        target_name = target.name or DEFAULT_TARGET_NAME
        self.logger.info("Parsing headers for %s", target_name)

        tool_path = tool_executable_path(
            self.config.engine_root, self.config.host_platform, self.config.tool.name
        )
        if not tool_path.is_file():
            raise BuildError(
                f"Unable to generate headers because {self.config.tool.name} binary was not found ({tool_path.resolve()})."
            )

        write_manifest(manifest, manifest_path)
        arguments = self._generator_arguments(target, manifest_path)
        self.logger.info("  Running %s %s", self.config.tool.name, " ".join(arguments))

        started = time.perf_counter()
        exit_code = self.process_runner.run(tool_path, arguments)
        elapsed = time.perf_counter() - started

        result = interpret_exit_code(exit_code, posix=is_posix_host(self.config.host_platform))
        if not result.succeeded:
            self.logger.error(
                "Failed to generate code for %s - error code: %s (%d)",
                target_name,
                result.name,
                exit_code,
            )
            return result

        self.logger.info("Reflection code generated for %s in %.2f seconds", target_name, elapsed)
        if self.config.print_performance_info:
            self.logger.info("%s took %.3f", self.config.tool.name, elapsed)

        # The generator rewrote files; drop cached metadata so later steps see it.
        started = time.perf_counter()
        self.file_cache.invalidate()
        self.logger.debug("File cache reset in %.3fs", time.perf_counter() - started)
        return result

    def _generator_arguments(self, target: TargetInfo, manifest_path: Path) -> List[str]:
        identifier = str(target.project_file) if target.project_file else target.name
        arguments = [identifier, str(manifest_path), LOG_OVERRIDES]
        if self.config.installed:
            arguments.extend(INSTALLED_FLAGS)
        if self.config.fail_if_generated_code_changes:
            arguments.append(FAIL_IF_CHANGED_FLAG)
        return arguments

    def _resolve_precompiled_headers(
        self, modules: Sequence[ModuleInfo], compile_environment: Any
    ) -> None:
        for module in modules:
            if module.pch:
                continue
            module.pch = self._pch_resolver(module, compile_environment) or ""

    def _update_fingerprints(self, modules: Sequence[ModuleInfo]) -> None:
        for module in modules:
            # Nothing is written into the installed engine tree.
            if self.config.is_protected(module.directory):
                continue
            self.fingerprints.write(module.generated_directory, module.all_headers())

    def _build_with_host_executable(self, target_name: str, arguments: Sequence[str]) -> int:
        executable = self.config.tool.build_executable
        if executable is None:
            raise BuildError(
                f"Cannot build {target_name}: no tool.build_executable is configured"
            )
        return self.process_runner.run(executable, [target_name, *arguments])


def _default_pch_resolver(module: ModuleInfo, compile_environment: Any) -> Optional[str]:
    return find_private_pch(module)


def _no_post_codegen(manifest: Manifest) -> None:
    return None


__all__ = ["DEFAULT_TARGET_NAME", "Orchestrator"]
