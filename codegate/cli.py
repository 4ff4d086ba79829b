"""CLI entrypoints for codegate commands."""

from __future__ import annotations

import argparse
import math
import sys
from datetime import datetime
from pathlib import Path

from .config import ConfigError, load_config
from .errors import BuildError
from .logging import configure_logging
from .models import CompilationResult
from .modules import load_build_description
from .orchestrator import Orchestrator
from .tool import ToolValidityChecker


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_build_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--build",
        required=True,
        type=Path,
        help="YAML build description listing the target and its modules.",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codegate",
        description="Regenerate reflection code only when its inputs have changed.",
    )
    _add_verbose_option(parser)
    parser.add_argument(
        "--config",
        type=Path,
        default=Path("."),
        help="Path to .codegate.yml or the directory containing it.",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Also write debug-level logs to this file.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser(
        "check-tool",
        help="Report whether the generator tool binaries are present and consistent.",
    )
    _add_verbose_option(check_parser, suppress_default=True)

    status_parser = subparsers.add_parser(
        "status",
        help="List modules whose generated code is out of date.",
    )
    _add_verbose_option(status_parser, suppress_default=True)
    _add_build_option(status_parser)

    generate_parser = subparsers.add_parser(
        "generate",
        help="Run the generator if any module is out of date.",
    )
    _add_verbose_option(generate_parser, suppress_default=True)
    _add_build_option(generate_parser)
    generate_parser.add_argument(
        "--manifest",
        required=True,
        type=Path,
        help="Where to write the manifest consumed by the generator.",
    )
    generate_parser.add_argument(
        "--force",
        action="store_true",
        help="Regenerate even when everything looks up to date.",
    )

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for codegate commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose), log_file=args.log_file)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        parser.exit(1, f"{exc}\n")

    if args.command == "check-tool":
        status = ToolValidityChecker(config).check()
        if status.valid:
            print(f"{config.tool.name} is valid (built {_format_timestamp(status.timestamp)})")
        else:
            parser.exit(1, f"{config.tool.name} is missing or out of date\n")
    elif args.command == "status":
        try:
            description = load_build_description(args.build)
            orchestrator = Orchestrator(config)
            status = orchestrator.tool_checker.check()
            reasons = orchestrator.evaluator.stale_reasons(description.modules, status.timestamp)
        except BuildError as exc:
            parser.exit(1, f"codegate status failed: {exc}\n")
        if not status.valid:
            print(f"{config.tool.name} needs to be rebuilt")
        if not reasons:
            print("Generated code is up to date")
        for name, reason in reasons.items():
            print(f"{name}: stale because {reason}")
    elif args.command == "generate":
        if args.force:
            config.force_generation = True
        try:
            description = load_build_description(args.build)
            outcome = Orchestrator(config).execute_if_necessary(
                description.target,
                None,
                description.modules,
                args.manifest,
            )
        except BuildError as exc:
            parser.exit(1, f"codegate generate failed: {exc}\nRun with --verbose for more details.\n")
        if outcome.success:
            print("Generated code is up to date" if outcome.result is CompilationResult.UP_TO_DATE else "Code generation succeeded")
        else:
            parser.exit(int(outcome.result), f"Code generation failed: {outcome.result.name}\n")
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _format_timestamp(timestamp: float) -> str:
    if math.isinf(timestamp):
        return "never"
    return datetime.fromtimestamp(timestamp).isoformat(timespec="seconds")


if __name__ == "__main__":
    main(sys.argv[1:])
