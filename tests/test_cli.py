"""CLI parser and command behaviour tests."""

from __future__ import annotations

import json
import os
import stat
import sys
from pathlib import Path

import pytest
import yaml

from codegate import cli
from codegate.cli import _build_parser, main
from codegate.config import CONFIG_FILENAME, ENV_FORCE_GENERATION, ENV_INSTALLED
from codegate.models import ModuleInfo
from codegate.stores import FingerprintStore

from tests._fixtures.engine_builder import PLATFORM, EngineBuilder


@pytest.fixture(autouse=True)
def _quiet_cli(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)
    monkeypatch.delenv(ENV_FORCE_GENERATION, raising=False)
    monkeypatch.delenv(ENV_INSTALLED, raising=False)


def test_cli_accepts_verbose_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--verbose", "check-tool"])
    assert args.verbose is True
    assert args.command == "check-tool"


def test_cli_accepts_verbose_after_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["status", "--build", "build.yml", "--verbose"])
    assert args.verbose is True
    assert args.command == "status"
    assert args.build == Path("build.yml")


def test_cli_generate_requires_manifest() -> None:
    parser = _build_parser()
    with pytest.raises(SystemExit):
        parser.parse_args(["generate", "--build", "build.yml"])


def test_cli_accepts_force_flag() -> None:
    parser = _build_parser()
    args = parser.parse_args(["generate", "--build", "b.yml", "--manifest", "m.json", "--force"])
    assert args.force is True
    assert args.manifest == Path("m.json")


def _write_config(engine: EngineBuilder, tmp_path: Path, **extra: object) -> Path:
    config_file = tmp_path / CONFIG_FILENAME
    config_file.write_text(
        yaml.safe_dump({"engine_root": str(engine.engine_root), "host_platform": PLATFORM, **extra}),
        encoding="utf-8",
    )
    return config_file


def _write_description(modules: list[ModuleInfo], tmp_path: Path) -> Path:
    description = tmp_path / "build.yml"
    payload = {
        "target": {"name": "MyGame", "type": "game", "platform": PLATFORM},
        "modules": [
            {
                "name": module.name,
                "directory": module.directory,
                "kind": module.kind,
                "headers": {
                    "classes": module.classes_headers,
                    "public": module.public_headers,
                    "private": module.private_headers,
                },
                "generated_base": module.generated_base,
            }
            for module in modules
        ],
    }
    description.write_text(yaml.safe_dump(payload), encoding="utf-8")
    return description


def _up_to_date_tree(engine: EngineBuilder) -> list[ModuleInfo]:
    modules = [
        engine.add_module("CoreUObject", public=["Object.h"]),
        engine.add_module("MyGame", in_engine=False, classes=["A.h"]),
    ]
    engine.install_tool()
    engine.write_core_generated(modules[0])
    engine.age_all()
    store = FingerprintStore()
    for module in modules:
        store.write(module.generated_directory, module.all_headers())
    return modules


def test_check_tool_fails_when_tool_missing(
    engine_builder: EngineBuilder, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config_file = _write_config(engine_builder, tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(config_file), "check-tool"])

    assert excinfo.value.code == 1
    assert "UnrealHeaderTool is missing or out of date" in capsys.readouterr().err


def test_check_tool_reports_valid_tool(
    engine_builder: EngineBuilder, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    engine_builder.install_tool()
    config_file = _write_config(engine_builder, tmp_path)

    main(["--config", str(config_file), "check-tool"])

    assert "UnrealHeaderTool is valid" in capsys.readouterr().out


def test_status_lists_stale_modules(
    engine_builder: EngineBuilder, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    modules = [
        engine_builder.add_module("CoreUObject", public=["Object.h"]),
        engine_builder.add_module("MyGame", in_engine=False, classes=["A.h"]),
    ]
    engine_builder.install_tool()
    config_file = _write_config(engine_builder, tmp_path)
    description = _write_description(modules, tmp_path)

    main(["--config", str(config_file), "status", "--build", str(description)])

    output = capsys.readouterr().out
    assert "CoreUObject: stale because no generated code directory was found" in output
    assert "MyGame: stale because no generated code directory was found" in output


def test_status_reports_up_to_date(
    engine_builder: EngineBuilder, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    modules = _up_to_date_tree(engine_builder)
    config_file = _write_config(engine_builder, tmp_path)
    description = _write_description(modules, tmp_path)

    main(["--config", str(config_file), "status", "--build", str(description)])

    assert capsys.readouterr().out.strip() == "Generated code is up to date"


def test_status_fails_without_core_module(
    engine_builder: EngineBuilder, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    modules = [engine_builder.add_module("MyGame", in_engine=False, classes=["A.h"])]
    engine_builder.install_tool()
    config_file = _write_config(engine_builder, tmp_path)
    description = _write_description(modules, tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        main(["--config", str(config_file), "status", "--build", str(description)])

    assert excinfo.value.code == 1
    assert "Could not find CoreUObject" in capsys.readouterr().err


def test_generate_skips_generator_when_up_to_date(
    engine_builder: EngineBuilder, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    modules = _up_to_date_tree(engine_builder)
    config_file = _write_config(engine_builder, tmp_path)
    description = _write_description(modules, tmp_path)
    manifest = tmp_path / "MyGame.uhtmanifest"

    main(
        [
            "--config",
            str(config_file),
            "generate",
            "--build",
            str(description),
            "--manifest",
            str(manifest),
        ]
    )

    assert capsys.readouterr().out.strip() == "Generated code is up to date"
    assert not manifest.exists()


def test_generate_reports_build_errors(
    engine_builder: EngineBuilder, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    modules = [
        engine_builder.add_module("CoreUObject", public=["Object.h"]),
        engine_builder.add_module("MyGame", in_engine=False, classes=["A.h"]),
    ]
    config_file = _write_config(engine_builder, tmp_path)
    description = _write_description(modules, tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        main(
            [
                "--config",
                str(config_file),
                "generate",
                "--build",
                str(description),
                "--manifest",
                str(tmp_path / "MyGame.uhtmanifest"),
            ]
        )

    assert excinfo.value.code == 1
    assert "no tool.build_executable is configured" in capsys.readouterr().err


def test_cli_accepts_log_file_before_command() -> None:
    parser = _build_parser()
    args = parser.parse_args(["--log-file", "logs/codegate.log", "check-tool"])
    assert args.log_file == Path("logs/codegate.log")


_GENERATOR_SCRIPT = """\
import json
import os
import sys

manifest = json.load(open(sys.argv[2], encoding="utf-8"))
for module in manifest["Modules"]:
    os.makedirs(module["OutputDirectory"], exist_ok=True)
    with open(os.path.join(module["OutputDirectory"], module["Name"] + ".generated.cpp"), "w") as handle:
        handle.write("// generated\\n")
print("Generated", len(manifest["Modules"]), "modules")
sys.exit({exit_code})
"""


def _install_generator_script(engine: EngineBuilder, exit_code: int) -> None:
    engine.install_tool()
    script = engine.tool_path
    script.write_text(
        f"#!{sys.executable}\n" + _GENERATOR_SCRIPT.format(exit_code=exit_code),
        encoding="utf-8",
    )
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)


def _generate_argv(config_file: Path, description: Path, manifest: Path) -> list[str]:
    return [
        "--config",
        str(config_file),
        "generate",
        "--build",
        str(description),
        "--manifest",
        str(manifest),
    ]


@pytest.mark.skipif(os.name == "nt", reason="generator stub relies on a shebang")
def test_generate_runs_generator_and_records_fingerprints(
    engine_builder: EngineBuilder, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    modules = [
        engine_builder.add_module("CoreUObject", public=["Object.h"]),
        engine_builder.add_module("MyGame", in_engine=False, classes=["A.h"], private=["C.h"]),
    ]
    _install_generator_script(engine_builder, exit_code=0)
    config_file = _write_config(engine_builder, tmp_path, tool={"skip_build": True})
    description = _write_description(modules, tmp_path)
    manifest = tmp_path / "Intermediate" / "MyGame.uhtmanifest"

    main(_generate_argv(config_file, description, manifest))

    assert capsys.readouterr().out.strip() == "Code generation succeeded"
    payload = json.loads(manifest.read_text(encoding="utf-8"))
    assert payload["TargetName"] == "MyGame"
    assert [module["Name"] for module in payload["Modules"]] == ["CoreUObject", "MyGame"]
    store = FingerprintStore()
    for module in modules:
        assert store.read(module.generated_directory) == module.all_headers()

    main(_generate_argv(config_file, description, manifest))

    assert capsys.readouterr().out.strip() == "Generated code is up to date"


@pytest.mark.skipif(os.name == "nt", reason="generator stub relies on a shebang")
def test_generate_exits_with_compilation_result_on_failure(
    engine_builder: EngineBuilder, tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    modules = [
        engine_builder.add_module("CoreUObject", public=["Object.h"]),
        engine_builder.add_module("MyGame", in_engine=False, classes=["A.h"]),
    ]
    _install_generator_script(engine_builder, exit_code=5)
    config_file = _write_config(engine_builder, tmp_path, tool={"skip_build": True})
    description = _write_description(modules, tmp_path)

    with pytest.raises(SystemExit) as excinfo:
        main(_generate_argv(config_file, description, tmp_path / "MyGame.uhtmanifest"))

    assert excinfo.value.code == 5
    assert "OTHER_COMPILATION_ERROR" in capsys.readouterr().err
    assert FingerprintStore().timestamp(modules[1].generated_directory) is None
