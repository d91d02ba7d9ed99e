"""CLI parser and entrypoint tests."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from abigen.cli import _build_parser, main, parse_overrides
from tests._fixtures.artifact_builder import ArtifactRepoBuilder, function_item


def test_cli_accepts_verbose_before_command() -> None:
    args = _build_parser().parse_args(["--verbose", "generate"])
    assert args.verbose is True
    assert args.command == "generate"


def test_cli_accepts_verbose_after_command() -> None:
    args = _build_parser().parse_args(["changelog", "--verbose"])
    assert args.verbose is True
    assert args.command == "changelog"


def test_generate_flags() -> None:
    args = _build_parser().parse_args(
        ["generate", "--no-build", "--config", "cfg.yml", "--repo", "core=me/fork", "--ref", "v2"]
    )
    assert args.no_build is True
    assert args.config == "cfg.yml"
    assert args.repo == ["core=me/fork"]
    assert args.ref == ["v2"]


def test_changelog_defaults() -> None:
    args = _build_parser().parse_args(["changelog"])
    assert args.manifest == "abi-manifest.json"
    assert args.tag == "latest"
    assert args.against is None
    assert args.out is None
    assert args.package == "@berachain/abis"


def test_parse_overrides() -> None:
    assert parse_overrides(["core=me/fork", "main", "bend=a=b"]) == {
        "core": "me/fork",
        "*": "main",
        "bend": "a=b",
    }


def test_generate_end_to_end(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    builder = ArtifactRepoBuilder(tmp_path, name="contracts")
    builder.contract("Token.sol", [function_item("totalSupply", outputs=["uint256"])])
    config = tmp_path / "abi.config.json"
    config.write_text(
        json.dumps(
            {
                "outputDir": "generated",
                "mainSource": "core",
                "sources": [{"id": "core", "repoPath": "contracts", "buildCommand": "false"}],
            }
        ),
        encoding="utf-8",
    )

    main(["generate", "--config", str(config), "--no-build"])

    assert "Generated 1 modules from 1 artifacts" in capsys.readouterr().out
    assert (tmp_path / "generated" / "token.ts").exists()
    manifest = json.loads((tmp_path / "abi-manifest.json").read_text(encoding="utf-8"))
    assert manifest == {"token": ["function totalSupply() view returns (uint256)"]}


def test_generate_reports_config_errors(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["generate", "--config", str(tmp_path / "missing.json")])
    assert excinfo.value.code == 1


def test_changelog_against_local_manifest(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    current = tmp_path / "abi-manifest.json"
    current.write_text(json.dumps({"a": ["receive()"], "b": []}), encoding="utf-8")
    previous = tmp_path / "previous.json"
    previous.write_text(json.dumps({"a": ["receive()"]}), encoding="utf-8")

    main(["changelog", "--manifest", str(current), "--against", str(previous)])

    assert capsys.readouterr().out == "### Added\n\n- `b`\n"


def test_changelog_writes_out_file(tmp_path: Path) -> None:
    current = tmp_path / "abi-manifest.json"
    current.write_text(json.dumps({"a": []}), encoding="utf-8")
    previous = tmp_path / "previous.json"
    previous.write_text("{}", encoding="utf-8")
    out = tmp_path / "CHANGELOG.md"

    main(["changelog", "--manifest", str(current), "--against", str(previous), "--out", str(out)])

    assert out.read_text(encoding="utf-8") == "### Added\n\n- `a`\n"


def test_changelog_without_changes(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    current = tmp_path / "abi-manifest.json"
    current.write_text(json.dumps({"a": []}), encoding="utf-8")

    main(["changelog", "--manifest", str(current), "--against", str(current)])

    assert "No ABI changes detected." in capsys.readouterr().out


def test_changelog_missing_manifest_exits(tmp_path: Path) -> None:
    with pytest.raises(SystemExit) as excinfo:
        main(["changelog", "--manifest", str(tmp_path / "abi-manifest.json")])
    assert excinfo.value.code == 1


def test_log_file_receives_debug_output(tmp_path: Path) -> None:
    current = tmp_path / "abi-manifest.json"
    current.write_text(json.dumps({"a": []}), encoding="utf-8")
    log_file = tmp_path / "abigen.log"

    main(["--log-file", str(log_file), "-v", "changelog", "--manifest", str(current), "--against", str(current)])

    assert log_file.exists()
