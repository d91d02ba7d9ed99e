"""Tests for abigen.discovery."""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from abigen.discovery import (
    ArtifactDiscoverer,
    ArtifactParseError,
    BuildError,
    MissingSourceError,
    extract_artifact,
    load_artifact,
)
from abigen.models import SourceSpec
from tests._fixtures.artifact_builder import ArtifactRepoBuilder, function_item


def _source(**overrides) -> SourceSpec:
    values = {"id": "core", "repo_path": "unused"}
    values.update(overrides)
    return SourceSpec(**values)


def test_discovers_flat_and_nested_layouts(repo_builder: ArtifactRepoBuilder) -> None:
    repo_builder.contract("Token.sol", [function_item("balanceOf", ["address"], ["uint256"])])
    repo_builder.contract(
        "pol/rewards/RewardVault.sol",
        [function_item("stake", ["uint256"], mutability="nonpayable")],
        layout="nested",
    )

    result = ArtifactDiscoverer().discover(_source(), repo_builder.path(), run_build=False)

    assert result.warnings == []
    names = [(a.contract_name, a.rel_dir) for a in result.artifacts]
    assert names == [("Token", "."), ("RewardVault", "pol/rewards")]
    assert all(a.source_id == "core" for a in result.artifacts)
    assert result.artifacts[0].abi[0]["name"] == "balanceOf"


def test_flat_layout_wins_when_both_exist(repo_builder: ArtifactRepoBuilder) -> None:
    repo_builder.source("pol/Vault.sol")
    flat = repo_builder.artifact("pol/Vault.sol", {"abi": [function_item("flat")]})
    repo_builder.artifact("pol/Vault.sol", {"abi": [function_item("nested")]}, layout="nested")

    result = ArtifactDiscoverer().discover(_source(), repo_builder.path(), run_build=False)

    assert len(result.artifacts) == 1
    assert result.artifacts[0].file_path == str(flat)
    assert result.artifacts[0].abi[0]["name"] == "flat"


def test_exclude_patterns_skip_sources(repo_builder: ArtifactRepoBuilder) -> None:
    repo_builder.contract("IToken.sol", [function_item("a")])
    repo_builder.contract("Token.sol", [function_item("a")])
    repo_builder.contract("Deploy.s.sol", [function_item("run")])
    repo_builder.contract("mocks/MockToken.sol", [function_item("a")])

    source = _source(exclude_patterns=["I*.sol", "*.s.sol", "mocks/*"])
    result = ArtifactDiscoverer().discover(source, repo_builder.path(), run_build=False)

    assert [a.contract_name for a in result.artifacts] == ["Token"]
    assert result.warnings == []


def test_missing_artifact_and_empty_abi_warn(repo_builder: ArtifactRepoBuilder) -> None:
    repo_builder.source("Orphan.sol")
    repo_builder.source("IEmpty.sol")
    repo_builder.artifact("IEmpty.sol", {"contractName": "IEmpty", "abi": []})

    result = ArtifactDiscoverer().discover(_source(), repo_builder.path(), run_build=False)

    assert result.artifacts == []
    assert "No artifact found for Orphan.sol" in result.warnings
    assert "Skipping artifact without ABI: IEmpty.sol" in result.warnings


def test_invalid_json_warns_and_continues(repo_builder: ArtifactRepoBuilder) -> None:
    repo_builder.source("Broken.sol")
    broken = repo_builder.artifact("Broken.sol", "{not json")
    repo_builder.contract("Token.sol", [function_item("a")])

    result = ArtifactDiscoverer().discover(_source(), repo_builder.path(), run_build=False)

    assert [a.contract_name for a in result.artifacts] == ["Token"]
    assert result.warnings == [f"Skipping invalid JSON: {broken}"]


def test_missing_src_dir_warns(repo_builder: ArtifactRepoBuilder) -> None:
    result = ArtifactDiscoverer().discover(_source(), repo_builder.path(), run_build=False)

    assert result.artifacts == []
    assert len(result.warnings) == 1
    assert result.warnings[0].startswith("Source directory not found for core")


def test_multiple_src_dirs_share_out_dir(repo_builder: ArtifactRepoBuilder) -> None:
    repo_builder.contract("A.sol", [function_item("a")], src_dir="src")
    repo_builder.contract("B.sol", [function_item("b")], src_dir="periphery")

    source = _source(src_dir=["src", "periphery"], out_dir="out")
    result = ArtifactDiscoverer().discover(source, repo_builder.path(), run_build=False)

    assert [a.contract_name for a in result.artifacts] == ["A", "B"]


def test_missing_repo_raises_or_warns(tmp_path: Path) -> None:
    missing = tmp_path / "missing"
    discoverer = ArtifactDiscoverer()

    with pytest.raises(MissingSourceError, match="Source repo does not exist"):
        discoverer.discover(_source(), missing)

    result = discoverer.discover(_source(), missing, on_missing_repo="warn")
    assert result.artifacts == []
    assert result.warnings == [f"Source repo does not exist: {missing}"]


def test_build_command_runs_in_repo(repo_builder: ArtifactRepoBuilder) -> None:
    calls = []

    def runner(command, cwd):
        calls.append((command, Path(cwd)))

    source = _source(build_command="forge build")
    ArtifactDiscoverer(runner=runner).discover(source, repo_builder.path())

    assert calls == [("forge build", repo_builder.path())]


def test_build_skipped_when_disabled(repo_builder: ArtifactRepoBuilder) -> None:
    calls = []

    def runner(command, cwd):
        calls.append(command)

    source = _source(build_command="forge build")
    ArtifactDiscoverer(runner=runner).discover(source, repo_builder.path(), run_build=False)

    assert calls == []


def test_build_failure_raises_build_error(repo_builder: ArtifactRepoBuilder) -> None:
    def runner(command, cwd):
        raise subprocess.CalledProcessError(returncode=1, cmd=command)

    source = _source(build_command="forge build")
    with pytest.raises(BuildError, match='source "core"'):
        ArtifactDiscoverer(runner=runner).discover(source, repo_builder.path())


def test_extract_artifact_prefers_contract_name() -> None:
    artifact = extract_artifact(
        "/out/Token.sol/Token.json", "core", ".", {"contractName": "Renamed", "abi": [{"type": "receive"}]}
    )
    assert artifact is not None
    assert artifact.contract_name == "Renamed"


def test_extract_artifact_falls_back_to_file_stem() -> None:
    artifact = extract_artifact("/out/Token.sol/Token.json", "core", ".", {"abi": [{"type": "receive"}]})
    assert artifact is not None
    assert artifact.contract_name == "Token"


@pytest.mark.parametrize(
    "raw",
    [
        [],
        {"abi": []},
        {"abi": "nope"},
        {"contractName": "X"},
        {"contractName": "   ", "abi": [{"type": "receive"}]},
    ],
)
def test_extract_artifact_rejects_unusable_payloads(raw) -> None:
    assert extract_artifact("/out/X.sol/X.json", "core", ".", raw) is None


def test_load_artifact_raises_parse_error(tmp_path: Path) -> None:
    path = tmp_path / "bad.json"
    path.write_text("nope", encoding="utf-8")

    with pytest.raises(ArtifactParseError):
        load_artifact(path)


def test_hidden_directories_are_skipped(repo_builder: ArtifactRepoBuilder) -> None:
    repo_builder.contract("Token.sol", [function_item("a")])
    repo_builder.contract(".cache/Shadow.sol", [function_item("a")], layout="nested")
    repo_builder.contract("pol/.old/Vault.sol", [function_item("a")], layout="nested")

    result = ArtifactDiscoverer().discover(_source(), repo_builder.path(), run_build=False)

    assert [a.contract_name for a in result.artifacts] == ["Token"]
    assert result.warnings == []
