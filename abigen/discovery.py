"""Artifact discovery across configured contract source directories."""

from __future__ import annotations

import json
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Mapping, Optional, Sequence

from .config import normalize_dirs
from .logging import for_source, get_logger
from .models import DiscoveredArtifact, DiscoveryResult, SourceSpec
from .patterns import matches_any

_SOURCE_SUFFIX = ".sol"
_ROOT_DIR = "."

CommandRunner = Callable[..., None]


class MissingSourceError(FileNotFoundError):
    """Raised when a source repository path does not exist."""


class BuildError(RuntimeError):
    """Raised when a source's build command fails."""


class ArtifactParseError(ValueError):
    """Raised when a compiled artifact is not valid JSON."""


@dataclass(frozen=True)
class ArtifactLocator:
    """Resolves where a compiler wrote the artifact for one source file."""

    name: str
    resolve: Callable[[Path, str, str], Path]

    def candidate(self, out_dir: Path, rel_source_path: str, contract_name: str) -> Path:
        return self.resolve(out_dir, rel_source_path, contract_name)


def _flat_layout(out_dir: Path, rel_source_path: str, contract_name: str) -> Path:
    # Foundry: out/<File>.sol/<Contract>.json
    return out_dir / Path(rel_source_path).name / f"{contract_name}.json"


def _nested_layout(out_dir: Path, rel_source_path: str, contract_name: str) -> Path:
    # out/<dir>/<File>.sol/<Contract>.json
    return out_dir / rel_source_path / f"{contract_name}.json"


DEFAULT_LOCATORS: Sequence[ArtifactLocator] = (
    ArtifactLocator(name="flat", resolve=_flat_layout),
    ArtifactLocator(name="nested", resolve=_nested_layout),
)


def extract_artifact(
    artifact_path: str,
    source_id: str,
    rel_dir: str,
    raw: Any,
) -> DiscoveredArtifact | None:
    """Turn a parsed Foundry artifact into a :class:`DiscoveredArtifact`.

    Returns ``None`` when the artifact has no usable ABI (interfaces and
    abstract contracts often compile to an empty one) or no contract name.
    The name comes from ``contractName`` when present, otherwise from the
    artifact's file name.
    """
    if not isinstance(raw, Mapping):
        return None
    abi = raw.get("abi")
    if not isinstance(abi, list) or not abi:
        return None

    fallback_name = Path(artifact_path).name
    if fallback_name.endswith(".json"):
        fallback_name = fallback_name[: -len(".json")]
    raw_name = raw.get("contractName")
    contract_name = (raw_name if isinstance(raw_name, str) else fallback_name).strip()
    if not contract_name:
        return None

    return DiscoveredArtifact(
        source_id=source_id,
        file_path=artifact_path,
        contract_name=contract_name,
        rel_dir=rel_dir,
        abi=tuple(abi),
    )


def load_artifact(path: Path) -> Any:
    """Read and parse an artifact file."""
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ArtifactParseError(f"Skipping invalid JSON: {path}") from exc


def run_build_step(command: str, cwd: Path, runner: CommandRunner | None = None) -> None:
    """Run a source's build command in its repository."""
    (runner or _default_runner)(command, cwd=cwd)


def _default_runner(command: str, *, cwd: Path) -> None:
    subprocess.run(command, cwd=str(cwd), shell=True, check=True)


class ArtifactDiscoverer:
    """Walks a source's Solidity tree and collects compiled artifacts."""

    def __init__(
        self,
        runner: CommandRunner | None = None,
        locators: Optional[Sequence[ArtifactLocator]] = None,
    ) -> None:
        self._runner = runner or _default_runner
        self._locators = tuple(locators) if locators is not None else tuple(DEFAULT_LOCATORS)
        self.logger = get_logger("discovery")

    def discover(
        self,
        source: SourceSpec,
        repo_path: str | Path,
        run_build: bool = True,
        on_missing_repo: str = "error",
    ) -> DiscoveryResult:
        """Collect artifacts for ``source`` rooted at ``repo_path``.

        Per-file problems (missing artifacts, invalid JSON, empty ABIs) are
        reported as warnings. A missing repository raises
        :class:`MissingSourceError` unless ``on_missing_repo`` is ``"warn"``,
        and a failing build command raises :class:`BuildError`.
        """
        log = for_source(self.logger, source.id)
        repo = Path(repo_path)
        if not repo.exists():
            message = f"Source repo does not exist: {repo}"
            if on_missing_repo == "warn":
                log.debug(message)
                return DiscoveryResult(warnings=[message])
            raise MissingSourceError(message)

        if run_build and source.build_command:
            log.info("Building: %s", source.build_command)
            try:
                run_build_step(source.build_command, repo, self._runner)
            except (subprocess.CalledProcessError, OSError) as exc:
                raise BuildError(
                    f'Build command failed for source "{source.id}" ({source.build_command}): {exc}'
                ) from exc

        src_dirs, out_dirs = normalize_dirs(source.src_dir, source.out_dir)
        result = DiscoveryResult()
        for src_name, out_name in zip(src_dirs, out_dirs):
            self._walk(source, repo / src_name, repo / out_name, result)

        log.debug("%d artifacts, %d warnings", len(result.artifacts), len(result.warnings))
        return result

    # ------------------------------------------------------------------
    # Internals

    def _walk(
        self,
        source: SourceSpec,
        src_dir: Path,
        out_dir: Path,
        result: DiscoveryResult,
    ) -> None:
        if not src_dir.is_dir():
            result.warnings.append(f"Source directory not found for {source.id}: {src_dir}")
            return

        for rel_path in _list_sources(src_dir):
            filename = rel_path.rsplit("/", 1)[-1]
            if matches_any(filename, source.exclude_patterns, rel_path):
                self.logger.debug("Excluded %s", rel_path)
                continue

            contract_name = filename[: -len(_SOURCE_SUFFIX)]
            parent = rel_path.rsplit("/", 1)[0] if "/" in rel_path else _ROOT_DIR

            artifact_path = self._locate(out_dir, rel_path, contract_name)
            if artifact_path is None:
                result.warnings.append(f"No artifact found for {rel_path}")
                continue

            try:
                raw = load_artifact(artifact_path)
            except ArtifactParseError as exc:
                result.warnings.append(str(exc))
                continue

            extracted = extract_artifact(str(artifact_path), source.id, parent, raw)
            if extracted is None:
                result.warnings.append(f"Skipping artifact without ABI: {rel_path}")
                continue
            result.artifacts.append(extracted)

    def _locate(self, out_dir: Path, rel_path: str, contract_name: str) -> Path | None:
        for locator in self._locators:
            candidate = locator.candidate(out_dir, rel_path, contract_name)
            if candidate.is_file():
                return candidate
        return None


def _is_hidden(rel_path: Path) -> bool:
    return any(part.startswith(".") for part in rel_path.parts)


def _list_sources(src_dir: Path) -> List[str]:
    rel_paths = [
        path.relative_to(src_dir).as_posix()
        for path in src_dir.rglob(f"*{_SOURCE_SUFFIX}")
        if path.is_file() and not _is_hidden(path.relative_to(src_dir))
    ]
    return sorted(rel_paths)


__all__ = [
    "ArtifactDiscoverer",
    "ArtifactLocator",
    "ArtifactParseError",
    "BuildError",
    "DEFAULT_LOCATORS",
    "MissingSourceError",
    "extract_artifact",
    "load_artifact",
    "run_build_step",
]
