"""Pipeline orchestration for the generate and changelog flows."""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .changelog import (
    PRIMARY_TAG,
    diff_manifests,
    is_empty_diff,
    render_changelog,
    resolve_base_version,
)
from .config import DEFAULT_CONFIG_NAME, load_config
from .discovery import ArtifactDiscoverer
from .git import RepoManager
from .logging import for_source, get_logger
from .manifest import build_manifest
from .models import (
    AbiConfig,
    AbiManifest,
    DiscoveredArtifact,
    GeneratedModule,
    ManifestDiff,
    SourceSpec,
)
from .modules import artifact_to_module, dedupe_modules
from .readme import update_readme_tree
from .registry import MANIFEST_FILENAME, NpmRegistry
from .security import scan_modules
from .writer import read_manifest, write_generated_files, write_manifest

DEFAULT_PACKAGE = "@berachain/abis"
_WILDCARD = "*"


@dataclass
class GenerateOptions:
    """Options for a generate run."""

    config_path: str = DEFAULT_CONFIG_NAME
    run_build: bool = True
    repo_overrides: Dict[str, str] = field(default_factory=dict)
    ref_overrides: Dict[str, str] = field(default_factory=dict)


@dataclass
class GenerateResult:
    """Outcome of a generate run."""

    module_count: int
    artifact_count: int
    warnings: List[str]
    manifest: AbiManifest
    manifest_path: Path


@dataclass
class ChangelogResult:
    """Rendered changelog and the baseline it was computed against."""

    text: str
    diff: ManifestDiff
    base_version: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return is_empty_diff(self.diff)


def apply_overrides(
    source: SourceSpec,
    repo_overrides: Dict[str, str],
    ref_overrides: Dict[str, str],
) -> SourceSpec:
    """Return ``source`` with CLI repo/ref overrides applied.

    Overrides are keyed by source id, with ``"*"`` covering every source
    without a specific entry. Repo overrides only touch sources that clone
    a remote repo.
    """
    repo_override = repo_overrides.get(source.id) or repo_overrides.get(_WILDCARD)
    ref_override = ref_overrides.get(source.id) or ref_overrides.get(_WILDCARD)
    changes: Dict[str, str] = {}
    if repo_override and source.repo:
        changes["repo"] = repo_override
    if ref_override:
        changes["ref"] = ref_override
    return dataclasses.replace(source, **changes) if changes else source


class Generator:
    """Coordinates discovery, module generation and output writing."""

    def __init__(
        self,
        repo_manager: RepoManager | None = None,
        discoverer: ArtifactDiscoverer | None = None,
    ) -> None:
        self.repo_manager = repo_manager or RepoManager()
        self.discoverer = discoverer or ArtifactDiscoverer()
        self.logger = get_logger("orchestrator")

    def run(self, options: GenerateOptions | None = None) -> GenerateResult:
        options = options or GenerateOptions()
        config = load_config(Path(options.config_path))
        self.logger.info("Loaded %d sources from %s", len(config.sources), options.config_path)

        artifacts: List[DiscoveredArtifact] = []
        warnings: List[str] = []

        # Sources run one at a time; build tools may share working-directory state.
        for source in config.sources:
            effective = apply_overrides(source, options.repo_overrides, options.ref_overrides)
            try:
                repo_path = self.repo_manager.ensure_repo(effective, config.repos_dir)
            except (RuntimeError, ValueError, OSError) as exc:
                message = f'Failed to resolve repo for source "{source.id}": {exc}'
                if config.on_missing_repo == "warn":
                    warnings.append(message)
                    continue
                raise RuntimeError(message) from exc

            discovered = self.discoverer.discover(
                effective,
                repo_path,
                run_build=options.run_build,
                on_missing_repo=config.on_missing_repo,
            )
            for_source(self.logger, source.id).info(
                "Discovered %d artifacts", len(discovered.artifacts)
            )
            artifacts.extend(discovered.artifacts)
            warnings.extend(discovered.warnings)

        modules = [artifact_to_module(artifact, config.main_source) for artifact in artifacts]
        deduped = dedupe_modules(modules)
        warnings.extend(deduped.warnings)
        warnings.extend(scan_modules(deduped.modules))

        write_generated_files(config.output_dir, deduped.modules)
        self._update_readme(config, deduped.modules)

        manifest = build_manifest(deduped.modules)
        manifest_path = write_manifest(config.manifest_path, manifest)
        self.logger.debug("Manifest written to %s", manifest_path)

        return GenerateResult(
            module_count=len(deduped.modules),
            artifact_count=len(artifacts),
            warnings=warnings,
            manifest=manifest,
            manifest_path=manifest_path,
        )

    def _update_readme(self, config: AbiConfig, modules: Sequence[GeneratedModule]) -> None:
        if not config.readme_path:
            return
        update_readme_tree(modules, config.readme_path, config.package_name)


class ChangelogRunner:
    """Diffs the local manifest against the last published one."""

    def __init__(self, registry: NpmRegistry | None = None) -> None:
        self.registry = registry or NpmRegistry()
        self.logger = get_logger("changelog")

    def run(
        self,
        manifest_path: str | Path = MANIFEST_FILENAME,
        *,
        tag: str = PRIMARY_TAG,
        against: str | Path | None = None,
        package: str = DEFAULT_PACKAGE,
    ) -> ChangelogResult:
        """Return the changelog between the current manifest and its baseline.

        ``against`` reads the baseline from a local file. Without it, the
        registry version for ``tag`` (or ``latest`` when newer) is fetched.
        A missing baseline means a first release: every export is added.
        """
        current_path = Path(manifest_path)
        if not current_path.exists():
            raise FileNotFoundError(
                f"No {current_path.name} found. Run `abigen generate` first."
            )
        current = read_manifest(current_path)

        base_version: Optional[str] = None
        previous: Optional[AbiManifest]
        if against is not None:
            previous = read_manifest(Path(against))
        else:
            base_version = resolve_base_version(package, tag, self.registry.lookup_version)
            if base_version:
                self.logger.info("Diffing against %s@%s...", package, base_version)
                previous = self.registry.fetch_manifest(package, base_version)
            else:
                self.logger.info("No previous version found on npm, treating as first release.")
                previous = None

        diff = diff_manifests(previous or {}, current)
        return ChangelogResult(text=render_changelog(diff), diff=diff, base_version=base_version)


__all__ = [
    "ChangelogResult",
    "ChangelogRunner",
    "GenerateOptions",
    "GenerateResult",
    "Generator",
    "apply_overrides",
]
