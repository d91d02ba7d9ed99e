"""Core data models shared across abigen components."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Union

DirSpec = Union[str, Sequence[str], None]

AbiManifest = Dict[str, List[str]]
"""Map from export path (e.g. ``pol/bgt``) to sorted ABI item signatures."""


@dataclass
class SourceSpec:
    """A single contract source from the config file."""

    id: str
    build_command: str = ""
    repo: Optional[str] = None
    ref: Optional[str] = None
    repo_path: Optional[str] = None
    src_dir: DirSpec = None
    out_dir: DirSpec = None
    exclude_patterns: List[str] = field(default_factory=list)


@dataclass
class AbiConfig:
    """Top-level generation settings read from ``abi.config.json``."""

    output_dir: str
    sources: List[SourceSpec]
    main_source: Optional[str] = None
    repos_dir: str = ".repos"
    on_missing_repo: str = "error"
    manifest_path: str = "abi-manifest.json"
    readme_path: Optional[str] = None
    package_name: str = "@berachain/abis"


@dataclass(frozen=True)
class DiscoveredArtifact:
    """A contract artifact found while walking a source directory."""

    source_id: str
    file_path: str
    contract_name: str
    rel_dir: str
    abi: Sequence[Any]


@dataclass(frozen=True)
class GeneratedModule:
    """A TypeScript module exporting a single ABI."""

    source_id: str
    contract_name: str
    export_name: str
    module_rel_path: str
    module_content: str
    dedupe_key: str


@dataclass
class DiscoveryResult:
    """Artifacts collected from one source plus non-fatal warnings."""

    artifacts: List[DiscoveredArtifact] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass
class DedupeResult:
    """Deduplicated modules in write order plus duplicate warnings."""

    modules: List[GeneratedModule] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class SignatureChange:
    """Item-level changes for an export present in both manifests."""

    added: List[str]
    removed: List[str]


@dataclass
class ManifestDiff:
    """Categorised differences between two manifests."""

    added: List[str] = field(default_factory=list)
    removed: List[str] = field(default_factory=list)
    changed: Dict[str, SignatureChange] = field(default_factory=dict)
