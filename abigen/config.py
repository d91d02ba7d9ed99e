"""Configuration loading for abigen (abi.config.json / abi.config.yml)."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

from .models import AbiConfig, DirSpec, SourceSpec

DEFAULT_CONFIG_NAME = "abi.config.json"
DEFAULT_SRC_DIR = "src"
DEFAULT_OUT_DIR = "out"

_MISSING_REPO_POLICIES = ("error", "warn")


class ConfigError(RuntimeError):
    """Raised when the configuration file is malformed or inconsistent."""


def normalize_dirs(src_dir: DirSpec, out_dir: DirSpec) -> Tuple[List[str], List[str]]:
    """Pair source directories with their artifact output directories.

    Scalars wrap into single-element lists and ``None`` falls back to the
    Foundry defaults. A single output directory is shared by every source
    directory; otherwise both lists must have the same length.
    """
    src_dirs = _dir_list(src_dir, DEFAULT_SRC_DIR)
    out_dirs = _dir_list(out_dir, DEFAULT_OUT_DIR)

    if not src_dirs:
        raise ConfigError("srcDir must list at least one directory")
    if not out_dirs:
        raise ConfigError("outDir must list at least one directory")

    if len(out_dirs) == 1:
        return src_dirs, out_dirs * len(src_dirs)
    if len(out_dirs) != len(src_dirs):
        raise ConfigError(
            f"srcDir and outDir length mismatch: {len(src_dirs)} source dirs vs {len(out_dirs)} output dirs"
        )
    return src_dirs, out_dirs


def _dir_list(value: DirSpec, default: str) -> List[str]:
    if value is None:
        return [default]
    if isinstance(value, str):
        return [value]
    return [str(item) for item in value]


def load_config(config_path: Path) -> AbiConfig:
    """Load and validate the generation config from disk.

    Relative paths inside the file resolve against the config's directory.
    """
    config_file = Path(config_path).expanduser()
    if config_file.is_dir():
        config_file = config_file / DEFAULT_CONFIG_NAME
    config_file = config_file.resolve()
    if not config_file.exists():
        raise ConfigError(f"Config file not found: {config_file}")

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    return parse_config(data, base_dir=config_file.parent)


def parse_config(data: Dict[str, Any], *, base_dir: Path) -> AbiConfig:
    """Validate a raw config mapping and apply defaults."""
    raw_sources = data.get("sources")
    if not isinstance(raw_sources, list) or not raw_sources:
        raise ConfigError("Invalid config: sources must be a non-empty array")

    output_dir = _as_str(data.get("outputDir"))
    if not output_dir:
        raise ConfigError("Invalid config: outputDir is required")

    sources = [_parse_source(entry, base_dir) for entry in raw_sources]

    seen: set[str] = set()
    for source in sources:
        if source.id in seen:
            raise ConfigError(f'Invalid config: duplicate source id "{source.id}"')
        seen.add(source.id)

    main_source = _as_str(data.get("mainSource"))
    if main_source and main_source not in seen:
        raise ConfigError(
            f'Invalid config: mainSource "{main_source}" does not match any source id'
        )

    on_missing_repo = _as_str(data.get("onMissingRepo")) or "error"
    if on_missing_repo not in _MISSING_REPO_POLICIES:
        raise ConfigError(
            f'Invalid config: onMissingRepo must be one of {", ".join(_MISSING_REPO_POLICIES)}'
        )

    readme_path = _as_str(data.get("readmePath"))

    return AbiConfig(
        output_dir=str(base_dir / output_dir),
        sources=sources,
        main_source=main_source or None,
        repos_dir=str(base_dir / (_as_str(data.get("reposDir")) or ".repos")),
        on_missing_repo=on_missing_repo,
        manifest_path=str(base_dir / (_as_str(data.get("manifestPath")) or "abi-manifest.json")),
        readme_path=str(base_dir / readme_path) if readme_path else None,
        package_name=_as_str(data.get("packageName")) or "@berachain/abis",
    )


def _parse_source(entry: Any, base_dir: Path) -> SourceSpec:
    if not isinstance(entry, dict):
        raise ConfigError("Invalid config: each source must be a mapping")

    source_id = _as_str(entry.get("id"))
    if not source_id:
        raise ConfigError("Invalid config: each source requires an id")

    repo = _as_str(entry.get("repo"))
    repo_path = _as_str(entry.get("repoPath"))
    if not repo and not repo_path:
        raise ConfigError(f'Source "{source_id}" must specify either "repo" or "repoPath"')
    if repo and repo_path:
        raise ConfigError(f'Source "{source_id}" cannot specify both "repo" and "repoPath"')

    src_dir = _as_dir_spec(entry.get("srcDir"))
    out_dir = _as_dir_spec(entry.get("outDir"))
    try:
        normalize_dirs(src_dir, out_dir)
    except ConfigError as exc:
        raise ConfigError(f'Source "{source_id}": {exc}') from exc

    return SourceSpec(
        id=source_id,
        build_command=_as_str(entry.get("buildCommand")) or "",
        repo=repo,
        ref=_as_str(entry.get("ref")),
        repo_path=str(base_dir / repo_path) if repo_path else None,
        src_dir=src_dir,
        out_dir=out_dir,
        exclude_patterns=_as_str_list(entry.get("excludePatterns")),
    )


def _read_config(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if not text.strip():
        return {}

    if path.suffix.lower() in {".yml", ".yaml"}:
        try:
            loaded = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
        return loaded or {}

    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float)) and not isinstance(value, bool) else None


def _as_dir_spec(value: Any) -> DirSpec:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float))]
    raise ConfigError("srcDir/outDir must be a string or a list of strings")


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_NAME",
    "load_config",
    "normalize_dirs",
    "parse_config",
]
