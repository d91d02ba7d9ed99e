"""Module generation and collision detection for discovered ABIs."""

from __future__ import annotations

import json
import posixpath
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Iterable, List

from jinja2 import Environment, FileSystemLoader

from .models import DedupeResult, DiscoveredArtifact, GeneratedModule
from .naming import to_camel_case

MODULE_EXTENSION = ".ts"
_MODULE_TEMPLATE = "module.ts.j2"


class CollisionError(RuntimeError):
    """Raised when one dedupe key maps to two different ABIs."""

    def __init__(self, key: str) -> None:
        super().__init__(
            f"ABI collision for {key}: same source and contractName produced different ABI content"
        )
        self.key = key


def stable_stringify(value: Any) -> str:
    """Serialise JSON with sorted keys so key order never changes the output."""
    return json.dumps(value, indent=2, sort_keys=True, ensure_ascii=False)


@lru_cache(maxsize=1)
def _environment() -> Environment:
    loader = FileSystemLoader(str(Path(__file__).with_name("templates")))
    return Environment(
        loader=loader,
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
    )


def render_module(export_name: str, abi: Iterable[Any]) -> str:
    template = _environment().get_template(_MODULE_TEMPLATE)
    return template.render(export_name=export_name, abi_json=stable_stringify(list(abi)))


def artifact_to_module(artifact: DiscoveredArtifact, main_source: str | None = None) -> GeneratedModule:
    """Convert a discovered artifact into a module descriptor.

    The main source is written at the top level of the output directory and
    every other source is nested under its id. The artifact's directory
    within ``srcDir`` is preserved, so ``pol/rewards/RewardVault`` from the
    main source becomes ``pol/rewards/rewardVault.ts`` exporting
    ``rewardVaultAbi``.
    """
    base_name = to_camel_case(artifact.contract_name)
    export_name = f"{base_name}Abi"
    file_name = f"{base_name}{MODULE_EXTENSION}"
    if artifact.rel_dir in ("", "."):
        inner_path = file_name
    else:
        inner_path = posixpath.join(artifact.rel_dir, file_name)

    is_main = main_source is not None and artifact.source_id == main_source
    module_rel_path = inner_path if is_main else posixpath.join(artifact.source_id, inner_path)

    return GeneratedModule(
        source_id=artifact.source_id,
        contract_name=artifact.contract_name,
        export_name=export_name,
        module_rel_path=module_rel_path,
        module_content=render_module(export_name, artifact.abi),
        dedupe_key=f"{artifact.source_id}:{artifact.contract_name}",
    )


def dedupe_modules(modules: Iterable[GeneratedModule]) -> DedupeResult:
    """Drop identical duplicates and reject conflicting ones.

    Raises :class:`CollisionError` when two modules share a dedupe key but
    carry different content. The surviving modules are sorted by source id,
    contract name and output path. Distinct keys that land on the same
    output path are kept but reported as a warning.
    """
    by_key: Dict[str, GeneratedModule] = {}
    warnings: List[str] = []

    for module in modules:
        existing = by_key.get(module.dedupe_key)
        if existing is None:
            by_key[module.dedupe_key] = module
            continue
        if existing.module_content == module.module_content:
            warnings.append(f"Duplicate ABI ignored for {module.dedupe_key}")
            continue
        raise CollisionError(module.dedupe_key)

    ordered = sorted(
        by_key.values(),
        key=lambda item: (item.source_id, item.contract_name, item.module_rel_path),
    )

    # Names differing only in case (BGT, Bgt) camel-case to the same file.
    by_path: Dict[str, GeneratedModule] = {}
    for module in ordered:
        previous = by_path.get(module.module_rel_path)
        if previous is not None:
            warnings.append(
                f"Module path {module.module_rel_path} produced by both "
                f"{previous.dedupe_key} and {module.dedupe_key}; {module.dedupe_key} overwrites it"
            )
        by_path[module.module_rel_path] = module

    return DedupeResult(modules=ordered, warnings=warnings)


__all__ = [
    "CollisionError",
    "MODULE_EXTENSION",
    "artifact_to_module",
    "dedupe_modules",
    "render_module",
    "stable_stringify",
]
