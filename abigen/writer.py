"""Writes generated modules and the ABI manifest to disk."""

from __future__ import annotations

import json
import shutil
from pathlib import Path
from typing import Iterable

from .logging import get_logger
from .models import AbiManifest, GeneratedModule

logger = get_logger("writer")


def write_generated_files(output_dir: str | Path, modules: Iterable[GeneratedModule]) -> int:
    """Replace ``output_dir`` with one file per module.

    The directory is removed and recreated first, so stale modules from a
    previous run never survive. Returns the number of files written.
    """
    root = Path(output_dir)
    shutil.rmtree(root, ignore_errors=True)
    root.mkdir(parents=True, exist_ok=True)

    count = 0
    for module in modules:
        target = root / module.module_rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(module.module_content, encoding="utf-8")
        count += 1

    logger.debug("Wrote %d modules to %s", count, root)
    return count


def write_manifest(path: str | Path, manifest: AbiManifest) -> Path:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_text(json.dumps(manifest, indent=2) + "\n", encoding="utf-8")
    return target


def read_manifest(path: str | Path) -> AbiManifest:
    """Load a manifest file written by :func:`write_manifest`."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(payload, dict):
        raise ValueError(f"{path} does not contain an ABI manifest")
    return {
        str(key): [str(item) for item in value]
        for key, value in payload.items()
        if isinstance(value, list)
    }


__all__ = ["read_manifest", "write_generated_files", "write_manifest"]
