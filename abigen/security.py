"""Sanity checks that generated ABIs carry no addresses or key material."""

from __future__ import annotations

import re
from typing import Iterable, List

from .models import GeneratedModule

_ADDRESS = re.compile(r'"0x[a-fA-F0-9]{40}"')
_PRIVATE_KEY = re.compile(r'"(?:0x)?[a-fA-F0-9]{64}"')


def scan_modules(modules: Iterable[GeneratedModule]) -> List[str]:
    """Return one warning per suspicious finding.

    ABIs only describe interfaces, so a quoted 20-byte address or a 32-byte
    hex string almost always means something leaked into the artifact.
    """
    findings: List[str] = []
    for module in modules:
        content = module.module_content
        if _ADDRESS.search(content):
            findings.append(f"Address literal found in {module.module_rel_path}")
        if _PRIVATE_KEY.search(content):
            findings.append(f"Potential private key found in {module.module_rel_path}")
    return findings


__all__ = ["scan_modules"]
