"""Identifier segmentation and case conversion for generated export names."""

from __future__ import annotations

import re
from typing import List

_ACRONYM_BOUNDARY = re.compile(r"([A-Z])([A-Z][a-z])")
_CASE_BOUNDARY = re.compile(r"([a-z0-9])([A-Z])")
_SEPARATORS = re.compile(r"[^a-zA-Z0-9]+")


def split_words(identifier: str) -> List[str]:
    """Split a mixed-case identifier into lowercase word tokens.

    Acronym runs stay together until the next capitalised word starts, so
    ``BGTStaker`` becomes ``["bgt", "staker"]`` and ``WBERA`` stays a single
    token. Digits attach to the preceding word (``ERC20Token`` splits into
    ``["erc20", "token"]``). Underscores, hyphens, dots and slashes separate
    words.
    """
    spaced = _ACRONYM_BOUNDARY.sub(r"\1 \2", identifier)
    spaced = _CASE_BOUNDARY.sub(r"\1 \2", spaced)
    return [part.lower() for part in _SEPARATORS.split(spaced) if part]


def _capitalize(word: str) -> str:
    return word[:1].upper() + word[1:]


def to_camel_case(identifier: str) -> str:
    """Convert an identifier to ``camelCase``; empty input yields ``"abi"``."""
    parts = split_words(identifier)
    if not parts:
        return "abi"
    return parts[0] + "".join(_capitalize(part) for part in parts[1:])


def to_pascal_case(identifier: str) -> str:
    """Convert an identifier to ``PascalCase``; empty input yields ``"Contract"``."""
    parts = split_words(identifier)
    if not parts:
        return "Contract"
    return "".join(_capitalize(part) for part in parts)


def to_kebab_case(identifier: str) -> str:
    return "-".join(split_words(identifier))


__all__ = ["split_words", "to_camel_case", "to_kebab_case", "to_pascal_case"]
