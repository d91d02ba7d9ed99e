"""Exclusion pattern matching for source discovery."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional, Pattern, Sequence


@dataclass(frozen=True)
class ExcludeRule:
    """A glob-like exclusion pattern.

    ``*`` matches any run of characters and ``?`` a single character. Every
    other character is literal. Patterns containing ``/`` are tested against
    the relative path; bare patterns only see the filename.
    """

    pattern: str
    has_slash: bool = field(init=False)
    regex: Optional[Pattern[str]] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "has_slash", "/" in self.pattern)
        object.__setattr__(self, "regex", _compile(self.pattern))

    def matches(self, filename: str, rel_path: str | None = None) -> bool:
        if self.regex is None:
            return False
        target = filename
        if self.has_slash and rel_path:
            target = rel_path.replace("\\", "/")
        return self.regex.fullmatch(target) is not None


def _translate(pattern: str) -> str:
    parts = []
    for char in pattern:
        if char == "*":
            parts.append(".*")
        elif char == "?":
            parts.append(".")
        else:
            parts.append(re.escape(char))
    return "".join(parts)


@lru_cache(maxsize=256)
def _compile(pattern: str) -> Optional[Pattern[str]]:
    if not pattern:
        return None
    try:
        return re.compile(_translate(pattern), re.DOTALL)
    except re.error:
        return None


@lru_cache(maxsize=256)
def _rule(pattern: str) -> ExcludeRule:
    return ExcludeRule(pattern)


def matches_any(filename: str, patterns: Sequence[str], rel_path: str | None = None) -> bool:
    """Return True when ``filename`` (or ``rel_path``) matches any pattern.

    >>> matches_any("IBGT.sol", ["I*.sol"])
    True
    >>> matches_any("Deploy.s.sol", ["*.s.sol"])
    True
    """
    for pattern in patterns:
        if not isinstance(pattern, str):
            continue
        if _rule(pattern).matches(filename, rel_path):
            return True
    return False


__all__ = ["ExcludeRule", "matches_any"]
