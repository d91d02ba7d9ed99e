"""Manifest diffing, base-version resolution and changelog rendering."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Mapping, Optional, Sequence

import semver

from .logging import get_logger
from .models import ManifestDiff, SignatureChange

PRIMARY_TAG = "latest"

VersionLookup = Callable[[str, str], Optional[str]]

logger = get_logger("changelog")


def diff_manifests(
    previous: Mapping[str, Sequence[str]],
    current: Mapping[str, Sequence[str]],
) -> ManifestDiff:
    """Compare two manifests export by export.

    ``added`` and ``removed`` list export paths that appear on only one side.
    Exports present in both whose signature sets differ land in ``changed``
    with the signatures that were added and removed.
    """
    previous_keys = set(previous)
    current_keys = set(current)

    changed = {}
    for key in sorted(previous_keys & current_keys):
        before = set(previous[key])
        after = set(current[key])
        items_added = sorted(after - before)
        items_removed = sorted(before - after)
        if items_added or items_removed:
            changed[key] = SignatureChange(added=items_added, removed=items_removed)

    return ManifestDiff(
        added=sorted(current_keys - previous_keys),
        removed=sorted(previous_keys - current_keys),
        changed=changed,
    )


def is_empty_diff(diff: ManifestDiff) -> bool:
    return not diff.added and not diff.removed and not diff.changed


def _bullets(items: Sequence[str]) -> List[str]:
    return [f"- `{item}`" for item in items]


def render_changelog(diff: ManifestDiff) -> str:
    """Render a diff as markdown; an empty diff renders as ``""``."""
    if is_empty_diff(diff):
        return ""

    sections: List[str] = []

    if diff.added:
        sections.append("\n".join(["### Added", "", *_bullets(diff.added)]))

    if diff.removed:
        sections.append("\n".join(["### Removed", "", *_bullets(diff.removed)]))

    if diff.changed:
        lines: List[str] = ["### Changed", ""]
        for key in sorted(diff.changed):
            change = diff.changed[key]
            lines.extend([f"#### `{key}`", ""])
            if change.added:
                lines.extend(["**Added:**", "", *_bullets(change.added), ""])
            if change.removed:
                lines.extend(["**Removed:**", "", *_bullets(change.removed), ""])
        sections.append("\n".join(lines).rstrip())

    return "\n\n".join(sections) + "\n"


def _safe_lookup(lookup: VersionLookup, package: str, tag: str) -> Optional[str]:
    try:
        return lookup(package, tag)
    except Exception as exc:  # registry failures mean "not published"
        logger.warning("Version lookup failed for %s@%s: %s", package, tag, exc)
        return None


def _parse_version(version: str) -> Optional[semver.Version]:
    try:
        return semver.Version.parse(version)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-semver version %r", version)
        return None


def resolve_base_version(
    package: str,
    tag: str,
    lookup: VersionLookup,
    primary: str = PRIMARY_TAG,
) -> Optional[str]:
    """Pick the published version to diff against.

    For the primary tag its version is returned as is. For any other tag
    both tags are looked up and the newer version wins. A tie, or a stale
    pre-release tag left behind after a stable release, resolves to the
    primary tag. ``None`` means nothing has been published yet.
    """
    if tag == primary:
        return _safe_lookup(lookup, package, primary)

    with ThreadPoolExecutor(max_workers=2, thread_name_prefix="abigen-lookup") as pool:
        tag_future = pool.submit(_safe_lookup, lookup, package, tag)
        primary_future = pool.submit(_safe_lookup, lookup, package, primary)
        tag_version = tag_future.result()
        primary_version = primary_future.result()

    if tag_version and primary_version:
        parsed_tag = _parse_version(tag_version)
        parsed_primary = _parse_version(primary_version)
        if parsed_tag is None:
            return primary_version
        if parsed_primary is None:
            return tag_version
        return tag_version if parsed_tag > parsed_primary else primary_version
    return tag_version or primary_version or None


__all__ = [
    "PRIMARY_TAG",
    "diff_manifests",
    "is_empty_diff",
    "render_changelog",
    "resolve_base_version",
]
