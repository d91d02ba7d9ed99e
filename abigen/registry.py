"""npm registry access for published versions and manifests."""

from __future__ import annotations

import json
import subprocess
import tarfile
import tempfile
from pathlib import Path
from typing import Callable, Iterable, Optional

from .logging import get_logger
from .models import AbiManifest

MANIFEST_FILENAME = "abi-manifest.json"
_MANIFEST_MEMBER = f"package/{MANIFEST_FILENAME}"


def parse_npm_version_output(output: str) -> Optional[str]:
    """Parse ``npm view <pkg>@<tag> version --json`` output.

    A single quoted version is returned; arrays (range matches), invalid JSON
    and empty output yield ``None``.
    """
    text = output.strip()
    if not text:
        return None
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        return None
    if isinstance(parsed, str) and parsed.strip():
        return parsed.strip()
    return None


class NpmRegistry:
    """Looks up dist-tags and published manifests through the npm CLI."""

    def __init__(self, runner: Callable[..., str] | None = None) -> None:
        self._runner = runner or self._default_runner
        self.logger = get_logger("registry")

    def lookup_version(self, package: str, tag: str) -> Optional[str]:
        """Return the version a dist-tag points to, or ``None`` if it does not exist."""
        try:
            output = self._run(
                ["npm", "view", f"{package}@{tag}", "version", "--json"],
                cwd=Path.cwd(),
                capture_output=True,
            )
        except (subprocess.CalledProcessError, OSError) as exc:
            self.logger.debug("npm view %s@%s failed: %s", package, tag, exc)
            return None
        return parse_npm_version_output(output)

    def fetch_manifest(self, package: str, version: str) -> Optional[AbiManifest]:
        """Download ``package@version`` and return its bundled ABI manifest.

        Returns ``None`` when the package, version or manifest is missing.
        """
        with tempfile.TemporaryDirectory(prefix="abi-changelog-") as tmp:
            tmp_dir = Path(tmp)
            try:
                self._run(
                    ["npm", "pack", f"{package}@{version}", "--pack-destination", str(tmp_dir)],
                    cwd=tmp_dir,
                    capture_output=True,
                )
            except (subprocess.CalledProcessError, OSError) as exc:
                self.logger.debug("npm pack %s@%s failed: %s", package, version, exc)
                return None

            tarballs = sorted(tmp_dir.glob("*.tgz"))
            if not tarballs:
                return None
            return read_manifest_from_tarball(tarballs[0])

    def _run(
        self,
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        return self._runner(args, cwd=cwd, capture_output=capture_output)

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            check=True,
            text=True,
            capture_output=capture_output,
        )
        return completed.stdout if capture_output else ""


def read_manifest_from_tarball(tarball: Path) -> Optional[AbiManifest]:
    """Extract ``package/abi-manifest.json`` from an npm tarball."""
    try:
        with tarfile.open(tarball, "r:gz") as archive:
            try:
                member = archive.getmember(_MANIFEST_MEMBER)
            except KeyError:
                return None
            handle = archive.extractfile(member)
            if handle is None:
                return None
            with handle:
                payload = json.loads(handle.read().decode("utf-8"))
    except (tarfile.TarError, OSError, UnicodeDecodeError, json.JSONDecodeError):
        return None

    if not isinstance(payload, dict):
        return None
    return {
        str(key): [str(item) for item in value]
        for key, value in payload.items()
        if isinstance(value, list)
    }


__all__ = ["MANIFEST_FILENAME", "NpmRegistry", "parse_npm_version_output", "read_manifest_from_tarball"]
