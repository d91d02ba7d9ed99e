from __future__ import annotations

from pathlib import Path

import pytest

from tests._fixtures.artifact_builder import ArtifactRepoBuilder


@pytest.fixture
def repo_builder(tmp_path: Path) -> ArtifactRepoBuilder:
    """Provide a reusable artifact repo builder rooted at the pytest tmp_path."""
    return ArtifactRepoBuilder(tmp_path)
