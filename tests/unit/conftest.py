"""Shared fixtures: a fake release checkout with build artifacts."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from coralizer_dist._platforms import PLATFORMS, artifact_path, package_name
from coralizer_dist._release_config import ReleaseConfig, StagingLayout

PLATFORM_TEMPLATE = """{
  "name": "${PKG_NAME}",
  "version": "${PKG_VERSION}",
  "os": ["${PKG_OS}"],
  "cpu": ["${PKG_ARCH}"],
  "files": ["bin/coralizer${PKG_EXT}"]
}
"""


def write_json(path: Path, data: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data, indent=2) + "\n")


@pytest.fixture
def release_root(tmp_path: Path) -> Path:
    """A repository root with all six artifacts and both package manifests."""
    for target in PLATFORMS:
        source = artifact_path(tmp_path / "artifacts", target)
        source.parent.mkdir(parents=True)
        source.write_bytes(f"binary for {target.name}\n".encode())
        source.chmod(0o644)

    write_json(
        tmp_path / "npm" / "app" / "package.json",
        {"name": "coralizer", "version": "0.0.0", "bin": {"coralizer": "index.js"}},
    )
    write_json(
        tmp_path / "npm" / "coralizer" / "package.json",
        {
            "name": "coralizer",
            "version": "0.0.0",
            "optionalDependencies": {package_name(t): "0.0.0" for t in PLATFORMS},
        },
    )
    (tmp_path / "npm" / "platform-package.template.json").write_text(PLATFORM_TEMPLATE)
    return tmp_path


@pytest.fixture
def shared_config(release_root: Path) -> ReleaseConfig:
    return ReleaseConfig(root=release_root)


@pytest.fixture
def per_platform_config(release_root: Path) -> ReleaseConfig:
    return ReleaseConfig(root=release_root, layout=StagingLayout.PER_PLATFORM)


def _snapshot_tree(root: Path) -> dict[str, bytes]:
    return {
        str(p.relative_to(root)): p.read_bytes()
        for p in sorted(root.rglob("*"))
        if p.is_file()
    }


@pytest.fixture
def snapshot_tree():
    """Map every file under a directory to its bytes."""
    return _snapshot_tree
