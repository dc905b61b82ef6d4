"""Artifact staging into publishable package directories.

Shared layout::

    npm/app/
        package.json                  (version re-stamped)
        bin/
            coralizer-linux-x64
            ...
            coralizer-win32-arm64.exe

Per-platform layout::

    npm/coralizer-<os>-<arch>/        (one per platform, recreated each run)
        package.json                  (rendered from the template)
        bin/
            coralizer[.exe]
    npm/coralizer/
        package.json                  (version and optionalDependencies pinned)

Staging is never incremental: every destination directory this module owns
is removed and recreated before it is populated.
"""

from __future__ import annotations

import logging
import os
import shutil
from dataclasses import dataclass
from pathlib import Path

from coralizer_dist._exceptions import ArtifactNotFoundError
from coralizer_dist._manifest import (
    MANIFEST_FILENAME,
    load_manifest,
    render_template,
    write_manifest,
)
from coralizer_dist._platforms import (
    EXECUTABLE_MODE,
    PLATFORMS,
    PlatformDescriptor,
    artifact_path,
    needs_exec_bit,
    package_name,
    plain_binary_name,
    suffixed_binary_name,
)
from coralizer_dist._release_config import ReleaseConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StagedPackage:
    """A package directory ready for the registry publish command."""

    name: str
    directory: Path


def verify_artifacts(config: ReleaseConfig) -> dict[PlatformDescriptor, Path]:
    """Check that every platform's build artifact exists.

    Returns:
        Mapping of platform to artifact path, in enumeration order.

    Raises:
        ArtifactNotFoundError: for the first platform whose artifact is absent.
    """
    found: dict[PlatformDescriptor, Path] = {}
    for target in PLATFORMS:
        source = artifact_path(config.artifacts_path, target, config.product)
        if not source.is_file():
            raise ArtifactNotFoundError(target.name, source)
        found[target] = source
    return found


def reset_directory(path: Path) -> None:
    """Remove ``path`` if it exists and recreate it empty."""
    if path.exists():
        shutil.rmtree(path)
    path.mkdir(parents=True)


def install_binary(source: Path, dest: Path, target: PlatformDescriptor) -> None:
    """Copy an artifact into place and apply the platform's permission policy.

    Build artifacts often arrive without their execute bits (e.g. after a CI
    artifact download), so POSIX binaries are chmod'ed explicitly.
    """
    logger.info("Copying %s to %s", source, dest)
    shutil.copyfile(source, dest)
    if needs_exec_bit(target):
        os.chmod(dest, EXECUTABLE_MODE)


def stage_shared_package(
    config: ReleaseConfig,
    version: str,
    artifacts: dict[PlatformDescriptor, Path],
) -> StagedPackage:
    """Populate the shared app package with every platform's binary."""
    package_dir = config.app_package_path
    bin_dir = package_dir / "bin"
    manifest_path = package_dir / MANIFEST_FILENAME
    manifest = load_manifest(manifest_path).with_version(version)

    logger.info("Preparing binaries in %s", bin_dir)
    reset_directory(bin_dir)
    for target, source in artifacts.items():
        install_binary(source, bin_dir / suffixed_binary_name(target, config.product), target)

    write_manifest(manifest_path, manifest)

    return StagedPackage(name=manifest.name or package_dir.name, directory=package_dir)


def stage_platform_package(
    config: ReleaseConfig,
    target: PlatformDescriptor,
    version: str,
    source: Path,
    template: str,
) -> StagedPackage:
    """Create the standalone package for one platform."""
    name = package_name(target, config.product)
    package_dir = config.packages_path / name
    bin_dir = package_dir / "bin"

    logger.info("Staging %s in %s", name, package_dir)
    reset_directory(package_dir)
    bin_dir.mkdir()
    install_binary(source, bin_dir / plain_binary_name(target, config.product), target)

    rendered = render_template(
        template,
        name=name,
        version=version,
        os=target.os,
        arch=target.arch,
        ext=target.ext,
        source=config.template_path,
    )
    (package_dir / MANIFEST_FILENAME).write_text(rendered, encoding="utf-8")

    return StagedPackage(name=name, directory=package_dir)


def stage_base_package(config: ReleaseConfig, version: str) -> StagedPackage:
    """Stamp the meta package and pin its optional dependencies to ``version``."""
    package_dir = config.base_package_path
    manifest_path = package_dir / MANIFEST_FILENAME
    manifest = (
        load_manifest(manifest_path)
        .with_version(version)
        .with_pinned_optional_dependencies(version)
    )
    write_manifest(manifest_path, manifest)
    logger.info(
        "Pinned %d optional dependencies of %s to %s",
        len(manifest.optional_dependencies),
        manifest.name or package_dir.name,
        version,
    )
    return StagedPackage(name=manifest.name or package_dir.name, directory=package_dir)
