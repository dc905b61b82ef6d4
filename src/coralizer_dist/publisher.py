"""``coralizer-publish``: stage release binaries and publish every package.

Usage::

    VERSION=1.4.0 coralizer-publish [--layout per-platform] [--dry-run] [-v]

The run is strictly sequential and fails on the first error. Packages that
were already published before a failure stay published.
"""

from __future__ import annotations

import argparse
import logging
import os
import subprocess
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from coralizer_dist._exceptions import ConfigurationError, CoralizerDistError, PublishError
from coralizer_dist._manifest import MANIFEST_FILENAME, load_manifest
from coralizer_dist._release_config import (
    DEFAULT_CONFIG_FILENAME,
    ReleaseConfig,
    StagingLayout,
    load_release_config,
    parse_layout,
    require_version,
)
from coralizer_dist._staging import (
    StagedPackage,
    stage_base_package,
    stage_platform_package,
    stage_shared_package,
    verify_artifacts,
)

logger = logging.getLogger(__name__)

PublishAction = Callable[[StagedPackage, Sequence[str]], None]


def run_publish_command(package: StagedPackage, command: Sequence[str]) -> None:
    """Run the registry publish command inside a staged package directory."""
    logger.info("Publishing %s from %s", package.name, package.directory)
    try:
        subprocess.run(list(command), cwd=package.directory, check=True)
    except subprocess.CalledProcessError as e:
        raise PublishError(package.name, f"'{' '.join(command)}' exited with status {e.returncode}") from e
    except OSError as e:
        raise PublishError(package.name, str(e)) from e


def _read_template(config: ReleaseConfig) -> str:
    path = config.template_path
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigurationError(f"Manifest template not found: {path}", key="template") from None
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read manifest template {path}: {e}", key="template") from e


def publish_release(
    config: ReleaseConfig,
    version: str,
    *,
    publish: Optional[PublishAction] = None,
    dry_run: bool = False,
) -> list[StagedPackage]:
    """Stage and publish every package of a release.

    Args:
        config: Release configuration.
        version: Release version stamped into every manifest.
        publish: Publish action, ``run_publish_command`` by default.
        dry_run: Stage everything but do not publish.

    Returns:
        The staged packages in the order they were published.
    """
    publish = publish or run_publish_command
    artifacts = verify_artifacts(config)
    published: list[StagedPackage] = []

    def _publish(package: StagedPackage) -> None:
        if dry_run:
            logger.info("[DRY RUN] Would publish %s@%s from %s", package.name, version, package.directory)
        else:
            publish(package, config.publish_command)
        published.append(package)

    if config.layout == StagingLayout.SHARED:
        _publish(stage_shared_package(config, version, artifacts))
        return published

    template = _read_template(config)
    # Fail before publishing anything if the base package is unreadable.
    load_manifest(config.base_package_path / MANIFEST_FILENAME)

    for target, source in artifacts.items():
        _publish(stage_platform_package(config, target, version, source, template))

    _publish(stage_base_package(config, version))
    return published


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="coralizer-publish",
        description="Stage prebuilt coralizer binaries and publish them. "
        "The release version is read from $VERSION.",
    )
    p.add_argument(
        "--root",
        type=Path,
        default=None,
        help="Repository root holding artifacts/ and the package directories (default: cwd)",
    )
    p.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Release config file (default: <root>/{DEFAULT_CONFIG_FILENAME} if present)",
    )
    p.add_argument(
        "--layout",
        choices=[layout.value for layout in StagingLayout],
        default=None,
        help="Override the staging layout from the config file",
    )
    p.add_argument("--dry-run", action="store_true", help="Stage packages without publishing them")
    p.add_argument("-v", "--verbose", action="store_true", help="Log each staging and publish step")
    return p


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(message)s",
        stream=sys.stderr,
    )

    try:
        version = require_version(os.environ)
        config = load_release_config(args.config, root=args.root)
        if args.layout is not None:
            config = config.replace(layout=parse_layout(args.layout))
        published = publish_release(config, version, dry_run=args.dry_run)
    except CoralizerDistError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    for package in published:
        logger.info("%s %s@%s", "Staged" if args.dry_run else "Published", package.name, version)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
