"""Release configuration for the publisher.

Defaults describe the conventional repository layout. An optional
``coralizer-release.yml`` overrides them:

    product: coralizer
    layout: per-platform
    artifacts-dir: artifacts
    packages-dir: npm
    app-package: app
    base-package: coralizer
    template: npm/platform-package.template.json
    publish-command: [npm, publish, --access, public]

The release version is never configured here; it always comes from the
``VERSION`` environment variable.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Mapping, Optional

import yaml

from coralizer_dist._exceptions import ConfigurationError
from coralizer_dist._platforms import PRODUCT_NAME

DEFAULT_CONFIG_FILENAME = "coralizer-release.yml"
VERSION_ENV_VAR = "VERSION"


class StagingLayout(str, Enum):
    """How binaries are laid out into publishable packages."""

    SHARED = "shared"
    PER_PLATFORM = "per-platform"


@dataclass(frozen=True)
class ReleaseConfig:
    root: Path = field(default_factory=Path.cwd)
    product: str = PRODUCT_NAME
    layout: StagingLayout = StagingLayout.SHARED
    artifacts_dir: str = "artifacts"
    packages_dir: str = "npm"
    app_package: str = "app"
    base_package: str = PRODUCT_NAME
    template: str = "npm/platform-package.template.json"
    publish_command: tuple[str, ...] = ("npm", "publish", "--access", "public")

    @property
    def artifacts_path(self) -> Path:
        return self.root / self.artifacts_dir

    @property
    def packages_path(self) -> Path:
        return self.root / self.packages_dir

    @property
    def app_package_path(self) -> Path:
        return self.packages_path / self.app_package

    @property
    def base_package_path(self) -> Path:
        return self.packages_path / self.base_package

    @property
    def template_path(self) -> Path:
        return self.root / self.template

    def replace(self, **changes: Any) -> ReleaseConfig:
        return dataclasses.replace(self, **changes)


_STRING_KEYS = {
    "product": "product",
    "artifacts-dir": "artifacts_dir",
    "packages-dir": "packages_dir",
    "app-package": "app_package",
    "base-package": "base_package",
    "template": "template",
}


def parse_layout(value: str) -> StagingLayout:
    try:
        return StagingLayout(value)
    except ValueError:
        choices = ", ".join(layout.value for layout in StagingLayout)
        raise ConfigurationError(
            f"Unknown layout {value!r}. Expected one of: {choices}", key="layout"
        ) from None


def config_from_dict(raw: Mapping[str, Any], *, root: Path) -> ReleaseConfig:
    """Build a ReleaseConfig from a decoded YAML mapping."""
    kwargs: dict[str, Any] = {"root": root}

    for key, value in raw.items():
        if key in _STRING_KEYS:
            if not isinstance(value, str) or not value:
                raise ConfigurationError("Must be a non-empty string", key=key)
            kwargs[_STRING_KEYS[key]] = value
        elif key == "layout":
            kwargs["layout"] = parse_layout(str(value))
        elif key == "publish-command":
            if isinstance(value, str):
                value = value.split()
            if not isinstance(value, list) or not value or not all(isinstance(v, str) for v in value):
                raise ConfigurationError("Must be a non-empty list of strings", key=key)
            kwargs["publish_command"] = tuple(value)
        else:
            raise ConfigurationError("Unknown configuration key", key=key)

    return ReleaseConfig(**kwargs)


def load_release_config(path: Optional[Path] = None, *, root: Optional[Path] = None) -> ReleaseConfig:
    """Load the release config.

    Args:
        path: Explicit config file. Must exist when given.
        root: Repository root that relative paths are resolved against.
              Defaults to the current directory.

    Returns:
        ReleaseConfig, with defaults when no file is given and
        ``coralizer-release.yml`` is absent from the root.
    """
    root = root if root is not None else Path.cwd()
    if path is None:
        path = root / DEFAULT_CONFIG_FILENAME
        if not path.is_file():
            return ReleaseConfig(root=root)
    elif not path.is_file():
        raise ConfigurationError(f"Config file not found: {path}")

    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in {path}: {e}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ConfigurationError(f"Cannot read {path}: {e}") from e

    if raw is None:
        raw = {}
    if not isinstance(raw, dict):
        raise ConfigurationError(f"{path} must contain a mapping")
    return config_from_dict(raw, root=root)


def require_version(environ: Mapping[str, str]) -> str:
    version = environ.get(VERSION_ENV_VAR, "")
    if not version:
        raise ConfigurationError(f"{VERSION_ENV_VAR} environment variable is not set.")
    return version
