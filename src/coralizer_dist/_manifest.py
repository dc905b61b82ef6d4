"""package.json manifests for the published coralizer packages.

Two sources of manifests exist:

* checked-in manifests (the shared ``app`` package and the ``coralizer`` base
  package), which the publisher only re-stamps with the release version;
* per-platform manifests, rendered from a template with ``${PKG_*}``
  placeholders.
"""

from __future__ import annotations

import copy
import json
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from coralizer_dist._exceptions import ManifestError

MANIFEST_FILENAME = "package.json"

TEMPLATE_PLACEHOLDERS = (
    "${PKG_NAME}",
    "${PKG_VERSION}",
    "${PKG_OS}",
    "${PKG_ARCH}",
    "${PKG_EXT}",
)

_PLACEHOLDER_PATTERN = re.compile("|".join(re.escape(p) for p in TEMPLATE_PLACEHOLDERS))


@dataclass(frozen=True)
class PackageManifest:
    """A decoded package.json document.

    The full document is kept so that fields this tooling does not know about
    survive a re-stamp untouched.
    """

    data: dict[str, Any] = field(default_factory=dict)

    @property
    def name(self) -> str:
        return str(self.data.get("name", ""))

    @property
    def version(self) -> str:
        return str(self.data.get("version", ""))

    @property
    def optional_dependencies(self) -> dict[str, str]:
        return dict(self.data.get("optionalDependencies") or {})

    def with_version(self, version: str) -> PackageManifest:
        data = copy.deepcopy(self.data)
        data["version"] = version
        return PackageManifest(data=data)

    def with_pinned_optional_dependencies(self, version: str) -> PackageManifest:
        """Return a copy with every optional dependency pinned to ``version``."""
        data = copy.deepcopy(self.data)
        deps = data.get("optionalDependencies") or {}
        data["optionalDependencies"] = {name: version for name in deps}
        return PackageManifest(data=data)

    def to_json(self) -> str:
        return json.dumps(self.data, indent=2, ensure_ascii=False) + "\n"


def parse_manifest(text: str, *, source: Path | str) -> PackageManifest:
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestError(source, f"invalid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ManifestError(source, "manifest must be a JSON object")
    return PackageManifest(data=data)


def load_manifest(path: Path) -> PackageManifest:
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError as e:
        raise ManifestError(path, "manifest not found") from e
    except (OSError, UnicodeDecodeError) as e:
        raise ManifestError(path, f"cannot read manifest: {e}") from e
    return parse_manifest(text, source=path)


def write_manifest(path: Path, manifest: PackageManifest) -> None:
    path.write_text(manifest.to_json(), encoding="utf-8")


def render_template(
    template: str,
    *,
    name: str,
    version: str,
    os: str,
    arch: str,
    ext: str,
    source: Path | str = "<template>",
) -> str:
    """Substitute the ``${PKG_*}`` placeholders in a manifest template.

    Substitution is literal, unescaped and done in a single pass, so a value
    that happens to contain a placeholder is not expanded again. The rendered
    text is returned as-is once it has been checked to be a JSON object.
    """
    values = dict(zip(TEMPLATE_PLACEHOLDERS, (name, version, os, arch, ext)))
    rendered = _PLACEHOLDER_PATTERN.sub(lambda m: values[m.group(0)], template)
    parse_manifest(rendered, source=source)
    return rendered
