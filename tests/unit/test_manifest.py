"""Tests for package.json manifest handling."""

from __future__ import annotations

import json

import pytest

from coralizer_dist._exceptions import ManifestError
from coralizer_dist._manifest import (
    PackageManifest,
    load_manifest,
    parse_manifest,
    render_template,
    write_manifest,
)

TEMPLATE = """{
  "name": "${PKG_NAME}",
  "version": "${PKG_VERSION}",
  "os": ["${PKG_OS}"],
  "cpu": ["${PKG_ARCH}"],
  "main": "bin/coralizer${PKG_EXT}"
}
"""


class TestPackageManifest:
    def test_accessors(self):
        manifest = PackageManifest(
            data={
                "name": "coralizer",
                "version": "0.0.0",
                "optionalDependencies": {"coralizer-linux-x64": "0.0.0"},
            }
        )
        assert manifest.name == "coralizer"
        assert manifest.version == "0.0.0"
        assert manifest.optional_dependencies == {"coralizer-linux-x64": "0.0.0"}

    def test_with_version_overwrites_only_version(self):
        manifest = PackageManifest(data={"name": "app", "version": "1.0.0", "bin": {"coralizer": "index.js"}})
        stamped = manifest.with_version("2.0.0")
        assert stamped.version == "2.0.0"
        assert stamped.data["bin"] == {"coralizer": "index.js"}
        assert manifest.version == "1.0.0"

    def test_pin_optional_dependencies(self):
        manifest = PackageManifest(
            data={
                "name": "coralizer",
                "optionalDependencies": {
                    "coralizer-linux-x64": "0.1.0",
                    "coralizer-win32-arm64": "*",
                },
            }
        )
        pinned = manifest.with_pinned_optional_dependencies("1.2.3")
        assert set(pinned.optional_dependencies.values()) == {"1.2.3"}
        assert list(pinned.optional_dependencies) == ["coralizer-linux-x64", "coralizer-win32-arm64"]
        assert manifest.optional_dependencies["coralizer-win32-arm64"] == "*"

    def test_pin_without_optional_dependencies(self):
        pinned = PackageManifest(data={"name": "coralizer"}).with_pinned_optional_dependencies("1.0.0")
        assert pinned.optional_dependencies == {}

    def test_to_json_is_deterministic(self):
        manifest = PackageManifest(data={"name": "app", "version": "1.0.0"})
        assert manifest.to_json() == '{\n  "name": "app",\n  "version": "1.0.0"\n}\n'


class TestLoadWrite:
    def test_roundtrip(self, tmp_path):
        path = tmp_path / "package.json"
        write_manifest(path, PackageManifest(data={"name": "app", "version": "3.1.4"}))
        assert load_manifest(path).version == "3.1.4"

    def test_missing(self, tmp_path):
        with pytest.raises(ManifestError, match="manifest not found"):
            load_manifest(tmp_path / "package.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "package.json"
        path.write_text("{not json")
        with pytest.raises(ManifestError, match="invalid JSON"):
            load_manifest(path)

    def test_invalid_utf8(self, tmp_path):
        path = tmp_path / "package.json"
        path.write_bytes(b"\xff\xfe{")
        with pytest.raises(ManifestError, match="cannot read manifest"):
            load_manifest(path)

    def test_directory_in_place_of_file(self, tmp_path):
        path = tmp_path / "package.json"
        path.mkdir()
        with pytest.raises(ManifestError, match="cannot read manifest"):
            load_manifest(path)

    def test_not_an_object(self):
        with pytest.raises(ManifestError, match="JSON object"):
            parse_manifest("[1, 2]", source="inline")


class TestRenderTemplate:
    def test_substitutes_all_placeholders(self):
        rendered = render_template(
            TEMPLATE,
            name="coralizer-win32-x64",
            version="1.2.3",
            os="win32",
            arch="x64",
            ext=".exe",
        )
        data = json.loads(rendered)
        assert data == {
            "name": "coralizer-win32-x64",
            "version": "1.2.3",
            "os": ["win32"],
            "cpu": ["x64"],
            "main": "bin/coralizer.exe",
        }

    def test_empty_extension(self):
        rendered = render_template(TEMPLATE, name="n", version="1", os="linux", arch="arm64", ext="")
        assert '"main": "bin/coralizer"' in rendered

    def test_repeated_placeholders(self):
        rendered = render_template(
            '{"name": "${PKG_NAME}", "description": "${PKG_NAME} for ${PKG_OS}"}',
            name="coralizer-linux-x64",
            version="1",
            os="linux",
            arch="x64",
            ext="",
        )
        assert json.loads(rendered)["description"] == "coralizer-linux-x64 for linux"

    def test_values_are_not_expanded_again(self):
        rendered = render_template(
            '{"name": "${PKG_NAME}", "version": "${PKG_VERSION}"}',
            name="${PKG_VERSION}",
            version="1.0.0",
            os="linux",
            arch="x64",
            ext="",
        )
        assert json.loads(rendered) == {"name": "${PKG_VERSION}", "version": "1.0.0"}

    def test_preserves_template_formatting(self):
        rendered = render_template(TEMPLATE, name="n", version="1", os="linux", arch="x64", ext="")
        assert rendered.endswith("}\n")
        assert rendered.startswith('{\n  "name": "n",')

    def test_invalid_result(self):
        with pytest.raises(ManifestError):
            render_template("${PKG_NAME}", name="n", version="1", os="linux", arch="x64", ext="")
