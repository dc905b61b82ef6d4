"""Exception hierarchy for coralizer distribution tooling."""

from __future__ import annotations

from pathlib import Path


class CoralizerDistError(Exception):
    """Base for all coralizer distribution errors."""


class ConfigurationError(CoralizerDistError):
    """Required input is missing or the release config is invalid."""

    def __init__(self, message: str, *, key: str | None = None):
        self.key = key
        prefix = f"[{key}] " if key else ""
        super().__init__(f"{prefix}{message}")


class BinaryNotFoundError(CoralizerDistError):
    """The launcher could not locate the binary for the host platform."""

    def __init__(self, platform_name: str, location: str):
        self.platform_name = platform_name
        self.location = location
        super().__init__(
            f"Could not find the binary for your platform ({platform_name}). "
            f"Looked for: {location}"
        )


class ArtifactNotFoundError(CoralizerDistError):
    """A build artifact expected by the publisher is absent."""

    def __init__(self, platform_name: str, path: Path):
        self.platform_name = platform_name
        self.path = path
        super().__init__(f"Artifact not found at {path}")


class ManifestError(CoralizerDistError):
    """A package manifest could not be read or generated."""

    def __init__(self, path: Path | str, message: str):
        self.path = path
        super().__init__(f"{path}: {message}")


class LaunchError(CoralizerDistError):
    """The OS refused to spawn the resolved binary."""

    def __init__(self, executable: Path, reason: str):
        self.executable = executable
        self.reason = reason
        super().__init__(f"Error executing binary {executable}: {reason}")


class PublishError(CoralizerDistError):
    """The registry publish command failed for a package."""

    def __init__(self, package: str, message: str):
        self.package = package
        super().__init__(f"Failed to publish {package}: {message}")
