"""Platform table and naming policy for coralizer binaries.

Every platform-conditional decision (file extension, permission bits, package
and file names) is a pure function of a PlatformDescriptor so the launcher and
the publisher never branch on OS names themselves.
"""

from __future__ import annotations

import platform as _platform
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

PRODUCT_NAME = "coralizer"

WINDOWS_OS = "win32"

# Mode for staged binaries on POSIX targets (rwxr-xr-x).
EXECUTABLE_MODE = 0o755

_ARCH_ALIASES = {
    "x86_64": "x64",
    "amd64": "x64",
    "x64": "x64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


def executable_extension(os_name: str) -> str:
    """Return the executable file extension for an OS identifier."""
    return ".exe" if os_name == WINDOWS_OS else ""


@dataclass(frozen=True)
class PlatformDescriptor:
    """One build target: OS identifier, CPU architecture, file extension."""

    os: str
    arch: str
    ext: str = ""

    @classmethod
    def of(cls, os_name: str, arch: str) -> "PlatformDescriptor":
        return cls(os=os_name, arch=arch, ext=executable_extension(os_name))

    @property
    def name(self) -> str:
        return f"{self.os}-{self.arch}"


PLATFORMS: tuple[PlatformDescriptor, ...] = (
    PlatformDescriptor.of("linux", "x64"),
    PlatformDescriptor.of("linux", "arm64"),
    PlatformDescriptor.of("darwin", "x64"),
    PlatformDescriptor.of("darwin", "arm64"),
    PlatformDescriptor.of("win32", "x64"),
    PlatformDescriptor.of("win32", "arm64"),
)


def needs_exec_bit(target: PlatformDescriptor) -> bool:
    """Whether a staged binary for this platform must be chmod'ed executable."""
    return target.os != WINDOWS_OS


def package_name(target: PlatformDescriptor, product: str = PRODUCT_NAME) -> str:
    """Return the per-platform package name.

    Example: package_name(linux-x64) -> "coralizer-linux-x64"
    """
    return f"{product}-{target.os}-{target.arch}"


def module_name(target: PlatformDescriptor, product: str = PRODUCT_NAME) -> str:
    """Return the import name of the per-platform package."""
    return package_name(target, product).replace("-", "_")


def suffixed_binary_name(target: PlatformDescriptor, product: str = PRODUCT_NAME) -> str:
    """Return the binary file name used inside a shared bin/ directory.

    Example: suffixed_binary_name(win32-arm64) -> "coralizer-win32-arm64.exe"
    """
    return f"{package_name(target, product)}{target.ext}"


def plain_binary_name(target: PlatformDescriptor, product: str = PRODUCT_NAME) -> str:
    """Return the binary file name used inside a per-platform package."""
    return f"{product}{target.ext}"


def artifact_path(
    artifacts_dir: Path, target: PlatformDescriptor, product: str = PRODUCT_NAME
) -> Path:
    """Return where the build drops the binary for a platform.

    Example: artifact_path(Path("artifacts"), linux-x64)
             -> artifacts/bin-linux-x64/coralizer
    """
    return artifacts_dir / f"bin-{target.name}" / plain_binary_name(target, product)


def normalize_arch(machine: str) -> str:
    """Map a ``platform.machine()`` value onto the x64/arm64 naming.

    Example: normalize_arch("AMD64") -> "x64"
    """
    machine = machine.lower()
    return _ARCH_ALIASES.get(machine, machine)


def host_platform(
    sys_platform: Optional[str] = None, machine: Optional[str] = None
) -> PlatformDescriptor:
    """Describe the running host.

    ``sys.platform`` already uses the linux/darwin/win32 identifiers. Hosts
    outside PLATFORMS still get a descriptor so that resolution can report
    exactly what it looked for.
    """
    os_name = sys_platform if sys_platform is not None else sys.platform
    if os_name.startswith("linux"):
        os_name = "linux"
    arch = normalize_arch(machine if machine is not None else _platform.machine())
    return PlatformDescriptor.of(os_name, arch)


def find_platform(name: str) -> PlatformDescriptor:
    """Look up a supported platform by its ``<os>-<arch>`` name."""
    for target in PLATFORMS:
        if target.name == name:
            return target
    supported = ", ".join(p.name for p in PLATFORMS)
    raise KeyError(f"Unknown platform {name!r}. Supported: {supported}")
