"""``coralizer`` console script: run the prebuilt binary for this host.

The launcher has no options of its own. It resolves the executable for the
host's OS and architecture, runs it with the same arguments and standard
streams, and exits with the child's status. Nothing is written on the success
path; resolution and spawn failures print one diagnostic to stderr and exit 1.

Two resolution strategies exist, selected per deployment with
``CORALIZER_LAUNCH_STRATEGY``:

* ``bin`` (default): ``<bin dir>/coralizer-<os>-<arch>[.exe]``, the file names
  the shared layout stages into ``npm/app/bin``. The bin dir is
  ``$CORALIZER_BIN_DIR`` when set (e.g. pointing at a staged ``npm/app/bin``),
  else ``coralizer_dist/bin``, which a wheel build fills by copying the staged
  ``bin/`` into the package before building.
* ``package``: the per-platform package ``coralizer-<os>-<arch>`` holding
  ``bin/coralizer[.exe]``. It is looked up as a directory of that name under
  ``$CORALIZER_PACKAGES_DIR`` (the per-platform layout's ``npm/`` or an
  install tree), then through the import system as ``coralizer_<os>_<arch>``.
"""

from __future__ import annotations

import importlib.util
import os
import signal
import subprocess
import sys
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Mapping, Optional, Sequence

from coralizer_dist._exceptions import (
    BinaryNotFoundError,
    ConfigurationError,
    CoralizerDistError,
    LaunchError,
)
from coralizer_dist._platforms import (
    PRODUCT_NAME,
    PlatformDescriptor,
    host_platform,
    module_name,
    package_name,
    plain_binary_name,
    suffixed_binary_name,
)

STRATEGY_ENV_VAR = "CORALIZER_LAUNCH_STRATEGY"
BIN_DIR_ENV_VAR = "CORALIZER_BIN_DIR"
PACKAGES_DIR_ENV_VAR = "CORALIZER_PACKAGES_DIR"

STRATEGY_BIN = "bin"
STRATEGY_PACKAGE = "package"
STRATEGIES = (STRATEGY_BIN, STRATEGY_PACKAGE)
DEFAULT_STRATEGY = STRATEGY_BIN

DEFAULT_BIN_DIR = Path(__file__).resolve().parent / "bin"


def select_strategy(
    strategy: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> str:
    if strategy is None:
        env = os.environ if environ is None else environ
        strategy = env.get(STRATEGY_ENV_VAR) or DEFAULT_STRATEGY
    if strategy not in STRATEGIES:
        raise ConfigurationError(
            f"Unknown launch strategy {strategy!r}. Expected one of: {', '.join(STRATEGIES)}",
            key=STRATEGY_ENV_VAR,
        )
    return strategy


def _resolve_from_bin_dir(target: PlatformDescriptor, bin_dir: Path, product: str) -> Path:
    candidate = bin_dir / suffixed_binary_name(target, product)
    if not candidate.is_file():
        raise BinaryNotFoundError(target.name, str(candidate))
    return candidate


def _resolve_from_package(
    target: PlatformDescriptor, packages_dir: Optional[Path], product: str
) -> Path:
    name = package_name(target, product)
    binary = plain_binary_name(target, product)

    if packages_dir is not None:
        candidate = packages_dir / name / "bin" / binary
        if candidate.is_file():
            return candidate

    try:
        spec = importlib.util.find_spec(module_name(target, product))
    except (ImportError, ValueError):
        spec = None
    if spec is None or not spec.submodule_search_locations:
        searched = f" (searched {packages_dir / name})" if packages_dir is not None else ""
        raise BinaryNotFoundError(
            target.name,
            f"package '{name}'{searched}; ensure the optional dependency '{name}' is installed",
        )

    for location in spec.submodule_search_locations:
        candidate = Path(location) / "bin" / binary
        if candidate.is_file():
            return candidate
    raise BinaryNotFoundError(target.name, f"package '{name}' has no bin/{binary}")


def resolve_executable(
    target: Optional[PlatformDescriptor] = None,
    *,
    strategy: Optional[str] = None,
    bin_dir: Optional[Path] = None,
    packages_dir: Optional[Path] = None,
    product: str = PRODUCT_NAME,
    environ: Optional[Mapping[str, str]] = None,
) -> Path:
    """Find the prebuilt binary for a platform.

    Args:
        target: Platform to resolve for. Defaults to the running host.
        strategy: ``bin`` or ``package``. Defaults to $CORALIZER_LAUNCH_STRATEGY,
            then ``bin``.
        bin_dir: Directory searched by the ``bin`` strategy. Defaults to
            $CORALIZER_BIN_DIR, then DEFAULT_BIN_DIR.
        packages_dir: Directory of per-platform packages searched first by the
            ``package`` strategy. Defaults to $CORALIZER_PACKAGES_DIR.
        product: Product name used to derive file and package names.
        environ: Environment to read the overrides from (default os.environ).

    Raises:
        BinaryNotFoundError: if no binary exists where the strategy looked.
        ConfigurationError: for an unknown strategy.
    """
    env = os.environ if environ is None else environ
    target = target if target is not None else host_platform()
    strategy = select_strategy(strategy, env)

    if strategy == STRATEGY_PACKAGE:
        if packages_dir is None and env.get(PACKAGES_DIR_ENV_VAR):
            packages_dir = Path(env[PACKAGES_DIR_ENV_VAR])
        return _resolve_from_package(target, packages_dir, product)

    if bin_dir is None:
        bin_dir = Path(env[BIN_DIR_ENV_VAR]) if env.get(BIN_DIR_ENV_VAR) else DEFAULT_BIN_DIR
    return _resolve_from_bin_dir(target, bin_dir, product)


@contextmanager
def _interrupts_left_to_child() -> Iterator[None]:
    """Ignore SIGINT in the launcher while the child runs.

    Ctrl-C reaches the whole foreground process group; the child decides what
    it means and the launcher reports whatever status it exits with.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return
    previous = signal.signal(signal.SIGINT, signal.SIG_IGN)
    try:
        yield
    finally:
        if previous is not None:
            signal.signal(signal.SIGINT, previous)


def run_executable(executable: Path, args: Sequence[str]) -> int:
    """Run ``executable`` with inherited stdio and return its exit status.

    A child killed by a signal reports ``128 + signum``, as a shell would.
    """
    try:
        child = subprocess.Popen([str(executable), *args])
    except OSError as e:
        raise LaunchError(executable, str(e)) from e

    # Installed after the spawn so the child keeps the default SIGINT action.
    with _interrupts_left_to_child():
        returncode = child.wait()

    if returncode < 0:
        return 128 - returncode
    return returncode


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    try:
        executable = resolve_executable()
        return run_executable(executable, args)
    except CoralizerDistError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
