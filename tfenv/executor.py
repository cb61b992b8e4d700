"""Run an installed version and manage the active-version pointer."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import TYPE_CHECKING, Sequence

from .download import installed_binary
from .errors import NotInstalledError, TfenvError

if TYPE_CHECKING:
    from .config import Product, TfenvConfig

logger = logging.getLogger(__name__)


def binary_path(config: TfenvConfig, product: Product, version: str) -> Path:
    """Locate the installed binary, without installing anything."""
    path = installed_binary(config, product, version)
    if not path.is_file():
        raise NotInstalledError(product.value, version)
    return path


def exit_status(returncode: int) -> int:
    """Map a child return code to a shell exit status, 128+N for signal N."""
    if returncode < 0:
        return 128 - returncode
    return returncode


def exec_version(
    config: TfenvConfig,
    product: Product,
    version: str,
    args: Sequence[str],
) -> int:
    """Run the installed binary with ``args`` and return its exit status.

    Standard streams and the environment are inherited from this process.
    """
    path = binary_path(config, product, version)
    logger.debug("Executing %s %s", path, " ".join(args))
    with subprocess.Popen([str(path), *args]) as process:  # noqa: S603
        while True:
            try:
                returncode = process.wait()
                break
            except KeyboardInterrupt:
                # Ctrl-C reaches the whole process group; the child owns the shutdown
                logger.debug("Interrupted, waiting for %s to exit", path)
    return exit_status(returncode)


def active_version(config: TfenvConfig) -> str | None:
    """Read the active-version pointer, if set."""
    try:
        content = config.version_file.read_text().strip()
    except FileNotFoundError:
        return None
    return content or None


def use_version(config: TfenvConfig, product: Product, version: str) -> Path:
    """Point the active version at an installed ``version``."""
    binary_path(config, product, version)
    try:
        config.config_dir.mkdir(parents=True, exist_ok=True)
        config.version_file.write_text(f"{version}\n")
    except OSError as e:
        msg = f"Failed to write {config.version_file}: {e}"
        raise TfenvError(msg) from e
    return config.version_file
