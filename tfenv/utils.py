"""Utility functions for tfenv."""

from __future__ import annotations

import hashlib
import logging
import platform
import sys
from pathlib import Path

import requests
from rich.console import Console
from rich.logging import RichHandler

# Diagnostics go to stderr so they never mix with the managed tool's output
console = Console(stderr=True)
logger = logging.getLogger(__name__)

_OS_MAP = {
    "darwin": "darwin",
    "linux": "linux",
    "win32": "windows",
    "cygwin": "windows",
    "freebsd": "freebsd",
    "openbsd": "openbsd",
    "sunos": "solaris",
}

_ARCH_MAP = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "arm64": "arm64",
    "aarch64": "arm64",
    "i386": "386",
    "i686": "386",
    "x86": "386",
    "armv7l": "arm",
    "armv6l": "arm",
}


def setup_logging(verbose: bool = False) -> None:  # noqa: FBT001, FBT002
    """Configure logging level based on verbosity."""
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False, show_time=False)],
        force=True,
    )


def current_platform() -> tuple[str, str]:
    """Detect the current platform and architecture, in release naming."""
    system = sys.platform
    for prefix, name in _OS_MAP.items():
        if system.startswith(prefix):
            os_name = name
            break
    else:
        os_name = system

    machine = platform.machine().lower()
    arch = _ARCH_MAP.get(machine, machine)
    return os_name, arch


def fetch(url: str, timeout: float, **kwargs) -> requests.Response:
    """GET a URL and raise for non-2xx statuses."""
    logger.debug("GET %s", url)
    response = requests.get(url, timeout=timeout, **kwargs)
    response.raise_for_status()
    return response


def download_file(url: str, destination: Path, timeout: float) -> Path:
    """Stream a URL to a destination path."""
    console.print(f"📥 [blue]Downloading {url}[/blue]")
    with requests.get(url, stream=True, timeout=timeout) as response:
        response.raise_for_status()
        with open(destination, "wb") as f:
            for chunk in response.iter_content(chunk_size=8192):
                f.write(chunk)
    return destination


def sha256sum(path: Path) -> str:
    """Hex SHA-256 digest of a file."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            digest.update(chunk)
    return digest.hexdigest()
