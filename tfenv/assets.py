"""Download locations for release archives and their verification artifacts."""

from __future__ import annotations

from typing import NamedTuple

from .config import Product
from .errors import UnsupportedPlatformError

_COMMON_PLATFORMS = {
    "darwin": {"amd64", "arm64"},
    "linux": {"386", "amd64", "arm", "arm64"},
    "windows": {"386", "amd64"},
    "freebsd": {"386", "amd64", "arm"},
    "openbsd": {"386", "amd64"},
    "solaris": {"amd64"},
}

SUPPORTED_PLATFORMS: dict[Product, dict[str, set[str]]] = {
    Product.TERRAFORM: _COMMON_PLATFORMS,
    Product.OPENTOFU: {**_COMMON_PLATFORMS, "windows": {"386", "amd64", "arm64"}},
}


class Asset(NamedTuple):
    """A release archive and its verification artifacts for one platform."""

    url: str
    checksum_url: str | None
    signature_url: str | None
    filename: str


def archive_name(product: Product, version: str, os_name: str, arch: str) -> str:
    return f"{product.archive_prefix}_{version}_{os_name}_{arch}.zip"


def checksum_name(product: Product, version: str) -> str:
    return f"{product.archive_prefix}_{version}_SHA256SUMS"


def _release_base(product: Product, version: str, remote: str) -> str:
    base = remote if remote.endswith("/") else f"{remote}/"
    if product is Product.TERRAFORM:
        return f"{base}{version}/"
    # GitHub-style download paths are keyed by the tag
    return f"{base}v{version}/"


def locate(
    product: Product,
    version: str,
    os_name: str,
    arch: str,
    remote: str | None = None,
) -> Asset:
    """Compute the URLs for ``version`` of ``product`` on ``os_name``/``arch``."""
    if arch not in SUPPORTED_PLATFORMS[product].get(os_name, set()):
        raise UnsupportedPlatformError(product.value, os_name, arch)

    base = _release_base(product, version, remote or product.default_remote)
    filename = archive_name(product, version, os_name, arch)
    sums = checksum_name(product, version)
    return Asset(
        url=base + filename,
        checksum_url=base + sums,
        signature_url=base + sums + product.signature_suffix,
        filename=filename,
    )
