"""Download, verify and install product versions.

An install runs through the stages in :class:`~tfenv.errors.InstallStage`:
the archive and its checksum manifest and signature are fetched into a
temporary directory, verified, extracted there, and only then is the binary
moved into ``versions/<version>/``. A failure in any stage leaves already
installed versions untouched and never leaves a partial binary in place.
"""

from __future__ import annotations

import errno
import logging
import os
import shutil
import subprocess
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

import requests

from .assets import Asset, locate
from .errors import (
    ChecksumMismatchError,
    DownloadFailedError,
    PlacementError,
    SignatureVerificationError,
)
from .extract import extract_binary
from .utils import console, current_platform, download_file, sha256sum
from .version import is_semver, sort_versions

if TYPE_CHECKING:
    from .config import Product, TfenvConfig

logger = logging.getLogger(__name__)


def installed_binary(config: TfenvConfig, product: Product, version: str) -> Path:
    """Path at which ``version`` of ``product`` is installed."""
    return config.versions_dir / version / product.binary_name


def installed_versions(config: TfenvConfig, product: Product) -> list[str]:
    """Versions of ``product`` present in the version store, highest first."""
    if not config.versions_dir.is_dir():
        return []
    versions = [
        entry.name
        for entry in config.versions_dir.iterdir()
        if is_semver(entry.name) and (entry / product.binary_name).is_file()
    ]
    return sort_versions(versions)


def _download(url: str, destination: Path, config: TfenvConfig) -> Path:
    try:
        return download_file(url, destination, config.timeout)
    except requests.Timeout as e:
        msg = f"Timed out after {config.timeout}s downloading {url}"
        raise DownloadFailedError(msg) from e
    except requests.RequestException as e:
        msg = f"Failed to download {url}: {e}"
        raise DownloadFailedError(msg) from e
    except OSError as e:
        msg = f"Failed to write {destination}: {e}"
        raise DownloadFailedError(msg) from e


def _download_optional(url: str | None, destination: Path, config: TfenvConfig) -> Path | None:
    """Download a verification artifact, returning None when it is unavailable."""
    if url is None:
        return None
    try:
        return _download(url, destination, config)
    except DownloadFailedError as e:
        logger.debug("Optional artifact unavailable: %s", e)
        return None


def _verification_warning(message: str, config: TfenvConfig) -> None:
    """Warn about skipped verification, or fail when strict mode is on."""
    if config.strict_verification:
        raise SignatureVerificationError(message, hint="strict verification is enabled")
    console.print(f"⚠️ [yellow]{message}[/yellow]")


def parse_checksums(manifest: str) -> dict[str, str]:
    """Map filenames to digests from a ``SHA256SUMS`` manifest."""
    checksums = {}
    for line in manifest.splitlines():
        parts = line.split()
        if len(parts) >= 2:  # noqa: PLR2004
            checksums[parts[1].lstrip("*")] = parts[0].lower()
    return checksums


def verify_checksum(archive_path: Path, filename: str, manifest: str) -> str:
    """Check the archive's SHA-256 against its manifest entry."""
    actual = sha256sum(archive_path)
    expected = parse_checksums(manifest).get(filename)
    if expected != actual:
        raise ChecksumMismatchError(filename, expected, actual)
    return actual


def verify_signature(signature_path: Path, manifest_path: Path, keyring: Path) -> None:
    """Verify a detached signature of the manifest with gpg in an isolated home."""
    gpg = shutil.which("gpg")
    if gpg is None:
        msg = "gpg not found in PATH"
        raise SignatureVerificationError(msg)
    if not keyring.is_file():
        msg = f"No signing keys at {keyring}"
        raise SignatureVerificationError(msg)

    with tempfile.TemporaryDirectory(prefix="tfenv-gpg-") as gpg_home:
        base = [gpg, "--batch", "--quiet", "--homedir", gpg_home]
        imported = subprocess.run(  # noqa: S603
            [*base, "--import", str(keyring)],
            capture_output=True,
            text=True,
            check=False,
        )
        if imported.returncode != 0:
            msg = f"gpg could not import {keyring}: {imported.stderr.strip()}"
            raise SignatureVerificationError(msg)
        verified = subprocess.run(  # noqa: S603
            [*base, "--verify", str(signature_path), str(manifest_path)],
            capture_output=True,
            text=True,
            check=False,
        )
        if verified.returncode != 0:
            msg = f"Signature check of {manifest_path.name} failed: {verified.stderr.strip()}"
            raise SignatureVerificationError(msg)


def _verify(
    product: Product,
    asset: Asset,
    archive: Path,
    tmp_dir: Path,
    config: TfenvConfig,
) -> None:
    manifest_path = _download_optional(asset.checksum_url, tmp_dir / "SHA256SUMS", config)
    if manifest_path is None:
        msg = f"Checksum manifest for {asset.filename} is unavailable"
        if product.checksum_required or config.strict_verification:
            raise DownloadFailedError(msg)
        console.print(f"⚠️ [yellow]{msg}, skipping verification[/yellow]")
        return

    # Always fatal once a manifest was retrieved, whatever the product
    verify_checksum(archive, asset.filename, manifest_path.read_text())
    console.print(f"✅ [green]Checksum verified for {asset.filename}[/green]")

    keyring = config.keyring_path(product)
    if not keyring.is_file() and not config.strict_verification:
        logger.debug("No signing keys at %s, skipping signature check", keyring)
        return
    signature_path = _download_optional(asset.signature_url, tmp_dir / "SHA256SUMS.sig", config)
    if signature_path is None:
        _verification_warning(f"Signature for {asset.filename} is unavailable", config)
        return
    try:
        verify_signature(signature_path, manifest_path, keyring)
    except SignatureVerificationError as e:
        _verification_warning(f"Signature not verified: {e.message}", config)
        return
    console.print("✅ [green]Signature verified[/green]")


def place_binary(source: Path, target: Path) -> Path:
    """Atomically move ``source`` to ``target``.

    Falls back to copying into a temporary file beside ``target`` and
    renaming it when ``source`` is on another filesystem.
    """
    if target.is_file():
        logger.debug("%s appeared during install, keeping it", target)
        return target
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        try:
            os.replace(source, target)
        except OSError as e:
            if e.errno != errno.EXDEV:
                raise
            fd, staging = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
            os.close(fd)
            try:
                shutil.copy2(source, staging)
                os.replace(staging, target)
            except OSError:
                Path(staging).unlink(missing_ok=True)
                raise
    except OSError as e:
        msg = f"Failed to place binary at {target}: {e}"
        raise PlacementError(msg) from e
    return target


def install(
    product: Product,
    version: str,
    config: TfenvConfig,
    platform: tuple[str, str] | None = None,
) -> Path:
    """Install ``version`` of ``product``; a no-op if it is already installed."""
    target = installed_binary(config, product, version)
    if target.is_file():
        console.print(f"✅ [green]{product.value} {version} is already installed[/green]")
        return target

    os_name, arch = platform or current_platform()
    asset = locate(product, version, os_name, arch, config.download_base(product))

    with tempfile.TemporaryDirectory(prefix="tfenv-") as tmp:
        tmp_dir = Path(tmp)
        archive = _download(asset.url, tmp_dir / asset.filename, config)
        _verify(product, asset, archive, tmp_dir, config)
        console.print(f"📦 [blue]Extracting {asset.filename}[/blue]")
        extracted = extract_binary(archive, product.binary_name, tmp_dir / "extracted")
        place_binary(extracted, target)

    console.print(f"✅ [green]Installed {product.value} {version} to {target.parent}[/green]")
    return target
