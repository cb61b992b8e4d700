"""Configuration for pytest fixtures used in tfenv tests."""

from __future__ import annotations

import hashlib
import tempfile
import zipfile
from pathlib import Path
from typing import Callable

import pytest
import requests

from tfenv.config import Product, TfenvConfig

PLATFORM = ("linux", "amd64")


@pytest.fixture
def config(tmp_path: Path) -> TfenvConfig:
    """A configuration rooted in a temporary directory."""
    return TfenvConfig(config_dir=tmp_path / "tfenv-root")


@pytest.fixture
def create_dummy_archive() -> Callable:
    r"""Create an archive file with binary files for testing.

    Usage:
        archive_path = create_dummy_archive(
            dest_path=tmp_path / "terraform_1.6.0_linux_amd64.zip",
            binary_names=["terraform", "LICENSE.txt"],
            binary_content="#!/bin/sh\necho test"
        )
    """

    def _create_archive(
        dest_path: Path,
        binary_names: str | list[str],
        binary_content: str = "#!/bin/sh\necho terraform\n",
    ) -> Path:
        if isinstance(binary_names, str):
            binary_names = [binary_names]

        with tempfile.TemporaryDirectory() as tmp_dir:
            tmp_path = Path(tmp_dir)
            created_files = []
            for binary in binary_names:
                bin_file = tmp_path / binary
                bin_file.write_text(binary_content)
                bin_file.chmod(0o755)
                created_files.append(bin_file)

            with zipfile.ZipFile(dest_path, "w") as zipf:
                for file_path in created_files:
                    zipf.write(file_path, arcname=str(file_path.relative_to(tmp_path)))

            return dest_path

    return _create_archive


class FakeReleases:
    """Serves release artifacts from memory in place of HTTP downloads."""

    def __init__(self) -> None:
        self.files: dict[str, bytes] = {}
        self.requested: list[str] = []

    def add(self, url: str, content: bytes) -> None:
        self.files[url] = content

    def add_release(
        self,
        asset,
        archive: Path,
        manifest: str | None = None,
        signature: bytes | None = None,
    ) -> None:
        """Publish an archive with a correct manifest unless one is given."""
        data = archive.read_bytes()
        self.add(asset.url, data)
        if manifest is None:
            manifest = f"{hashlib.sha256(data).hexdigest()}  {asset.filename}\n"
        if manifest:
            self.add(asset.checksum_url, manifest.encode())
        if signature is not None:
            self.add(asset.signature_url, signature)

    def download_file(self, url: str, destination: Path, timeout: float) -> Path:  # noqa: ARG002
        self.requested.append(url)
        if url not in self.files:
            msg = f"404 Client Error: Not Found for url: {url}"
            raise requests.HTTPError(msg)
        Path(destination).write_bytes(self.files[url])
        return destination


@pytest.fixture
def fake_releases(monkeypatch: pytest.MonkeyPatch) -> FakeReleases:
    """Route installer downloads to an in-memory release store."""
    releases = FakeReleases()
    monkeypatch.setattr("tfenv.download.download_file", releases.download_file)
    return releases


@pytest.fixture
def terraform_archive(tmp_path: Path, create_dummy_archive: Callable) -> Path:
    """A Terraform 1.6.0 release archive for linux/amd64."""
    return create_dummy_archive(
        dest_path=tmp_path / "terraform_1.6.0_linux_amd64.zip",
        binary_names=Product.TERRAFORM.binary_name,
    )
