"""Tests for tfenv.assets."""

from __future__ import annotations

import pytest

from tfenv.assets import Asset, locate
from tfenv.config import Product
from tfenv.errors import UnsupportedPlatformError


def test_terraform_asset() -> None:
    asset = locate(Product.TERRAFORM, "1.6.0", "linux", "amd64")
    base = "https://releases.hashicorp.com/terraform/1.6.0/"
    assert asset == Asset(
        url=base + "terraform_1.6.0_linux_amd64.zip",
        checksum_url=base + "terraform_1.6.0_SHA256SUMS",
        signature_url=base + "terraform_1.6.0_SHA256SUMS.sig",
        filename="terraform_1.6.0_linux_amd64.zip",
    )


def test_opentofu_asset() -> None:
    asset = locate(Product.OPENTOFU, "1.8.2", "darwin", "arm64")
    base = "https://github.com/opentofu/opentofu/releases/download/v1.8.2/"
    assert asset.filename == "tofu_1.8.2_darwin_arm64.zip"
    assert asset.url == base + "tofu_1.8.2_darwin_arm64.zip"
    assert asset.checksum_url == base + "tofu_1.8.2_SHA256SUMS"
    assert asset.signature_url == base + "tofu_1.8.2_SHA256SUMS.gpgsig"


def test_remote_without_trailing_slash() -> None:
    asset = locate(Product.TERRAFORM, "1.5.7", "linux", "arm64", remote="https://mirror.local/tf")
    assert asset.url == "https://mirror.local/tf/1.5.7/terraform_1.5.7_linux_arm64.zip"


def test_locate_is_deterministic() -> None:
    assert locate(Product.TERRAFORM, "1.5.7", "windows", "amd64") == locate(
        Product.TERRAFORM,
        "1.5.7",
        "windows",
        "amd64",
    )


@pytest.mark.parametrize(
    ("product", "os_name", "arch"),
    [
        (Product.TERRAFORM, "windows", "arm"),
        (Product.TERRAFORM, "plan9", "amd64"),
        (Product.TERRAFORM, "darwin", "386"),
        (Product.OPENTOFU, "solaris", "arm64"),
    ],
)
def test_unsupported_platform(product: Product, os_name: str, arch: str) -> None:
    with pytest.raises(UnsupportedPlatformError) as exc_info:
        locate(product, "1.6.0", os_name, arch)
    assert not exc_info.value.retryable
    assert f"{os_name}/{arch}" in exc_info.value.message
