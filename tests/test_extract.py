"""Tests for tfenv.extract."""

from __future__ import annotations

import io
import os
import zipfile
from pathlib import Path
from typing import Callable

import pytest

from tfenv.errors import ExtractionError
from tfenv.extract import ArchiveMember, binary_chooser, extract_binary, is_exec


@pytest.mark.parametrize(
    ("filename", "mode", "expected"),
    [
        ("terraform", 0o755, True),
        ("terraform", 0o644, True),
        ("terraform.exe", 0o644, True),
        ("LICENSE.txt", 0o755, False),
        ("README.md", 0o644, False),
        ("CHANGELOG.md", 0o644, False),
    ],
)
def test_is_exec(filename: str, mode: int, expected: bool) -> None:  # noqa: FBT001
    assert is_exec(filename, mode) is expected


@pytest.mark.parametrize(
    ("name", "is_dir", "expected"),
    [
        ("terraform", False, True),
        ("terraform.exe", False, True),
        ("bin/terraform", False, True),
        ("terraform/", True, False),
        ("terraform-provider-null", False, False),
        ("LICENSE.txt", False, False),
    ],
)
def test_binary_chooser(name: str, is_dir: bool, expected: bool) -> None:  # noqa: FBT001
    member = ArchiveMember(name=name, is_dir=is_dir, mode=0o755)
    assert binary_chooser(member, "terraform") is expected


def test_extract_from_zip(tmp_path: Path, create_dummy_archive: Callable) -> None:
    archive = create_dummy_archive(
        dest_path=tmp_path / "terraform_1.6.0_linux_amd64.zip",
        binary_names=["terraform", "LICENSE.txt"],
    )
    dest = tmp_path / "out"

    path = extract_binary(archive, "terraform", dest)

    assert path == dest / "terraform"
    assert path.read_text() == "#!/bin/sh\necho terraform\n"
    assert os.access(path, os.X_OK)
    assert not (dest / "LICENSE.txt").exists()


def test_zip_without_mode_bits_is_made_executable(tmp_path: Path) -> None:
    archive = tmp_path / "terraform.zip"
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, mode="w") as zip_file:
        zip_file.writestr("terraform", b"binary")
    archive.write_bytes(buffer.getvalue())

    path = extract_binary(archive, "terraform", tmp_path / "out")
    assert os.access(path, os.X_OK)


def test_binary_missing_from_archive(tmp_path: Path, create_dummy_archive: Callable) -> None:
    archive = create_dummy_archive(dest_path=tmp_path / "a.zip", binary_names="LICENSE.txt")
    with pytest.raises(ExtractionError, match="terraform not found"):
        extract_binary(archive, "terraform", tmp_path / "out")
    assert not (tmp_path / "out").exists()


def test_ambiguous_archive(tmp_path: Path, create_dummy_archive: Callable) -> None:
    archive = create_dummy_archive(
        dest_path=tmp_path / "a.zip",
        binary_names=["terraform", "terraform.exe"],
    )
    with pytest.raises(ExtractionError, match="2 candidates"):
        extract_binary(archive, "terraform", tmp_path / "out")


def test_corrupt_zip(tmp_path: Path) -> None:
    archive = tmp_path / "terraform_1.6.0_linux_amd64.zip"
    archive.write_bytes(b"this is not a zip file")
    with pytest.raises(ExtractionError, match="Failed to read archive"):
        extract_binary(archive, "terraform", tmp_path / "out")


def test_unsupported_format(tmp_path: Path) -> None:
    archive = tmp_path / "terraform_1.6.0_linux_amd64.tar.gz"
    archive.write_bytes(b"\x1f\x8b")
    with pytest.raises(ExtractionError, match="Unsupported archive format"):
        extract_binary(archive, "terraform", tmp_path / "out")
