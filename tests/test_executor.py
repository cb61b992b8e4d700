"""Tests for tfenv.executor."""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

from conftest import FakeReleases
from tfenv import executor
from tfenv.config import Product, TfenvConfig
from tfenv.errors import NotInstalledError


def _install_script(config: TfenvConfig, version: str, body: str) -> Path:
    path = config.versions_dir / version / Product.TERRAFORM.binary_name
    path.parent.mkdir(parents=True)
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(0o755)
    return path


def test_not_installed_does_not_download(config: TfenvConfig, fake_releases: FakeReleases) -> None:
    with pytest.raises(NotInstalledError) as exc_info:
        executor.exec_version(config, Product.TERRAFORM, "1.6.0", ["plan"])
    assert exc_info.value.version == "1.6.0"
    assert exc_info.value.exit_code == 6
    assert fake_releases.requested == []
    assert not config.versions_dir.exists()


def test_binary_path(config: TfenvConfig) -> None:
    installed = _install_script(config, "1.5.7", "exit 0")
    assert executor.binary_path(config, Product.TERRAFORM, "1.5.7") == installed
    with pytest.raises(NotInstalledError):
        executor.binary_path(config, Product.OPENTOFU, "1.5.7")


@pytest.mark.skipif(sys.platform == "win32", reason="uses a shell script as the binary")
def test_exec_forwards_arguments_and_exit_status(config: TfenvConfig, tmp_path: Path) -> None:
    out = tmp_path / "args.txt"
    _install_script(config, "1.6.0", f'echo "$@" > {out}\nexit 3')

    status = executor.exec_version(config, Product.TERRAFORM, "1.6.0", ["plan", "-out=tfplan"])

    assert status == 3
    assert out.read_text().strip() == "plan -out=tfplan"


@pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX signals")
def test_exec_waits_for_child_after_interrupt(config: TfenvConfig, tmp_path: Path) -> None:
    marker = tmp_path / "finished"
    # Interrupts tfenv, then finishes its own shutdown
    _install_script(config, "1.6.0", f"sleep 1\nkill -INT $PPID\nsleep 1\ntouch {marker}\nexit 3")

    status = executor.exec_version(config, Product.TERRAFORM, "1.6.0", ["apply"])

    assert status == 3
    assert marker.exists()


@pytest.mark.skipif(sys.platform == "win32", reason="uses POSIX signals")
def test_exec_killed_by_signal(config: TfenvConfig) -> None:
    _install_script(config, "1.6.0", "kill -TERM $$")
    assert executor.exec_version(config, Product.TERRAFORM, "1.6.0", []) == 143


@pytest.mark.parametrize(("returncode", "expected"), [(0, 0), (3, 3), (-2, 130), (-15, 143)])
def test_exit_status(returncode: int, expected: int) -> None:
    assert executor.exit_status(returncode) == expected


def test_use_version_writes_pointer(config: TfenvConfig) -> None:
    _install_script(config, "1.5.7", "exit 0")

    path = executor.use_version(config, Product.TERRAFORM, "1.5.7")

    assert path == config.config_dir / "version"
    assert path.read_text() == "1.5.7\n"
    assert executor.active_version(config) == "1.5.7"


def test_use_version_requires_install(config: TfenvConfig) -> None:
    with pytest.raises(NotInstalledError):
        executor.use_version(config, Product.TERRAFORM, "1.5.7")
    assert executor.active_version(config) is None


def test_use_keeps_other_versions(config: TfenvConfig) -> None:
    _install_script(config, "1.5.7", "exit 0")
    _install_script(config, "1.6.0", "exit 0")
    executor.use_version(config, Product.TERRAFORM, "1.5.7")
    executor.use_version(config, Product.TERRAFORM, "1.6.0")
    assert (config.versions_dir / "1.5.7" / Product.TERRAFORM.binary_name).is_file()
    assert executor.active_version(config) == "1.6.0"
