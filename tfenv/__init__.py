"""tfenv - Terraform Version Manager.

Resolves which Terraform (or OpenTofu) version a project requires, installs
it after verifying its checksum and signature, and runs it in place of a
globally installed binary.
"""

from __future__ import annotations

__version__ = "0.1.0"

from . import assets, catalog, config, download, errors, executor, extract, utils, version
from .assets import Asset, locate
from .catalog import list_versions
from .cli import main
from .config import Product, TfenvConfig
from .download import install, installed_versions
from .executor import active_version, binary_path, exec_version, use_version
from .utils import current_platform, setup_logging
from .version import VersionSpec, resolve, select_version

__all__ = [
    "Asset",
    "Product",
    "TfenvConfig",
    "VersionSpec",
    "active_version",
    "assets",
    "binary_path",
    "catalog",
    "config",
    "current_platform",
    "download",
    "errors",
    "exec_version",
    "executor",
    "extract",
    "install",
    "installed_versions",
    "list_versions",
    "locate",
    "main",
    "resolve",
    "select_version",
    "setup_logging",
    "use_version",
    "utils",
    "version",
]
