"""Configuration management for tfenv."""

from __future__ import annotations

import logging
import os
import sys
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

import yaml

from .errors import ConfigError
from .utils import console

logger = logging.getLogger(__name__)

CONFIG_FILENAME = "config.yaml"
DEFAULT_TIMEOUT = 30.0
_TRUTHY = {"1", "true", "yes", "on"}


class Product(str, Enum):
    """A tool whose versions tfenv manages."""

    TERRAFORM = "terraform"
    OPENTOFU = "opentofu"

    @property
    def archive_prefix(self) -> str:
        return "terraform" if self is Product.TERRAFORM else "tofu"

    @property
    def binary_name(self) -> str:
        name = self.archive_prefix
        if sys.platform == "win32":
            name += ".exe"
        return name

    @property
    def default_remote(self) -> str:
        if self is Product.TERRAFORM:
            return "https://releases.hashicorp.com/terraform/"
        return "https://github.com/opentofu/opentofu/releases/download/"

    @property
    def default_index_url(self) -> str:
        """Release index (Terraform) or release API (OpenTofu)."""
        if self is Product.TERRAFORM:
            return self.default_remote
        return "https://api.github.com/repos/opentofu/opentofu/releases"

    @property
    def signature_suffix(self) -> str:
        return ".sig" if self is Product.TERRAFORM else ".gpgsig"

    @property
    def checksum_required(self) -> bool:
        """Terraform publishes SHA256SUMS for every release; OpenTofu is best-effort."""
        return self is Product.TERRAFORM

    @classmethod
    def parse(cls, value: str) -> Product:
        normalized = value.strip().lower()
        if normalized == "tofu":
            normalized = cls.OPENTOFU.value
        try:
            return cls(normalized)
        except ValueError:
            msg = f"Unknown product {value!r}"
            raise ConfigError(msg, hint="expected 'terraform' or 'opentofu'") from None


def default_config_dir(env: Mapping[str, str]) -> Path:
    for var in ("TFENV_CONFIG_DIR", "TFENV_ROOT"):
        if env.get(var):
            return Path(os.path.expanduser(env[var]))
    return Path(os.path.expanduser("~/.tfenv"))


@dataclass
class TfenvConfig:
    """Configuration for tfenv, threaded explicitly through every component."""

    config_dir: Path = field(
        default_factory=lambda: Path(os.path.expanduser("~/.tfenv")),
    )
    product: Product = Product.TERRAFORM
    remote: str | None = None
    api_url: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    strict_verification: bool = False
    keyring: Path | None = None

    @property
    def versions_dir(self) -> Path:
        return self.config_dir / "versions"

    @property
    def version_file(self) -> Path:
        """The active-version pointer written by ``use``."""
        return self.config_dir / "version"

    def download_base(self, product: Product | None = None) -> str:
        product = product or self.product
        return self.remote or product.default_remote

    def index_url(self, product: Product | None = None) -> str:
        """Release index (Terraform) or release API (OpenTofu) for ``product``."""
        product = product or self.product
        if product is Product.TERRAFORM:
            return self.remote or product.default_index_url
        return self.api_url or product.default_index_url

    def keyring_path(self, product: Product | None = None) -> Path:
        if self.keyring is not None:
            return self.keyring
        product = product or self.product
        return self.config_dir / "share" / f"{product.value}-keys.pgp"

    @classmethod
    def load(
        cls,
        env: Mapping[str, str] | None = None,
        config_file: str | Path | None = None,
    ) -> TfenvConfig:
        """Build the configuration from defaults, the YAML file, then the environment."""
        if env is None:
            env = os.environ
        config_dir = default_config_dir(env)
        path = Path(config_file) if config_file else config_dir / CONFIG_FILENAME

        data: dict[str, Any] = {"config_dir": config_dir}
        data.update(_read_config_file(path))
        data.update(_read_environment(env))
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: dict[str, Any]) -> TfenvConfig:
        known = {f.name for f in fields(cls)}
        for key in sorted(set(data) - known):
            console.print(f"⚠️ [yellow]Ignoring unknown configuration key '{key}'[/yellow]")
        data = {k: v for k, v in data.items() if k in known}

        if isinstance(data.get("config_dir"), str):
            data["config_dir"] = Path(os.path.expanduser(data["config_dir"]))
        if isinstance(data.get("product"), str):
            data["product"] = Product.parse(data["product"])
        if isinstance(data.get("keyring"), str):
            data["keyring"] = Path(os.path.expanduser(data["keyring"]))
        if "strict_verification" in data:
            data["strict_verification"] = _as_bool(data["strict_verification"])
        if "timeout" in data:
            try:
                data["timeout"] = float(data["timeout"])
            except (TypeError, ValueError):
                msg = f"Invalid timeout {data['timeout']!r}"
                raise ConfigError(msg, hint="expected a number of seconds") from None
            if data["timeout"] <= 0:
                msg = "Timeout must be positive"
                raise ConfigError(msg)
        return cls(**data)


def _as_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUTHY


def _read_config_file(path: Path) -> dict[str, Any]:
    try:
        with open(path) as file:
            config_data = yaml.safe_load(file)
    except FileNotFoundError:
        logger.debug("No configuration file at %s", path)
        return {}
    except yaml.YAMLError:
        console.print(
            f"⚠️ [yellow]Invalid YAML in configuration file: {path}, using defaults[/yellow]",
        )
        return {}

    if config_data is None:
        return {}
    if not isinstance(config_data, dict):
        console.print(
            f"⚠️ [yellow]Configuration file {path} must contain a mapping, using defaults[/yellow]",
        )
        return {}
    logger.debug("Loaded configuration from %s", path)
    return config_data


def _read_environment(env: Mapping[str, str]) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if env.get("TFENV_CONFIG_DIR") or env.get("TFENV_ROOT"):
        overrides["config_dir"] = default_config_dir(env)
    if env.get("TFENV_PRODUCT"):
        overrides["product"] = env["TFENV_PRODUCT"]
    if env.get("TFENV_REMOTE"):
        overrides["remote"] = env["TFENV_REMOTE"]
    if env.get("TFENV_TIMEOUT"):
        overrides["timeout"] = env["TFENV_TIMEOUT"]
    if env.get("TFENV_STRICT_VERIFY"):
        overrides["strict_verification"] = env["TFENV_STRICT_VERIFY"]
    return overrides
