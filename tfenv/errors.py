"""Exception hierarchy for tfenv.

Every failure raised by the resolver, catalog, locator, installer or
executor derives from :class:`TfenvError`. Components raise and never exit;
only :func:`tfenv.cli.main` converts an error into a message and exit code.
"""

from __future__ import annotations

from enum import Enum


class InstallStage(str, Enum):
    """Stages of the installer pipeline, in order."""

    FETCHING = "fetching"
    VERIFYING = "verifying"
    EXTRACTING = "extracting"
    PLACING = "placing"
    DONE = "done"


class TfenvError(Exception):
    """Base exception with user-facing remediation text."""

    exit_code = 1
    retryable = False

    def __init__(self, message: str, hint: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint


class ConfigError(TfenvError):
    """Invalid configuration value."""


# Resolution


class ResolutionError(TfenvError):
    exit_code = 3


class VersionNotFoundError(ResolutionError):
    """No version source exists."""


class InvalidVersionError(ResolutionError):
    """A version string could not be parsed."""


class InvalidVersionFileError(InvalidVersionError):
    """A version source exists but is empty or malformed."""

    def __init__(self, source: str, content: str = "") -> None:
        if content:
            message = f"Invalid version {content!r} in {source}"
        else:
            message = f"Version file {source} is empty"
        super().__init__(
            message,
            hint="it must contain a version like 1.6.0 or a keyword such as latest",
        )
        self.source = source
        self.content = content


class MissingConstraintError(ResolutionError):
    """A heuristic spec needs a required_version constraint that is absent."""


class NoMatchingVersionError(ResolutionError):
    """No candidate version satisfies the requested spec."""


# Remote catalog


class CatalogError(TfenvError):
    exit_code = 4


class CatalogUnavailableError(CatalogError):
    retryable = True


class CatalogParseError(CatalogError):
    pass


# Asset locator


class AssetError(TfenvError):
    exit_code = 8


class UnsupportedPlatformError(AssetError):
    def __init__(self, product: str, os_name: str, arch: str) -> None:
        super().__init__(f"{product} does not publish builds for {os_name}/{arch}")
        self.os_name = os_name
        self.arch = arch


# Installer


class InstallError(TfenvError):
    stage = InstallStage.FETCHING


class DownloadFailedError(InstallError):
    exit_code = 4
    retryable = True


class ChecksumMismatchError(InstallError):
    exit_code = 5
    stage = InstallStage.VERIFYING

    def __init__(self, filename: str, expected: str | None, actual: str) -> None:
        if expected is None:
            message = f"No checksum entry for {filename} in the checksum manifest"
        else:
            message = f"SHA256 mismatch for {filename}: expected {expected}, got {actual}"
        super().__init__(message)
        self.filename = filename
        self.expected = expected
        self.actual = actual


class SignatureVerificationError(InstallError):
    exit_code = 5
    stage = InstallStage.VERIFYING


class ExtractionError(InstallError):
    """Error during extraction process."""

    exit_code = 7
    stage = InstallStage.EXTRACTING


class PlacementError(InstallError):
    exit_code = 7
    stage = InstallStage.PLACING


# Executor


class ExecError(TfenvError):
    exit_code = 6


class NotInstalledError(ExecError):
    def __init__(self, product: str, version: str) -> None:
        super().__init__(
            f"{product} {version} is not installed",
            hint=f"run 'tfenv install {version}'",
        )
        self.product = product
        self.version = version
