"""Version resolution for tfenv.

A requested version comes from, in order: an explicit argument, the
``TFENV_TERRAFORM_VERSION`` environment variable, a ``.terraform-version``
file found by walking up from the working directory, ``~/.terraform-version``
and finally the active-version pointer written by ``tfenv use``.

Heuristic requests (``latest``, ``latest-allowed``, ``min-required``) are
returned unresolved; :func:`select_version` turns them into a concrete
version against a list of candidates (the remote catalog or the locally
installed versions) so that resolution itself never touches the network.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping, NamedTuple

from packaging.version import InvalidVersion, Version

from .errors import (
    InvalidVersionError,
    InvalidVersionFileError,
    MissingConstraintError,
    NoMatchingVersionError,
    VersionNotFoundError,
)

logger = logging.getLogger(__name__)

VERSION_ENV_VAR = "TFENV_TERRAFORM_VERSION"
VERSION_FILENAME = ".terraform-version"

SEMVER_RE = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$",
)

_CLAUSE_RE = re.compile(
    r"^\s*(?P<op>~>|>=|<=|!=|=|>|<)?\s*v?(?P<version>\d+(?:\.\d+){0,2}(?:-[0-9A-Za-z.-]+)?)\s*$",
)
_REQUIRED_VERSION_RE = re.compile(r'["\']?required_version["\']?\s*[:=]\s*"(?P<spec>[^"]+)"')


class SpecKind(str, Enum):
    EXACT = "exact"
    LATEST = "latest"
    LATEST_ALLOWED = "latest-allowed"
    MIN_REQUIRED = "min-required"


@dataclass(frozen=True)
class VersionSpec:
    """A parsed version request and where it came from."""

    kind: SpecKind
    value: str | None = None
    source: str = "argument"

    @property
    def is_heuristic(self) -> bool:
        return self.kind is not SpecKind.EXACT

    def __str__(self) -> str:
        if self.kind is SpecKind.EXACT:
            return str(self.value)
        if self.kind is SpecKind.LATEST and self.value:
            return f"latest:{self.value}"
        return self.kind.value


def is_semver(text: str, include_prereleases: bool = True) -> bool:  # noqa: FBT001, FBT002
    """Check ``text`` against the strict semantic-version grammar."""
    match = SEMVER_RE.match(text)
    if not match:
        return False
    if not include_prereleases and (match.group(4) or match.group(5)):
        return False
    try:
        parsed = Version(text)
    except InvalidVersion:
        # Valid semver whose pre-release tag has no defined ordering here
        return False
    # A numeric tag like 1.0.0-1 would otherwise order as a post-release
    return not match.group(4) or parsed.is_prerelease


def sort_versions(versions: Iterable[str], reverse: bool = True) -> list[str]:  # noqa: FBT001, FBT002
    """Sort by semantic-version precedence, highest first by default."""
    return sorted(set(versions), key=Version, reverse=reverse)


def parse_spec(text: str, source: str = "argument") -> VersionSpec:
    """Parse a version request string."""
    value = text.strip()
    if value == "latest":
        return VersionSpec(SpecKind.LATEST, source=source)
    if value.startswith("latest:"):
        pattern = value[len("latest:") :]
        try:
            re.compile(pattern)
        except re.error as e:
            msg = f"Invalid regular expression in {value!r}: {e}"
            raise InvalidVersionError(msg) from e
        return VersionSpec(SpecKind.LATEST, pattern or None, source=source)
    if value == SpecKind.LATEST_ALLOWED.value:
        return VersionSpec(SpecKind.LATEST_ALLOWED, source=source)
    if value == SpecKind.MIN_REQUIRED.value:
        return VersionSpec(SpecKind.MIN_REQUIRED, source=source)

    version = value[1:] if value.startswith("v") else value
    if not is_semver(version):
        msg = f"Invalid version {text!r}"
        raise InvalidVersionError(
            msg,
            hint="expected x.y.z, latest, latest:<regex>, latest-allowed or min-required",
        )
    return VersionSpec(SpecKind.EXACT, version, source=source)


def _parse_source(text: str, source: str) -> VersionSpec:
    if not text.strip():
        raise InvalidVersionFileError(source)
    try:
        return parse_spec(text, source)
    except InvalidVersionError:
        raise InvalidVersionFileError(source, text.strip()) from None


def find_version_file(start: Path) -> Path | None:
    """Walk upward from ``start`` looking for a ``.terraform-version`` file."""
    start = start.resolve()
    for directory in (start, *start.parents):
        candidate = directory / VERSION_FILENAME
        if candidate.is_file():
            return candidate
    return None


def _read_version_file(path: Path) -> VersionSpec:
    logger.debug("Reading version from %s", path)
    return _parse_source(path.read_text(), str(path))


def resolve(
    explicit: str | None,
    cwd: Path,
    home: Path,
    env: Mapping[str, str],
    config_dir: Path | None = None,
) -> VersionSpec:
    """Determine the requested version spec from the first source that exists."""
    if explicit is not None:
        return parse_spec(explicit)

    if env.get(VERSION_ENV_VAR):
        return _parse_source(env[VERSION_ENV_VAR], VERSION_ENV_VAR)

    project_file = find_version_file(cwd)
    if project_file is not None:
        return _read_version_file(project_file)

    home_file = home / VERSION_FILENAME
    if home_file.is_file():
        return _read_version_file(home_file)

    if config_dir is not None:
        active = config_dir / "version"
        if active.is_file():
            return _read_version_file(active)

    msg = f"No version requested and no {VERSION_FILENAME} found"
    raise VersionNotFoundError(
        msg,
        hint=f"set {VERSION_ENV_VAR}, create {VERSION_FILENAME} or run 'tfenv use <version>'",
    )


class Clause(NamedTuple):
    op: str
    version: Version
    precision: int

    def allows(self, candidate: Version) -> bool:  # noqa: PLR0911
        if self.op == "=":
            return candidate == self.version
        if self.op == "!=":
            return candidate != self.version
        if self.op == ">":
            return candidate > self.version
        if self.op == ">=":
            return candidate >= self.version
        if self.op == "<":
            return candidate < self.version
        if self.op == "<=":
            return candidate <= self.version
        # ~> allows only the rightmost given component to increase
        major, minor, _ = self.version.release
        if self.precision >= 3:  # noqa: PLR2004
            upper = Version(f"{major}.{minor + 1}.0")
        else:
            upper = Version(f"{major + 1}.0.0")
        return self.version <= candidate < upper


@dataclass(frozen=True)
class VersionConstraint:
    """A ``required_version`` expression such as ``">= 1.5.0, < 2.0.0"``."""

    expression: str
    clauses: tuple[Clause, ...]
    source: str = ""

    @classmethod
    def parse(cls, expression: str, source: str = "") -> VersionConstraint:
        clauses = []
        for part in expression.split(","):
            match = _CLAUSE_RE.match(part)
            if not match:
                msg = f"Invalid version constraint {expression!r}"
                if source:
                    msg += f" in {source}"
                raise InvalidVersionError(msg)
            raw = match.group("version")
            core = raw.split("-", 1)[0]
            precision = core.count(".") + 1
            padded = core + ".0" * (3 - precision) + raw[len(core) :]
            try:
                version = Version(padded)
            except InvalidVersion:
                msg = f"Invalid version {raw!r} in constraint {expression!r}"
                if source:
                    msg += f" in {source}"
                raise InvalidVersionError(msg) from None
            clauses.append(Clause(match.group("op") or "=", version, precision))
        return cls(expression.strip(), tuple(clauses), source)

    def allows(self, version: str) -> bool:
        try:
            candidate = Version(version)
        except InvalidVersion:
            msg = f"Invalid version {version!r}"
            raise InvalidVersionError(msg) from None
        return all(clause.allows(candidate) for clause in self.clauses)

    def __str__(self) -> str:
        return self.expression


def read_required_version(cwd: Path) -> VersionConstraint | None:
    """Find the first ``required_version`` in ``*.tf``/``*.tf.json`` files in ``cwd``."""
    candidates = sorted([*cwd.glob("*.tf"), *cwd.glob("*.tf.json")])
    for path in candidates:
        if not path.is_file():
            continue
        for line in path.read_text(errors="replace").splitlines():
            stripped = line.strip()
            if stripped.startswith(("#", "//")):
                continue
            match = _REQUIRED_VERSION_RE.search(stripped)
            if match:
                logger.debug("Found required_version %r in %s", match.group("spec"), path)
                return VersionConstraint.parse(match.group("spec"), str(path))
    return None


def select_version(
    spec: VersionSpec,
    candidates: Iterable[str],
    constraint: VersionConstraint | None = None,
) -> str:
    """Pick a concrete version for ``spec`` out of ``candidates``."""
    if spec.kind is SpecKind.EXACT:
        return str(spec.value)

    ordered = sort_versions(candidates)
    if spec.kind is SpecKind.LATEST:
        if spec.value:
            pattern = re.compile(spec.value)
            ordered = [v for v in ordered if pattern.search(v)]
    elif spec.kind is SpecKind.LATEST_ALLOWED:
        if constraint is not None:
            ordered = [v for v in ordered if constraint.allows(v)]
    else:
        if constraint is None:
            msg = "min-required needs a required_version constraint"
            raise MissingConstraintError(
                msg,
                hint="add terraform { required_version = \"...\" } to your configuration",
            )
        ordered = [v for v in reversed(ordered) if constraint.allows(v)]

    if not ordered:
        detail = f" satisfying {constraint}" if constraint is not None else ""
        msg = f"No version matches {spec}{detail}"
        raise NoMatchingVersionError(msg)
    return ordered[0]
