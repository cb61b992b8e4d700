"""Extract the product binary from a release archive."""

from __future__ import annotations

import io
import logging
import zipfile
from dataclasses import dataclass
from pathlib import Path

from .errors import ExtractionError

logger = logging.getLogger(__name__)


@dataclass
class ArchiveMember:
    """Information about a file in an archive."""

    name: str
    is_dir: bool
    mode: int

    @property
    def basename(self) -> str:
        return Path(self.name.rstrip("/")).name


def is_exec(filename: str, mode: int) -> bool:
    """Determine if a file is executable based on name and permissions."""
    if filename.endswith((".txt", ".md", ".1")):
        return False
    if mode & 0o111 != 0:
        return True
    return filename.endswith(".exe") or "." not in Path(filename).name


def binary_chooser(member: ArchiveMember, binary_name: str) -> bool:
    """Choose the archive member that is the product binary."""
    if member.is_dir:
        return False
    stem = binary_name.removesuffix(".exe")
    return member.basename in (stem, f"{stem}.exe")


def _write_file(data: bytes, path: Path, mode: int) -> None:
    """Write data to a file with specified permissions."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
    path.chmod(mode)


def _zip_members(data: bytes) -> list[tuple[ArchiveMember, bytes]]:
    members = []
    with zipfile.ZipFile(io.BytesIO(data)) as zip_file:
        for info in zip_file.infolist():
            is_dir = info.filename.endswith("/")
            mode = 0o644
            if info.external_attr > 0:
                mode = (info.external_attr >> 16) & 0o777 or 0o644
            member = ArchiveMember(name=info.filename, is_dir=is_dir, mode=mode)
            members.append((member, b"" if is_dir else zip_file.read(info.filename)))
    return members


def extract_binary(archive_path: Path, binary_name: str, dest_dir: Path) -> Path:
    """Extract ``binary_name`` from ``archive_path`` into ``dest_dir``.

    Only the binary is written; other files in the archive (licenses,
    readmes) are ignored.

    Returns:
        Path of the extracted, executable binary

    Raises:
        ExtractionError: If the archive is unreadable or has no such binary

    """
    name = archive_path.name
    try:
        data = archive_path.read_bytes()
        if name.endswith(".zip"):
            members = _zip_members(data)
        else:
            msg = f"Unsupported archive format: {name}"
            raise ExtractionError(msg)
    except (zipfile.BadZipFile, OSError) as e:
        msg = f"Failed to read archive {name}: {e}"
        raise ExtractionError(msg) from e

    logger.debug("Archive %s contains: %s", name, [m.name for m, _ in members])
    matches = [(m, content) for m, content in members if binary_chooser(m, binary_name)]
    if not matches:
        msg = f"{binary_name} not found inside {name}"
        raise ExtractionError(msg)
    if len(matches) > 1:
        msg = f"{len(matches)} candidates for {binary_name} found inside {name}"
        raise ExtractionError(msg)

    member, content = matches[0]
    destination = dest_dir / binary_name
    mode = member.mode | 0o755 if is_exec(member.name, member.mode) else member.mode
    try:
        _write_file(content, destination, mode)
    except OSError as e:
        msg = f"Failed to write {destination}: {e}"
        raise ExtractionError(msg) from e
    return destination
