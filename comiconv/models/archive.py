"""Archive-side data structures moved between pipeline stages."""

from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import List, Optional

from comiconv.models.base import ContainerFormat, EntryRole


@dataclass
class ArchiveEntry:
    """One archive member; its position in the sequence is its page order."""

    name: str
    raw_bytes: bytes
    role: EntryRole = EntryRole.PASSTHROUGH
    is_dir: bool = False
    # Modification time (epoch seconds) carried over from the source member
    mtime: Optional[float] = None

    @property
    def size(self) -> int:
        return len(self.raw_bytes)

    def with_payload(self, data: bytes, name: Optional[str] = None) -> "ArchiveEntry":
        """Return a copy carrying a new payload (and optionally a new name)."""
        return replace(self, raw_bytes=data, name=name if name is not None else self.name)


@dataclass
class SourceArchive:
    """A container opened from disk (or memory), consumed once."""

    path: Optional[Path]
    format: ContainerFormat
    entries: List[ArchiveEntry] = field(default_factory=list)

    @property
    def image_count(self) -> int:
        return sum(1 for entry in self.entries if entry.role is EntryRole.IMAGE)


@dataclass
class OutputArchive:
    """A serialized container plus the per-entry outcome that produced it."""

    format: ContainerFormat
    data: bytes
    entries: List[ArchiveEntry]
    results: list = field(default_factory=list)

    @property
    def converted(self) -> int:
        return sum(1 for result in self.results if result is not None and result.ok)

    @property
    def failed(self) -> int:
        return sum(1 for result in self.results if result is not None and not result.ok)

    @property
    def passthrough(self) -> int:
        return sum(1 for result in self.results if result is None)


@dataclass
class FileOutcome:
    """Outcome of converting one archive file in a batch."""

    source_path: Path
    success: bool
    output_path: Optional[Path] = None
    backup_path: Optional[Path] = None
    error_kind: Optional[str] = None
    error: Optional[str] = None
    converted: int = 0
    failed: int = 0
    passthrough: int = 0
