"""Entry classification: convertible image or opaque passthrough blob."""

from typing import List

from comiconv.core.formats import detect_image_codec
from comiconv.models.archive import ArchiveEntry
from comiconv.models.base import EntryRole


def classify(entry: ArchiveEntry) -> EntryRole:
    """
    Decide whether an entry is a convertible image.

    Only the payload's magic bytes count; the name's extension is ignored, so
    unidentified bytes are never handed to a decoder.
    """
    if entry.is_dir or not entry.raw_bytes:
        return EntryRole.PASSTHROUGH
    if detect_image_codec(entry.raw_bytes) is None:
        return EntryRole.PASSTHROUGH
    return EntryRole.IMAGE


def classify_entries(entries: List[ArchiveEntry]) -> List[ArchiveEntry]:
    """Tag every entry with its role, in place, and return the same list."""
    for entry in entries:
        entry.role = classify(entry)
    return entries
