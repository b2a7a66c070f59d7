"""Tests for entry classification."""

from comiconv.core.classifier import classify, classify_entries
from comiconv.models.archive import ArchiveEntry
from comiconv.models.base import EntryRole

from conftest import make_image_bytes


def test_image_by_content_not_name():
    # A PNG named .txt is still an image; text named .png is not
    assert classify(ArchiveEntry("notes.txt", make_image_bytes("PNG"))) is EntryRole.IMAGE
    assert classify(ArchiveEntry("page.png", b"not really a png")) is EntryRole.PASSTHROUGH


def test_directories_and_empty_files_pass_through():
    assert classify(ArchiveEntry("chapter1/", b"", is_dir=True)) is EntryRole.PASSTHROUGH
    assert classify(ArchiveEntry("empty.jpg", b"")) is EntryRole.PASSTHROUGH


def test_metadata_passes_through():
    entry = ArchiveEntry("ComicInfo.xml", b"<?xml version='1.0'?><ComicInfo/>")
    assert classify(entry) is EntryRole.PASSTHROUGH


def test_classify_entries_keeps_order(comic_members):
    entries = [ArchiveEntry(name, data) for name, data in comic_members]
    result = classify_entries(entries)

    assert [e.name for e in result] == ["page1.png", "page2.png", "cover.txt"]
    assert [e.role for e in result] == [EntryRole.IMAGE, EntryRole.IMAGE, EntryRole.PASSTHROUGH]
