"""Tests for backups of original archives."""

import pytest

from comiconv.core.backup import backup_path_for, create_backup
from comiconv.core.errors import BackupError


def test_backup_path_is_bak_suffix(work_dir):
    assert backup_path_for(work_dir / "book.cbz") == work_dir / "book.cbz.bak"


def test_backup_path_skips_taken_names(work_dir):
    (work_dir / "book.cbz.bak").write_bytes(b"older backup")
    (work_dir / "book.cbz.bak.1").write_bytes(b"even older")
    assert backup_path_for(work_dir / "book.cbz") == work_dir / "book.cbz.bak.2"


def test_create_backup_copies_bytes(work_dir):
    path = work_dir / "book.cbz"
    path.write_bytes(b"original archive")

    backup = create_backup(path)

    assert backup.read_bytes() == b"original archive"
    assert path.read_bytes() == b"original archive"


def test_existing_backup_is_not_overwritten(work_dir):
    path = work_dir / "book.cbz"
    path.write_bytes(b"second version")
    (work_dir / "book.cbz.bak").write_bytes(b"first version")

    backup = create_backup(path)

    assert backup.name == "book.cbz.bak.1"
    assert (work_dir / "book.cbz.bak").read_bytes() == b"first version"


def test_missing_source_raises_backup_error(work_dir):
    with pytest.raises(BackupError) as exc_info:
        create_backup(work_dir / "missing.cbz")
    assert exc_info.value.kind == "BackupError"
    assert not (work_dir / "missing.cbz.bak").exists()
