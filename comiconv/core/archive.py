"""
Reading and writing of comic-book archive containers.

Supported containers:
- ZIP (.cbz): read + write, via zipfile
- TAR (.cbt): read + write, via tarfile
- 7z (.cb7): read + write, via py7zr
- RAR (.cbr): read only, via rarfile (requires an unrar-compatible tool)

Archives are read fully into memory in a single pass; comic books are small
enough (tens to low hundreds of MB) that no streaming reader is needed.
"""
import io
import logging
import lzma
import os
import tarfile
import tempfile
import time
import zipfile
import zlib
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

import py7zr
import py7zr.exceptions
import rarfile

from comiconv.core.errors import CorruptArchive, UnsupportedContainer, WriteError
from comiconv.core.formats import detect_container
from comiconv.models.archive import ArchiveEntry, SourceArchive
from comiconv.models.base import ContainerFormat

# Set up logging
logger = logging.getLogger(__name__)

# Earliest timestamp a ZIP header can store
ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)

ZIP_READ_ERRORS = (zipfile.BadZipFile, zipfile.LargeZipFile, NotImplementedError, RuntimeError, EOFError, zlib.error)
TAR_READ_ERRORS = (tarfile.TarError, EOFError, zlib.error, lzma.LZMAError)
SEVEN_ZIP_ERRORS = (py7zr.exceptions.ArchiveError, py7zr.exceptions.PasswordRequired, EOFError, lzma.LZMAError)
RAR_READ_ERRORS = (rarfile.Error,)


# ---------------------------------------------------------------------------
# Reading
# ---------------------------------------------------------------------------

def _zip_mtime(info: zipfile.ZipInfo) -> Optional[float]:
    try:
        return time.mktime(info.date_time + (0, 0, -1))
    except (OverflowError, ValueError):
        return None


def _read_zip(data: bytes) -> List[ArchiveEntry]:
    entries = []
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        for info in zf.infolist():
            if info.is_dir():
                entries.append(ArchiveEntry(info.filename, b"", is_dir=True, mtime=_zip_mtime(info)))
            else:
                entries.append(ArchiveEntry(info.filename, zf.read(info), mtime=_zip_mtime(info)))
    return entries


def _read_tar(data: bytes) -> List[ArchiveEntry]:
    entries = []
    with tarfile.open(fileobj=io.BytesIO(data), mode="r:*") as tf:
        for member in tf.getmembers():
            if member.isdir():
                entries.append(ArchiveEntry(member.name, b"", is_dir=True, mtime=float(member.mtime)))
            elif member.isfile():
                extracted = tf.extractfile(member)
                payload = extracted.read() if extracted is not None else b""
                entries.append(ArchiveEntry(member.name, payload, mtime=float(member.mtime)))
            else:
                logger.warning(f"Skipping non-regular TAR member: {member.name}")
    return entries


def _first_duplicate(names) -> Optional[str]:
    seen = set()
    for name in names:
        if name in seen:
            return name
        seen.add(name)
    return None


def _read_7z(data: bytes) -> List[ArchiveEntry]:
    entries = []
    with tempfile.TemporaryDirectory(prefix="comiconv_7z_") as tmpdir:
        with py7zr.SevenZipFile(io.BytesIO(data), mode="r") as archive:
            infos = archive.list()
            # Members are extracted by name, so a repeated name would shadow the earlier payload
            duplicate = _first_duplicate(info.filename for info in infos if not info.is_directory)
            if duplicate is not None:
                raise CorruptArchive(f"Duplicate member name in 7z archive: {duplicate}")
            archive.extractall(path=tmpdir)

        root = Path(tmpdir)
        for info in infos:
            mtime = info.creationtime.timestamp() if info.creationtime else None
            if info.is_directory:
                entries.append(ArchiveEntry(info.filename, b"", is_dir=True, mtime=mtime))
                continue
            extracted = root / info.filename
            payload = extracted.read_bytes() if extracted.is_file() else b""
            entries.append(ArchiveEntry(info.filename, payload, mtime=mtime))
    return entries


def _read_rar(data: bytes) -> List[ArchiveEntry]:
    entries = []
    with rarfile.RarFile(io.BytesIO(data)) as rf:
        for info in rf.infolist():
            mtime = info.mtime.timestamp() if getattr(info, "mtime", None) else None
            if info.is_dir():
                entries.append(ArchiveEntry(info.filename, b"", is_dir=True, mtime=mtime))
            else:
                entries.append(ArchiveEntry(info.filename, rf.read(info), mtime=mtime))
    return entries


_READERS: Dict[ContainerFormat, Tuple[Callable[[bytes], List[ArchiveEntry]], tuple]] = {
    ContainerFormat.ZIP: (_read_zip, ZIP_READ_ERRORS),
    ContainerFormat.TAR: (_read_tar, TAR_READ_ERRORS),
    ContainerFormat.SEVEN_ZIP: (_read_7z, SEVEN_ZIP_ERRORS),
    ContainerFormat.RAR: (_read_rar, RAR_READ_ERRORS),
}


def read_archive_bytes(
    data: bytes,
    name: Optional[str] = None,
    override: Optional[ContainerFormat] = None,
    path: Optional[Path] = None
) -> SourceArchive:
    """
    Open an in-memory container and enumerate its entries in order.

    Args:
        data: Complete archive bytes
        name: File name, used for the extension fallback and error messages
        override: Read as this container instead of detecting it
        path: Source path recorded on the returned archive

    Returns:
        The opened archive with its ordered entries (roles not yet assigned)

    Raises:
        UnsupportedContainer: If the container cannot be identified
        CorruptArchive: If the container index cannot be parsed
    """
    label = name or (str(path) if path else None)
    fmt = override or detect_container(data, name)
    if fmt is None:
        raise UnsupportedContainer("Not a ZIP, TAR, 7z or RAR archive", path=label)

    reader, errors = _READERS[fmt]
    try:
        entries = reader(data)
    except CorruptArchive as e:
        e.path = e.path or label
        raise
    except errors as e:
        raise CorruptArchive(f"Invalid {fmt.value} archive: {e}", path=label) from e
    except OSError as e:
        raise CorruptArchive(f"Failed to read {fmt.value} archive: {e}", path=label) from e

    logger.debug(f"Read {len(entries)} entries from {label or 'archive'} ({fmt.value})")
    return SourceArchive(path=path, format=fmt, entries=entries)


def read_archive(path: Union[str, Path], override: Optional[ContainerFormat] = None) -> SourceArchive:
    """
    Read an archive file from disk.

    The whole file is loaded into memory; see ``read_archive_bytes``.
    """
    path = Path(path)
    data = path.read_bytes()
    return read_archive_bytes(data, name=path.name, override=override, path=path)


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------

def validate_entry_name(name: str) -> None:
    """
    Reject names no container should carry.

    Raises:
        WriteError: For empty names, NUL characters, absolute paths or ``..`` segments
    """
    if not name or not name.strip("/"):
        raise WriteError(f"Empty entry name: {name!r}")
    if "\x00" in name:
        raise WriteError(f"Entry name contains NUL: {name!r}")
    normalized = name.replace("\\", "/")
    if normalized.startswith("/") or (len(normalized) > 1 and normalized[1] == ":"):
        raise WriteError(f"Absolute entry name: {name!r}")
    if ".." in normalized.split("/"):
        raise WriteError(f"Entry name escapes the archive: {name!r}")


def _zip_date_time(mtime: Optional[float]) -> tuple:
    if mtime is None:
        return ZIP_EPOCH
    stamp = time.localtime(mtime)[:6]
    return stamp if stamp >= ZIP_EPOCH else ZIP_EPOCH


def _write_zip(entries: List[ArchiveEntry]) -> bytes:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for entry in entries:
            if entry.is_dir:
                name = entry.name if entry.name.endswith("/") else entry.name + "/"
                info = zipfile.ZipInfo(name, date_time=_zip_date_time(entry.mtime))
                info.external_attr = (0o40755 << 16) | 0x10
                zf.writestr(info, b"")
            else:
                info = zipfile.ZipInfo(entry.name, date_time=_zip_date_time(entry.mtime))
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                zf.writestr(info, entry.raw_bytes)
    return buf.getvalue()


def _write_tar(entries: List[ArchiveEntry]) -> bytes:
    buf = io.BytesIO()
    with tarfile.open(fileobj=buf, mode="w", format=tarfile.PAX_FORMAT) as tf:
        for entry in entries:
            info = tarfile.TarInfo(entry.name.rstrip("/"))
            info.mtime = int(entry.mtime or 0)
            if entry.is_dir:
                info.type = tarfile.DIRTYPE
                info.mode = 0o755
                tf.addfile(info)
            else:
                info.size = len(entry.raw_bytes)
                info.mode = 0o644
                tf.addfile(info, io.BytesIO(entry.raw_bytes))
    return buf.getvalue()


def _write_7z(entries: List[ArchiveEntry]) -> bytes:
    duplicate = _first_duplicate(entry.name for entry in entries if not entry.is_dir)
    if duplicate is not None:
        raise ValueError(f"7z archives cannot hold two members named {duplicate}")
    buf = io.BytesIO()
    with tempfile.TemporaryDirectory(prefix="comiconv_7z_") as tmpdir:
        root = Path(tmpdir)
        with py7zr.SevenZipFile(buf, mode="w") as archive:
            for index, entry in enumerate(entries):
                # Stage under a synthetic name; arcname carries the real one
                if entry.is_dir:
                    staged = root / f"d{index}"
                    staged.mkdir()
                else:
                    staged = root / f"f{index}"
                    staged.write_bytes(entry.raw_bytes)
                if entry.mtime is not None:
                    os.utime(staged, (entry.mtime, entry.mtime))
                archive.write(staged, arcname=entry.name.rstrip("/"))
    return buf.getvalue()


_WRITERS: Dict[ContainerFormat, Tuple[Callable[[List[ArchiveEntry]], bytes], tuple]] = {
    ContainerFormat.ZIP: (_write_zip, (zipfile.LargeZipFile, ValueError)),
    ContainerFormat.TAR: (_write_tar, (tarfile.TarError, ValueError, UnicodeError)),
    ContainerFormat.SEVEN_ZIP: (_write_7z, (py7zr.exceptions.ArchiveError, ValueError)),
}


def write_archive(
    entries: List[ArchiveEntry],
    source_format: ContainerFormat
) -> Tuple[ContainerFormat, bytes]:
    """
    Serialize entries into a new container, preserving names and order.

    The container matches the source, except RAR which is written as ZIP.

    Args:
        entries: Final ordered entries
        source_format: Container the entries were read from

    Returns:
        Tuple of (written container format, archive bytes)

    Raises:
        WriteError: If a name or payload is rejected by the container
    """
    target = source_format.write_target
    for entry in entries:
        validate_entry_name(entry.name)

    writer, errors = _WRITERS[target]
    try:
        data = writer(entries)
    except errors as e:
        raise WriteError(f"Failed to write {target.value} archive: {e}") from e
    except OSError as e:
        raise WriteError(f"Failed to stage {target.value} archive: {e}") from e

    if target is not source_format:
        logger.info(f"No {source_format.value} writer available, wrote {target.value} instead")
    return target, data
