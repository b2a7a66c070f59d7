"""
Utilities for output paths and staged (atomic) file writes.
"""
import os
import logging
import tempfile
import contextlib
from pathlib import Path
from typing import Iterator, Union

from comiconv.core.errors import WriteError
from comiconv.models.base import ContainerFormat, ImageFormat, OutputMode

# Set up logging
logger = logging.getLogger(__name__)

TEMP_PREFIX = ".comiconv-"
TEMP_SUFFIX = ".part"


def output_extension(source: Path, target: ContainerFormat) -> str:
    """
    Pick the extension of the converted archive.

    Keeps the source suffix when it already denotes the target container
    (``.zip`` stays ``.zip``), otherwise uses the conventional comic extension.
    """
    suffix = source.suffix.lower()
    if ContainerFormat.from_extension(suffix) is target:
        return source.suffix
    return target.comic_extension


def output_path_for(
    source: Union[str, Path],
    target: ContainerFormat,
    mode: OutputMode,
    image_format: ImageFormat
) -> Path:
    """
    Derive where a converted archive is written.

    Args:
        source: Original archive path
        target: Container being written
        mode: IN_PLACE overwrites (or, when the container changes, writes
              next to) the source; SIBLING writes ``<stem>_<format><ext>``
        image_format: Target image format, used in sibling names

    Returns:
        Output path in the source's directory
    """
    source = Path(source)
    ext = output_extension(source, target)
    if mode is OutputMode.SIBLING:
        return source.with_name(f"{source.stem}_{image_format.value}{ext}")
    return source.with_name(f"{source.stem}{ext}")


@contextlib.contextmanager
def temp_file_context(directory: Union[str, Path], cleanup: bool = True) -> Iterator[Path]:
    """
    Context manager that creates a temporary file and optionally cleans it up.

    Args:
        directory: Directory to create the file in
        cleanup: Whether to delete the file after the context exits

    Yields:
        Path to the temporary file
    """
    fd, name = tempfile.mkstemp(prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, dir=str(directory))
    os.close(fd)
    temp_path = Path(name)
    try:
        yield temp_path
    finally:
        if cleanup and temp_path.exists():
            temp_path.unlink()


def atomic_write(target: Union[str, Path], data: bytes) -> Path:
    """
    Write bytes to a temporary sibling, fsync, then replace the target.

    The target is either fully replaced or left untouched.

    Raises:
        WriteError: If staging or replacing fails
    """
    target = Path(target)
    try:
        with temp_file_context(target.parent) as temp_path:
            with open(temp_path, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
            if target.exists():
                os.chmod(temp_path, target.stat().st_mode & 0o7777)
            os.replace(temp_path, target)
    except OSError as e:
        raise WriteError(f"Failed to write archive: {e}", path=str(target)) from e

    logger.debug(f"Wrote {len(data)} bytes to {target}")
    return target
