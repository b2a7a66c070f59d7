"""
Magic-byte detection for image codecs and archive containers.

Both detectors are total: they return ``None`` for unrecognized input
instead of raising.
"""
import logging
from typing import Optional

from comiconv.models.base import ContainerFormat, SourceCodec

# Set up logging
logger = logging.getLogger(__name__)

# Image signatures
JPEG_MAGIC = b"\xff\xd8\xff"
PNG_MAGIC = b"\x89PNG\r\n\x1a\n"
GIF_MAGICS = (b"GIF87a", b"GIF89a")
BMP_MAGIC = b"BM"
BMP_DIB_HEADER_SIZES = {12, 40, 52, 56, 64, 108, 124}
JXL_CODESTREAM_MAGIC = b"\xff\x0a"
JXL_CONTAINER_MAGIC = b"\x00\x00\x00\x0cJXL \r\n\x87\n"
AVIF_BRANDS = {b"avif", b"avis"}

# Container signatures
ZIP_MAGICS = (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08")
RAR_MAGICS = (b"Rar!\x1a\x07\x00", b"Rar!\x1a\x07\x01\x00")
SEVEN_ZIP_MAGIC = b"7z\xbc\xaf\x27\x1c"
TAR_MAGIC = b"ustar"
TAR_MAGIC_OFFSET = 257


def _is_avif(data: bytes) -> bool:
    """Check for an ISO-BMFF ``ftyp`` box advertising an AVIF brand."""
    if len(data) < 16 or data[4:8] != b"ftyp":
        return False
    box_size = int.from_bytes(data[0:4], "big")
    if box_size < 16:
        return False
    box_end = min(box_size, len(data))
    brands = {data[8:12]}
    # Compatible brands follow the major brand and minor version
    for offset in range(16, box_end - 3, 4):
        brands.add(data[offset:offset + 4])
    return bool(brands & AVIF_BRANDS)


def _is_bmp(data: bytes) -> bool:
    if len(data) < 18 or not data.startswith(BMP_MAGIC):
        return False
    return int.from_bytes(data[14:18], "little") in BMP_DIB_HEADER_SIZES


def detect_image_codec(data: bytes) -> Optional[SourceCodec]:
    """
    Identify the codec of an image from its leading bytes.

    Args:
        data: Raw image bytes (only the first few hundred bytes are inspected)

    Returns:
        The detected codec, or None if the bytes match no supported signature
    """
    if not data:
        return None
    if data.startswith(JPEG_MAGIC):
        return SourceCodec.JPEG
    if data.startswith(PNG_MAGIC):
        return SourceCodec.PNG
    if data.startswith(GIF_MAGICS):
        return SourceCodec.GIF
    if len(data) >= 12 and data[0:4] == b"RIFF" and data[8:12] == b"WEBP":
        return SourceCodec.WEBP
    if data.startswith(JXL_CODESTREAM_MAGIC) or data.startswith(JXL_CONTAINER_MAGIC):
        return SourceCodec.JPEGXL
    if _is_avif(data):
        return SourceCodec.AVIF
    if _is_bmp(data):
        return SourceCodec.BMP
    return None


def detect_container_magic(data: bytes) -> Optional[ContainerFormat]:
    """
    Identify an archive container from its magic bytes.

    Returns:
        The detected container, or None if no signature matches
    """
    if data.startswith(ZIP_MAGICS):
        return ContainerFormat.ZIP
    if data.startswith(RAR_MAGICS):
        return ContainerFormat.RAR
    if data.startswith(SEVEN_ZIP_MAGIC):
        return ContainerFormat.SEVEN_ZIP
    if data[TAR_MAGIC_OFFSET:TAR_MAGIC_OFFSET + len(TAR_MAGIC)] == TAR_MAGIC:
        return ContainerFormat.TAR
    return None


def detect_container(data: bytes, name: Optional[str] = None) -> Optional[ContainerFormat]:
    """
    Identify an archive container, falling back to the file extension.

    Args:
        data: Full (or leading) archive bytes
        name: File name used for the extension fallback

    Returns:
        The detected container, or None if neither check matches
    """
    fmt = detect_container_magic(data)
    if fmt is not None:
        return fmt

    if name:
        suffix = "." + name.rsplit(".", 1)[-1] if "." in name else ""
        fmt = ContainerFormat.from_extension(suffix)
        if fmt is not None:
            logger.debug(f"No container signature in {name}, using extension {suffix}")
        return fmt
    return None
