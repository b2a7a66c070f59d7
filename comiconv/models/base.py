"""
Base enums shared across the conversion pipeline and the conversion API.

Every supported codec and container is a closed variant here; adding one means
adding a variant plus its detection and read/write (or decode/encode) support.
"""
from enum import Enum
from typing import Optional


class ImageFormat(str, Enum):
    """Target image codecs the pipeline can encode to"""
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    AVIF = "avif"
    JPEGXL = "jxl"

    @property
    def extension(self) -> str:
        """File extension used when entries are renamed"""
        return _IMAGE_EXTENSIONS[self]

    @classmethod
    def parse(cls, value: str) -> "ImageFormat":
        """
        Parse a user supplied format name.

        Accepts the usual aliases (``jpg``, ``jpegxl``) case-insensitively.

        Raises:
            ValueError: If the name matches no supported format
        """
        key = value.strip().lower()
        key = _IMAGE_ALIASES.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise ValueError(f"Invalid format: {value}")


_IMAGE_EXTENSIONS = {
    ImageFormat.JPEG: "jpg",
    ImageFormat.PNG: "png",
    ImageFormat.WEBP: "webp",
    ImageFormat.AVIF: "avif",
    ImageFormat.JPEGXL: "jxl",
}

_IMAGE_ALIASES = {
    "jpg": "jpeg",
    "jpegxl": "jxl",
    "jpeg-xl": "jxl",
}


class SourceCodec(str, Enum):
    """Image codecs the pipeline can decode"""
    JPEG = "jpeg"
    PNG = "png"
    WEBP = "webp"
    AVIF = "avif"
    JPEGXL = "jxl"
    GIF = "gif"
    BMP = "bmp"


class ContainerFormat(str, Enum):
    """Archive containers a comic book can be packaged in"""
    ZIP = "zip"
    TAR = "tar"
    SEVEN_ZIP = "7z"
    RAR = "rar"

    @property
    def comic_extension(self) -> str:
        """Conventional comic-book extension for the container"""
        return _COMIC_EXTENSIONS[self]

    @property
    def extensions(self) -> tuple:
        """All file extensions that denote this container"""
        return (_COMIC_EXTENSIONS[self], f".{self.value}")

    @property
    def write_target(self) -> "ContainerFormat":
        """Container actually written for this source (no RAR writer exists)"""
        return ContainerFormat.ZIP if self is ContainerFormat.RAR else self

    @classmethod
    def from_extension(cls, suffix: str) -> Optional["ContainerFormat"]:
        """Map a file suffix such as ``.cbz`` to its container, if any"""
        suffix = suffix.lower()
        for fmt in cls:
            if suffix in fmt.extensions:
                return fmt
        return None


_COMIC_EXTENSIONS = {
    ContainerFormat.ZIP: ".cbz",
    ContainerFormat.TAR: ".cbt",
    ContainerFormat.SEVEN_ZIP: ".cb7",
    ContainerFormat.RAR: ".cbr",
}


class EntryRole(str, Enum):
    """Classification of an archive member"""
    IMAGE = "image"
    PASSTHROUGH = "passthrough"


class FailurePolicy(str, Enum):
    """What a single failed image does to its archive"""
    STRICT = "strict"
    BEST_EFFORT = "best_effort"


class OutputMode(str, Enum):
    """Where the converted archive is written"""
    IN_PLACE = "in_place"
    SIBLING = "sibling"
