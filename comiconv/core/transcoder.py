"""
Image transcoding: decode one page in its source codec, encode it to the target.

Two interchangeable implementations satisfy the ``Transcoder`` protocol:
- ``LocalTranscoder`` (this module), using Pillow's codecs
- ``RemoteTranscoder`` (comiconv.core.remote), delegating to a conversion server

The pipeline selects one from the configuration and never inspects which one
it got.
"""
import io
import logging
from typing import Dict, Protocol

import pillow_jxl  # noqa: F401  registers the JPEG XL plugin with Pillow
from PIL import Image, UnidentifiedImageError, features

from comiconv.core.errors import EncodeFailure, UnsupportedSourceCodec
from comiconv.core.formats import detect_image_codec
from comiconv.models.base import ImageFormat, SourceCodec
from comiconv.models.settings import ConversionSettings

# Set up logging
logger = logging.getLogger(__name__)

# Pillow format names
PIL_FORMATS: Dict[ImageFormat, str] = {
    ImageFormat.JPEG: "JPEG",
    ImageFormat.PNG: "PNG",
    ImageFormat.WEBP: "WEBP",
    ImageFormat.AVIF: "AVIF",
    ImageFormat.JPEGXL: "JXL",
}

# PNG speed (0-2) to zlib level; lower speed compresses harder
PNG_COMPRESS_LEVELS = {0: 9, 1: 6, 2: 1}

DECODE_ERRORS = (UnidentifiedImageError, OSError, ValueError, SyntaxError, Image.DecompressionBombError)


class Transcoder(Protocol):
    """Capability shared by the local and remote transcoders."""

    def transcode(self, data: bytes, settings: ConversionSettings) -> bytes:
        """
        Convert one image to ``settings.target_format``.

        Raises:
            TranscodeError: UnsupportedSourceCodec, EncodeFailure or RemoteTranscodeError
        """
        ...


def decode_image(data: bytes) -> Image.Image:
    """
    Decode image bytes into a fully loaded Pillow image.

    Raises:
        UnsupportedSourceCodec: If the codec is unknown or the bytes do not decode
    """
    codec = detect_image_codec(data)
    if codec is None:
        raise UnsupportedSourceCodec("Unrecognized image signature")
    try:
        image = Image.open(io.BytesIO(data))
        image.load()
    except DECODE_ERRORS as e:
        raise UnsupportedSourceCodec(f"Failed to decode {codec.value} image: {e}") from e
    return image


def _flatten(image: Image.Image, background=(255, 255, 255)) -> Image.Image:
    """Composite an image with transparency onto an opaque background."""
    rgba = image.convert("RGBA")
    flat = Image.new("RGB", rgba.size, background)
    flat.paste(rgba, mask=rgba.split()[-1])
    return flat


def _has_alpha(image: Image.Image) -> bool:
    return image.mode in ("RGBA", "LA", "PA") or (image.mode == "P" and "transparency" in image.info)


def _prepare(image: Image.Image, target: ImageFormat) -> Image.Image:
    """Convert an image into a mode the target encoder accepts."""
    if target is ImageFormat.JPEG:
        if image.mode in ("RGB", "L", "CMYK"):
            return image
        if _has_alpha(image):
            return _flatten(image)
        return image.convert("RGB")

    if target is ImageFormat.PNG:
        if image.mode == "CMYK":
            return image.convert("RGB")
        return image

    if image.mode in ("RGB", "RGBA"):
        return image
    return image.convert("RGBA" if _has_alpha(image) else "RGB")


def encoder_options(settings: ConversionSettings) -> dict:
    """
    Map the generic quality/speed knobs onto the target encoder's options.

    - JPEG: quality (101 clamps to 100); speed ignored
    - PNG: quality ignored; speed clamped to 0-2 and mapped to a zlib level
    - WEBP: quality 101 requests lossless, otherwise lossy at quality; speed -> method 6..0
    - AVIF: quality and speed passed through
    - JPEG XL: quality 101 requests lossless, 100 is lossy at maximum quality; speed -> effort 9..1
    """
    target = settings.target_format
    quality = min(settings.quality, 100)
    speed = settings.speed

    if target is ImageFormat.JPEG:
        return {"quality": quality}
    if target is ImageFormat.PNG:
        return {"compress_level": PNG_COMPRESS_LEVELS[max(0, min(speed, 2))]}
    if target is ImageFormat.WEBP:
        method = round((10 - speed) * 6 / 10)
        if settings.lossless:
            return {"lossless": True, "quality": 100, "method": method}
        return {"quality": quality, "method": method}
    if target is ImageFormat.AVIF:
        return {"quality": quality, "speed": speed}
    if target is ImageFormat.JPEGXL:
        effort = max(1, min(9, 9 - round(speed * 8 / 10)))
        if settings.lossless:
            return {"lossless": True, "effort": effort}
        return {"quality": quality, "effort": effort}
    raise EncodeFailure(f"No encoder for {target}")


def encode_image(image: Image.Image, settings: ConversionSettings) -> bytes:
    """
    Encode a decoded image with the given settings.

    Raises:
        EncodeFailure: If the encoder rejects the image or options
    """
    target = settings.target_format
    options = encoder_options(settings)
    buf = io.BytesIO()
    try:
        _prepare(image, target).save(buf, format=PIL_FORMATS[target], **options)
    except (OSError, ValueError, KeyError, TypeError) as e:
        raise EncodeFailure(f"Failed to encode {target.value}: {e}") from e
    return buf.getvalue()


class LocalTranscoder:
    """Transcoder running Pillow's decoders and encoders in-process."""

    def transcode(self, data: bytes, settings: ConversionSettings) -> bytes:
        image = decode_image(data)
        try:
            return encode_image(image, settings)
        finally:
            image.close()


def supported_source_codecs() -> list:
    """Source codecs whose decoders are available in this interpreter"""
    available = []
    for codec in SourceCodec:
        if codec is SourceCodec.AVIF and not features.check("avif"):
            continue
        available.append(codec)
    return available


def supported_target_formats() -> list:
    """Target formats whose encoders are available in this interpreter"""
    available = []
    for fmt in ImageFormat:
        if fmt is ImageFormat.AVIF and not features.check("avif"):
            continue
        if fmt is ImageFormat.WEBP and not features.check("webp"):
            continue
        available.append(fmt)
    return available
