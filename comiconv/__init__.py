"""
comiconv - comic-book archive converter

Re-encodes the page images of CBZ/CBR/CB7/CBT archives to JPEG, PNG, WEBP,
AVIF or JPEG XL, locally or through a conversion server, and writes the
archive back with its entries in their original order.

Features include:
- ZIP, TAR and 7z read/write, RAR read (written back as ZIP)
- Bounded parallel conversion with strict or best-effort failure handling
- Optional backups, quality metrics (PSNR, SSIM) and remote transcoding
"""
__version__ = "0.4.0"

from comiconv.core.converter import Converter
from comiconv.models.settings import ConverterConfig, ConversionSettings
from comiconv.models.base import ContainerFormat, FailurePolicy, ImageFormat, OutputMode

__all__ = [
    '__version__',
    'Converter',
    'ConverterConfig',
    'ConversionSettings',
    'ContainerFormat',
    'FailurePolicy',
    'ImageFormat',
    'OutputMode'
]
