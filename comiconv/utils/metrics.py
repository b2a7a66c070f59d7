"""
Utilities for measuring conversion performance and page quality.
"""
import time
import logging
import numpy as np
import psutil
from PIL import Image
from typing import Tuple, Optional, Dict, Union
from skimage.metrics import peak_signal_noise_ratio, structural_similarity

# Set up logging
logger = logging.getLogger(__name__)

# PSNR reported for pixel-identical pages
IDENTICAL_PSNR = 100.0
# Smallest side SSIM's default 7x7 window can handle
MIN_SSIM_SIDE = 7


def get_cpu_mem() -> Dict[str, float]:
    """
    Get current CPU and memory usage.

    Returns:
        Dictionary with CPU and memory usage percentages
    """
    return {
        "cpu_usage": psutil.cpu_percent(interval=None),
        "memory_usage": psutil.virtual_memory().percent
    }


def calculate_image_metrics(
    original_img: Union[np.ndarray, Image.Image],
    converted_img: Union[np.ndarray, Image.Image]
) -> Tuple[Optional[float], Optional[float]]:
    """
    Calculate PSNR and SSIM between a page and its converted version.

    Args:
        original_img: Source page (PIL Image or RGB numpy array)
        converted_img: Converted page (PIL Image or RGB numpy array)

    Returns:
        Tuple of (PSNR, SSIM) rounded to 2 and 4 decimal places.
        Returns (None, None) if the images cannot be compared.
    """
    if isinstance(original_img, Image.Image):
        original_img = np.array(original_img.convert("RGB"))
    if isinstance(converted_img, Image.Image):
        converted_img = np.array(converted_img.convert("RGB"))

    if original_img.shape != converted_img.shape:
        logger.warning(f"Cannot compare pages of different shapes: {original_img.shape} vs {converted_img.shape}")
        return None, None

    mse = np.mean(np.square(original_img.astype(np.float64) - converted_img.astype(np.float64)))
    if mse == 0:
        psnr = IDENTICAL_PSNR
    else:
        psnr = peak_signal_noise_ratio(original_img, converted_img, data_range=255)

    if min(original_img.shape[0], original_img.shape[1]) < MIN_SSIM_SIDE:
        return round(float(psnr), 2), None

    ssim = structural_similarity(original_img, converted_img, data_range=255, channel_axis=2)
    return round(float(psnr), 2), round(float(ssim), 4)


def measure_quality(source_bytes: bytes, encoded_bytes: bytes) -> Tuple[Optional[float], Optional[float]]:
    """
    Decode both versions of a page and compare them.

    Returns (None, None) when either side cannot be decoded.
    """
    # Import here to avoid circular imports
    from comiconv.core.errors import UnsupportedSourceCodec
    from comiconv.core.transcoder import decode_image

    try:
        original = decode_image(source_bytes)
        converted = decode_image(encoded_bytes)
    except UnsupportedSourceCodec as e:
        logger.warning(f"Skipping quality metrics: {e}")
        return None, None
    return calculate_image_metrics(original, converted)


def measure_conversion_performance(
    original_size: int,
    converted_size: int,
    conversion_time: float
) -> Dict[str, float]:
    """
    Calculate conversion performance metrics for an archive.

    Args:
        original_size: Size of the original archive in bytes
        converted_size: Size of the converted archive in bytes
        conversion_time: Time taken for the conversion in seconds

    Returns:
        Dictionary with compression ratio, space savings percentage, and throughput
    """
    compression_ratio = original_size / converted_size if converted_size > 0 else 0
    space_savings = (1 - (converted_size / original_size)) * 100 if original_size > 0 else 0
    throughput = original_size / (conversion_time * 1024 * 1024) if conversion_time > 0 else 0  # MB/s

    return {
        "compression_ratio": round(compression_ratio, 2),
        "space_savings_percent": round(space_savings, 2),
        "throughput_mbps": round(throughput, 2)
    }


class PerformanceTimer:
    """
    Context manager for measuring execution time.

    Example:
        with PerformanceTimer() as timer:
            # Code to measure
        execution_time = timer.execution_time
    """

    def __init__(self):
        self.start_time = None
        self.execution_time = 0

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.execution_time = time.time() - self.start_time
        return False  # Don't suppress exceptions
