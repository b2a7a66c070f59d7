"""Conversion job datastructures."""

from dataclasses import dataclass
from typing import Optional

from comiconv.models.settings import ConversionSettings


@dataclass(frozen=True)
class ConversionJob:
    """Job for transcoding a single image entry."""

    entry_index: int
    name: str
    source_bytes: bytes
    settings: ConversionSettings


@dataclass
class ConversionResult:
    """Outcome of one job; exactly one of encoded_bytes / error is set."""

    entry_index: int
    encoded_bytes: Optional[bytes] = None
    size_delta: int = 0
    error: Optional[Exception] = None

    # Quality metrics, only when collection is enabled
    psnr: Optional[float] = None
    ssim: Optional[float] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, job: ConversionJob, encoded: bytes, psnr=None, ssim=None) -> "ConversionResult":
        return cls(
            entry_index=job.entry_index,
            encoded_bytes=encoded,
            size_delta=len(encoded) - len(job.source_bytes),
            psnr=psnr,
            ssim=ssim,
        )

    @classmethod
    def failure(cls, job: ConversionJob, error: Exception) -> "ConversionResult":
        return cls(entry_index=job.entry_index, error=error)
