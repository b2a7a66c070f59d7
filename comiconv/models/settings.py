"""
Conversion settings and converter configuration.

``ConverterConfig`` is the configuration surface handed to the pipeline by an
outer layer (a CLI, a service, tests). ``ConversionSettings`` is the frozen,
per-archive subset every transcoding job reads.
"""
import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from comiconv.models.base import ContainerFormat, FailurePolicy, ImageFormat, OutputMode

LOSSLESS_QUALITY = 101
DEFAULT_QUALITY = 30
DEFAULT_SPEED = 3
DEFAULT_REMOTE_TIMEOUT = 30.0


class ConversionSettings(BaseModel):
    """Immutable settings shared read-only by all jobs of one archive"""
    model_config = ConfigDict(frozen=True)

    target_format: ImageFormat = Field(ImageFormat.AVIF, description="Codec to encode pages to")
    quality: int = Field(
        DEFAULT_QUALITY, ge=0, le=LOSSLESS_QUALITY,
        description="Codec quality 0-100; 101 requests lossless (WEBP only)"
    )
    speed: int = Field(
        DEFAULT_SPEED, ge=0, le=10,
        description="Encoder speed 0 (slowest, best) - 10 (fastest); 0-2 for PNG"
    )
    server_address: Optional[str] = Field(
        None, description="Remote conversion server; None converts locally"
    )

    @property
    def is_remote(self) -> bool:
        return self.server_address is not None

    @property
    def lossless(self) -> bool:
        return self.quality == LOSSLESS_QUALITY


class ConverterConfig(BaseModel):
    """Full configuration consumed by the conversion pipeline"""
    speed: int = Field(DEFAULT_SPEED, ge=0, le=10, description="Encoder speed (0-10)")
    quality: int = Field(DEFAULT_QUALITY, ge=0, le=LOSSLESS_QUALITY, description="Quality (0-100, 101 = lossless)")
    format: ImageFormat = Field(ImageFormat.AVIF, description="Target image format")
    archive_type_override: Optional[ContainerFormat] = Field(
        None, description="Skip container detection and read the input as this format"
    )
    thread_count: Optional[int] = Field(
        None, ge=1, description="Worker pool size; defaults to the available parallelism"
    )
    server_address: Optional[str] = Field(
        None, description="host:port or URL of a conversion server"
    )
    quiet: bool = Field(False, description="Suppress progress messages")
    backup: bool = Field(False, description="Keep a backup of the original file")
    policy: FailurePolicy = Field(
        FailurePolicy.BEST_EFFORT, description="Per-image failure handling"
    )
    output_mode: OutputMode = Field(OutputMode.IN_PLACE, description="Where the result is written")
    rename_entries: bool = Field(
        False, description="Give converted entries the target format's extension"
    )
    remote_timeout: float = Field(
        DEFAULT_REMOTE_TIMEOUT, gt=0, description="Timeout in seconds for one remote job"
    )
    remote_retries: int = Field(
        0, ge=0, le=10, description="Replays of a remote job after a transport error"
    )
    remote_fallback_local: bool = Field(
        False, description="Retry a failed remote job once with the local transcoder"
    )
    collect_metrics: bool = Field(
        False, description="Compute PSNR/SSIM for every converted page"
    )

    @field_validator("format", mode="before")
    @classmethod
    def _parse_format(cls, value):
        if isinstance(value, str) and not isinstance(value, ImageFormat):
            return ImageFormat.parse(value)
        return value

    @field_validator("server_address")
    @classmethod
    def _blank_address_is_local(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not value.strip():
            return None
        return value

    @property
    def pool_size(self) -> int:
        return self.thread_count or os.cpu_count() or 1

    def settings(self) -> ConversionSettings:
        """Derive the frozen per-archive conversion settings"""
        return ConversionSettings(
            target_format=self.format,
            quality=self.quality,
            speed=self.speed,
            server_address=self.server_address,
        )

    @classmethod
    def from_env(cls, prefix: str = "COMICONV_", **overrides) -> "ConverterConfig":
        """
        Build a configuration from environment variables.

        Every field can be set as ``<prefix><FIELD NAME>`` (e.g. ``COMICONV_QUALITY``).
        Keyword overrides win over the environment.
        """
        values = {}
        for name in cls.model_fields:
            raw = os.environ.get(f"{prefix}{name.upper()}")
            if raw is not None and raw != "":
                values[name] = raw
        values.update(overrides)
        return cls(**values)
