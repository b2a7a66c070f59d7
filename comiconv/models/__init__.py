"""
Data models for the comiconv pipeline and conversion server.

Enums and pydantic models for configuration and the remote protocol;
dataclasses for the entries, jobs and results moved between stages.
"""
from comiconv.models.base import (
    ImageFormat,
    SourceCodec,
    ContainerFormat,
    EntryRole,
    FailurePolicy,
    OutputMode
)

from comiconv.models.settings import (
    LOSSLESS_QUALITY,
    DEFAULT_QUALITY,
    DEFAULT_SPEED,
    ConversionSettings,
    ConverterConfig
)

from comiconv.models.archive import (
    ArchiveEntry,
    SourceArchive,
    OutputArchive,
    FileOutcome
)

from comiconv.models.jobs import ConversionJob, ConversionResult

from comiconv.models.remote import (
    TranscodeRequest,
    TranscodeErrorResponse,
    FormatsResponse
)

__all__ = [
    # Enums
    'ImageFormat',
    'SourceCodec',
    'ContainerFormat',
    'EntryRole',
    'FailurePolicy',
    'OutputMode',

    # Settings
    'LOSSLESS_QUALITY',
    'DEFAULT_QUALITY',
    'DEFAULT_SPEED',
    'ConversionSettings',
    'ConverterConfig',

    # Pipeline data
    'ArchiveEntry',
    'SourceArchive',
    'OutputArchive',
    'FileOutcome',
    'ConversionJob',
    'ConversionResult',

    # Remote protocol
    'TranscodeRequest',
    'TranscodeErrorResponse',
    'FormatsResponse'
]
