"""
Error types raised by the conversion pipeline.

Every error carries a stable ``kind`` string used when reporting a failed
archive and as the ``error_kind`` of the remote protocol.
"""
from typing import Optional


class ConversionError(Exception):
    """Base class for all pipeline errors."""

    kind = "ConversionError"

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class ArchiveError(ConversionError):
    """Archive-level failure; always fatal for that archive."""

    kind = "ArchiveError"


class UnsupportedContainer(ArchiveError):
    kind = "UnsupportedContainer"


class CorruptArchive(ArchiveError):
    kind = "CorruptArchive"


class WriteError(ArchiveError):
    kind = "WriteError"


class BackupError(ArchiveError):
    kind = "BackupError"


class TranscodeError(ConversionError):
    """Failure of a single image; handled per the failure policy."""

    kind = "TranscodeError"


class UnsupportedSourceCodec(TranscodeError):
    kind = "UnsupportedSourceCodec"


class EncodeFailure(TranscodeError):
    kind = "EncodeFailure"


class RemoteTranscodeError(TranscodeError):
    """Network failure, timeout or error response from the conversion server."""

    kind = "RemoteTranscodeError"

    def __init__(self, message: str, error_kind: str = "network", status_code: Optional[int] = None):
        super().__init__(message)
        self.error_kind = error_kind
        self.status_code = status_code
