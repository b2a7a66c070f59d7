"""
Models for the remote conversion protocol.

The image payloads travel as raw bytes (multipart upload in, binary body out);
these models describe the form fields, the structured error body, and the
informational endpoints.
"""
from typing import List, Optional

from pydantic import BaseModel, Field

from comiconv.models.base import ImageFormat, SourceCodec
from comiconv.models.settings import DEFAULT_QUALITY, DEFAULT_SPEED, LOSSLESS_QUALITY

# Header names shared by client and server
CONTENT_HASH_HEADER = "X-Content-SHA256"
JOB_ID_HEADER = "X-Job-Id"
SIZE_DELTA_HEADER = "X-Size-Delta"
SOURCE_CODEC_HEADER = "X-Source-Codec"


class TranscodeRequest(BaseModel):
    """Settings sent alongside the uploaded image"""
    target_format: ImageFormat = Field(..., description="Codec to encode to")
    quality: int = Field(
        DEFAULT_QUALITY, ge=0, le=LOSSLESS_QUALITY,
        description="Quality 0-100, 101 = lossless (WEBP)"
    )
    speed: int = Field(DEFAULT_SPEED, ge=0, le=10, description="Encoder speed 0-10")


class TranscodeErrorResponse(BaseModel):
    """Structured error body returned when a job fails"""
    detail: str = Field(..., description="Human readable error message")
    error_kind: str = Field(..., description="Machine readable error classification")


class FormatsResponse(BaseModel):
    """Codecs supported by this server"""
    decodable: List[SourceCodec] = Field(..., description="Source codecs the server can read")
    encodable: List[ImageFormat] = Field(..., description="Target codecs the server can write")


class SystemMetrics(BaseModel):
    """Resource usage snapshot"""
    cpu_usage: float = Field(..., description="CPU usage (%)")
    memory_usage: float = Field(..., description="Memory usage (%)")
    disk_usage: Optional[float] = Field(None, description="Disk usage of / (%)")
