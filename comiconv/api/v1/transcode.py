"""
API v1 - image transcoding endpoints used by remote converters.
"""
import hashlib
import logging
from typing import Optional

from fastapi import APIRouter, File, Form, Header, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, Response

from comiconv.core.errors import EncodeFailure, UnsupportedSourceCodec
from comiconv.core.formats import detect_image_codec
from comiconv.core.transcoder import LocalTranscoder, supported_source_codecs, supported_target_formats
from comiconv.models.base import ImageFormat
from comiconv.models.remote import (
    CONTENT_HASH_HEADER,
    JOB_ID_HEADER,
    SIZE_DELTA_HEADER,
    SOURCE_CODEC_HEADER,
    FormatsResponse,
    TranscodeErrorResponse,
    TranscodeRequest
)
from comiconv.models.settings import ConversionSettings, DEFAULT_QUALITY, DEFAULT_SPEED

# Set up logging
logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["Transcoding v1"])

transcoder = LocalTranscoder()

MEDIA_TYPES = {
    ImageFormat.JPEG: "image/jpeg",
    ImageFormat.PNG: "image/png",
    ImageFormat.WEBP: "image/webp",
    ImageFormat.AVIF: "image/avif",
    ImageFormat.JPEGXL: "image/jxl",
}


def error_response(status_code: int, error_kind: str, detail: str) -> JSONResponse:
    """Build the structured error body the remote client understands"""
    body = TranscodeErrorResponse(detail=detail, error_kind=error_kind)
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post(
    "/transcode",
    response_class=Response,
    responses={
        400: {"model": TranscodeErrorResponse},
        415: {"model": TranscodeErrorResponse},
        500: {"model": TranscodeErrorResponse},
    }
)
async def transcode_image(
    file: UploadFile = File(..., description="Raw bytes of the source image"),
    target_format: str = Form(..., description="Codec to encode to (jpeg, png, webp, avif, jxl)"),
    quality: int = Form(DEFAULT_QUALITY, description="Quality 0-100, 101 = lossless (WEBP)"),
    speed: int = Form(DEFAULT_SPEED, description="Encoder speed 0-10"),
    content_hash: Optional[str] = Header(None, alias=CONTENT_HASH_HEADER),
    job_id: Optional[str] = Header(None, alias=JOB_ID_HEADER)
):
    """
    Convert one image and return the encoded bytes.

    The upload must carry the SHA-256 of its bytes; the response carries the
    SHA-256 of the encoded image. Jobs are stateless, so replays are safe.
    """
    try:
        request = TranscodeRequest(
            target_format=ImageFormat.parse(target_format),
            quality=quality,
            speed=speed,
        )
    except ValueError as e:
        return error_response(400, "invalid_request", str(e))

    data = await file.read()

    if content_hash is None:
        return error_response(400, "invalid_request", f"Missing {CONTENT_HASH_HEADER} header")
    if hashlib.sha256(data).hexdigest() != content_hash.strip().lower():
        logger.warning(f"Hash mismatch on upload (job {job_id})")
        return error_response(400, "hash_mismatch", "Uploaded bytes do not match the content hash")

    codec = detect_image_codec(data)
    if codec is None:
        return error_response(415, "unsupported_source_codec", "Unrecognized image signature")

    settings = ConversionSettings(
        target_format=request.target_format,
        quality=request.quality,
        speed=request.speed,
    )

    try:
        encoded = await run_in_threadpool(transcoder.transcode, data, settings)
    except UnsupportedSourceCodec as e:
        return error_response(415, "unsupported_source_codec", str(e))
    except EncodeFailure as e:
        logger.error(f"Encoding failed (job {job_id}): {e}")
        return error_response(500, "encode_failure", str(e))

    headers = {
        CONTENT_HASH_HEADER: hashlib.sha256(encoded).hexdigest(),
        SIZE_DELTA_HEADER: str(len(encoded) - len(data)),
        SOURCE_CODEC_HEADER: codec.value,
    }
    if job_id:
        headers[JOB_ID_HEADER] = job_id

    logger.debug(f"Transcoded {codec.value} -> {settings.target_format.value} ({len(data)} -> {len(encoded)} bytes)")
    return Response(content=encoded, media_type=MEDIA_TYPES[settings.target_format], headers=headers)


@router.get("/formats", response_model=FormatsResponse)
async def list_formats():
    """List the source codecs this server decodes and the targets it encodes."""
    return FormatsResponse(
        decodable=supported_source_codecs(),
        encodable=supported_target_formats(),
    )
