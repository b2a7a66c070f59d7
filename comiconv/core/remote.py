"""
Remote transcoding through a comiconv conversion server.

Wire protocol (one HTTP request per image):
- ``POST {base}/api/v1/transcode``, multipart upload ``file`` with the raw
  image bytes and form fields ``target_format``, ``quality``, ``speed``
- request headers ``X-Content-SHA256`` (source hash) and ``X-Job-Id``
  (hash of source + settings)
- success: ``200`` with the encoded image as body and ``X-Content-SHA256``
  of the encoded bytes, verified by the client
- failure: non-2xx with a JSON body ``{"detail": ..., "error_kind": ...}``

Jobs are pure functions of their inputs, so replaying a request is safe.
"""
import hashlib
import logging
import random
import time
from typing import Optional

import httpx

from comiconv.core.errors import RemoteTranscodeError
from comiconv.models.remote import CONTENT_HASH_HEADER, JOB_ID_HEADER
from comiconv.models.settings import DEFAULT_REMOTE_TIMEOUT, ConversionSettings

# Set up logging
logger = logging.getLogger(__name__)

TRANSCODE_PATH = "/api/v1/transcode"


def normalize_server_address(address: str) -> str:
    """
    Turn ``host:port`` or a URL into a base URL without a trailing slash.

    Raises:
        ValueError: If the address is empty
    """
    address = address.strip()
    if not address:
        raise ValueError("Empty server address")
    if "://" not in address:
        address = f"http://{address}"
    return address.rstrip("/")


def job_id(data: bytes, settings: ConversionSettings) -> str:
    """Stable identifier of a job: same bytes and settings give the same id."""
    digest = hashlib.sha256(data)
    digest.update(f"|{settings.target_format.value}|{settings.quality}|{settings.speed}".encode("ascii"))
    return digest.hexdigest()


class RemoteTranscoder:
    """Transcoder that ships each job to a conversion server over HTTP."""

    def __init__(
        self,
        address: str,
        timeout: float = DEFAULT_REMOTE_TIMEOUT,
        retries: int = 0,
        client: Optional[httpx.Client] = None
    ):
        """
        Initialize the remote transcoder.

        Args:
            address: Server as ``host:port`` or URL
            timeout: Finite timeout in seconds for each request
            retries: Replays after a transport error (not after error responses)
            client: Pre-configured HTTP client; one is created when omitted
        """
        self.base_url = normalize_server_address(address)
        self.timeout = timeout
        self.retries = retries
        self._owns_client = client is None
        self.client = client or httpx.Client(timeout=httpx.Timeout(timeout))

    def close(self) -> None:
        if self._owns_client:
            self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _post(self, data: bytes, settings: ConversionSettings) -> httpx.Response:
        headers = {
            CONTENT_HASH_HEADER: hashlib.sha256(data).hexdigest(),
            JOB_ID_HEADER: job_id(data, settings),
        }
        form = {
            "target_format": settings.target_format.value,
            "quality": str(settings.quality),
            "speed": str(settings.speed),
        }
        files = {"file": ("image", data, "application/octet-stream")}

        for attempt in range(self.retries + 1):
            try:
                return self.client.post(
                    f"{self.base_url}{TRANSCODE_PATH}",
                    data=form,
                    files=files,
                    headers=headers,
                    timeout=self.timeout,
                )
            except httpx.TimeoutException as e:
                error = RemoteTranscodeError(f"Timed out after {self.timeout}s: {e}", error_kind="timeout")
            except httpx.TransportError as e:
                error = RemoteTranscodeError(f"Transport error: {e}", error_kind="network")
            except httpx.HTTPError as e:
                # Protocol-level failure, not retried
                raise RemoteTranscodeError(f"Invalid response: {e}", error_kind="invalid_response") from e

            if attempt < self.retries:
                backoff = (2 ** attempt) * 0.5 + random.uniform(0, 0.5)
                logger.warning(f"Remote job {headers[JOB_ID_HEADER][:12]} failed ({error}), retrying in {backoff:.1f}s")
                time.sleep(backoff)
        raise error

    def transcode(self, data: bytes, settings: ConversionSettings) -> bytes:
        response = self._post(data, settings)

        if not response.is_success:
            error_kind = "http_error"
            detail = response.text
            try:
                body = response.json()
            except ValueError:
                body = None
            if isinstance(body, dict):
                error_kind = str(body.get("error_kind", error_kind))
                detail = body.get("detail", detail)
            raise RemoteTranscodeError(
                f"Server returned {response.status_code}: {detail}",
                error_kind=error_kind,
                status_code=response.status_code,
            )

        encoded = response.content
        expected = response.headers.get(CONTENT_HASH_HEADER)
        if expected is None:
            raise RemoteTranscodeError("Response is missing the content hash", error_kind="invalid_response")
        if hashlib.sha256(encoded).hexdigest() != expected.lower():
            raise RemoteTranscodeError("Hash mismatch on encoded image", error_kind="hash_mismatch")
        return encoded
