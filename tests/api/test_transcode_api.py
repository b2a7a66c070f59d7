"""Tests for the conversion server endpoints."""

import hashlib
import io

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from comiconv.api import app
from comiconv.models.remote import CONTENT_HASH_HEADER, JOB_ID_HEADER, SIZE_DELTA_HEADER, SOURCE_CODEC_HEADER


@pytest.fixture
def client():
    return TestClient(app)


def _post(client, data, target_format="webp", quality=50, speed=5, content_hash=None, extra_headers=None):
    headers = {CONTENT_HASH_HEADER: content_hash if content_hash is not None else hashlib.sha256(data).hexdigest()}
    headers.update(extra_headers or {})
    return client.post(
        "/api/v1/transcode",
        files={"file": ("image", data, "application/octet-stream")},
        data={"target_format": target_format, "quality": str(quality), "speed": str(speed)},
        headers=headers,
    )


def test_transcode_png_to_webp(client, png_page):
    response = _post(client, png_page, extra_headers={JOB_ID_HEADER: "job-123"})

    assert response.status_code == 200
    assert response.headers["content-type"] == "image/webp"
    assert response.headers[CONTENT_HASH_HEADER] == hashlib.sha256(response.content).hexdigest()
    assert response.headers[SOURCE_CODEC_HEADER] == "png"
    assert int(response.headers[SIZE_DELTA_HEADER]) == len(response.content) - len(png_page)
    assert response.headers[JOB_ID_HEADER] == "job-123"

    with Image.open(io.BytesIO(response.content)) as img:
        assert img.format == "WEBP"
        assert img.size == (64, 96)


def test_format_alias_is_accepted(client, png_page):
    response = _post(client, png_page, target_format="jpg", quality=90)
    assert response.status_code == 200
    assert response.headers["content-type"] == "image/jpeg"


def test_same_request_gives_same_bytes(client, png_page):
    first = _post(client, png_page, target_format="png", speed=0)
    second = _post(client, png_page, target_format="png", speed=0)
    assert first.content == second.content


def test_hash_mismatch(client, png_page):
    response = _post(client, png_page, content_hash=hashlib.sha256(b"other").hexdigest())
    assert response.status_code == 400
    assert response.json()["error_kind"] == "hash_mismatch"


def test_missing_hash_header(client, png_page):
    response = client.post(
        "/api/v1/transcode",
        files={"file": ("image", png_page, "application/octet-stream")},
        data={"target_format": "webp"},
    )
    assert response.status_code == 400
    assert response.json()["error_kind"] == "invalid_request"


@pytest.mark.parametrize("fields", [
    {"target_format": "tiff"},
    {"quality": 150},
    {"speed": 11},
    {"quality": -1},
])
def test_invalid_settings(client, png_page, fields):
    response = _post(client, png_page, **fields)
    assert response.status_code == 400
    assert response.json()["error_kind"] == "invalid_request"


def test_non_integer_quality_is_a_validation_error(client, png_page):
    response = _post(client, png_page, quality="high")
    assert response.status_code == 422


def test_unrecognized_image(client):
    response = _post(client, b"this is not an image at all")
    assert response.status_code == 415
    assert response.json()["error_kind"] == "unsupported_source_codec"


def test_undecodable_image(client):
    broken = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
    response = _post(client, broken)
    assert response.status_code == 415
    assert response.json()["error_kind"] == "unsupported_source_codec"


def test_formats_endpoint(client):
    response = client.get("/api/v1/formats")
    assert response.status_code == 200
    body = response.json()
    assert "jpeg" in body["encodable"]
    assert "png" in body["encodable"]
    assert "gif" in body["decodable"]


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_detailed_health(client):
    response = client.get("/health/detailed")
    assert response.status_code == 200
    body = response.json()
    assert body["codecs"]["png"]["status"] == "ok"
    assert "cpu_usage" in body["system"]
    assert body["temp_directory"]["exists"] is True
