"""Shared fixtures for the comiconv test suite."""

import io
import tempfile
import zipfile
from pathlib import Path

import pytest
from PIL import Image


def make_image_bytes(fmt="PNG", size=(64, 96), color=(200, 30, 30), mode="RGB"):
    """Encode a solid test page with Pillow."""
    img = Image.new(mode, size, color=color)
    # Give the page some structure so lossy codecs have edges to work on
    for x in range(0, size[0], 8):
        for y in range(size[1]):
            img.putpixel((x, y), (0, 0, 0) if mode == "RGB" else (0, 0, 0, 255))
    buf = io.BytesIO()
    img.save(buf, format=fmt)
    return buf.getvalue()


def make_zip_bytes(members):
    """Build a ZIP archive from (name, bytes) pairs, in order."""
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as zf:
        for name, data in members:
            zf.writestr(name, data)
    return buf.getvalue()


def zip_names(data):
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return zf.namelist()


def zip_read(data, name):
    with zipfile.ZipFile(io.BytesIO(data)) as zf:
        return zf.read(name)


@pytest.fixture
def png_page():
    return make_image_bytes("PNG")


@pytest.fixture
def jpeg_page():
    return make_image_bytes("JPEG", color=(20, 120, 220))


@pytest.fixture
def comic_members():
    """Two pages and a text file, the layout of a typical small CBZ."""
    return [
        ("page1.png", make_image_bytes("PNG", color=(255, 0, 0))),
        ("page2.png", make_image_bytes("PNG", color=(0, 255, 0))),
        ("cover.txt", b"Issue #1 - cover by someone"),
    ]


@pytest.fixture
def work_dir():
    """Create temporary working directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class FakeRarInfo:
    def __init__(self, filename, data=b"", is_directory=False):
        self.filename = filename
        self.data = data
        self.mtime = None
        self._is_directory = is_directory

    def is_dir(self):
        return self._is_directory


class FakeRarFile:
    """
    Stand-in for rarfile.RarFile; no unrar tool is needed in tests.

    Members are taken from ``FakeRarFile.members`` regardless of the bytes.
    """

    members = []

    def __init__(self, fileobj):
        self.fileobj = fileobj

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        return False

    def infolist(self):
        return list(self.members)

    def read(self, info):
        return info.data


# Enough of a RAR 4 signature for container detection
RAR_SIGNATURE = b"Rar!\x1a\x07\x00" + b"\x00" * 32


@pytest.fixture
def fake_rar(monkeypatch):
    """Route RAR reads to FakeRarFile and return a setter for its members."""
    import rarfile

    monkeypatch.setattr(rarfile, "RarFile", FakeRarFile)

    def set_members(members):
        FakeRarFile.members = [
            FakeRarInfo(name, data, is_directory=name.endswith("/")) for name, data in members
        ]
        return RAR_SIGNATURE

    yield set_members
    FakeRarFile.members = []
