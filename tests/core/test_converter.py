"""Tests for the archive conversion pipeline."""

import io
import logging

import pytest
from PIL import Image

from comiconv.core.converter import Converter
from comiconv.core.errors import EncodeFailure, TranscodeError, WriteError
from comiconv.core.formats import detect_image_codec
from comiconv.core.archive import read_archive, read_archive_bytes, write_archive
from comiconv.models.archive import ArchiveEntry
from comiconv.models.base import ContainerFormat, FailurePolicy, ImageFormat, OutputMode, SourceCodec
from comiconv.models.settings import ConverterConfig

from conftest import make_image_bytes, make_zip_bytes, zip_names, zip_read


def _config(**kwargs):
    values = {"format": ImageFormat.WEBP, "quality": 101, "speed": 3, "thread_count": 2, "quiet": True}
    values.update(kwargs)
    return ConverterConfig(**values)


def test_zip_pages_to_lossless_webp(work_dir, comic_members):
    path = work_dir / "issue1.cbz"
    path.write_bytes(make_zip_bytes(comic_members))

    outcome = Converter(_config()).convert_file(path)

    assert outcome.success
    assert outcome.output_path == path
    assert (outcome.converted, outcome.failed, outcome.passthrough) == (2, 0, 1)

    data = path.read_bytes()
    assert zip_names(data) == ["page1.png", "page2.png", "cover.txt"]
    assert zip_read(data, "cover.txt") == comic_members[2][1]
    for name, original in comic_members[:2]:
        converted = zip_read(data, name)
        assert detect_image_codec(converted) is SourceCodec.WEBP
        with Image.open(io.BytesIO(original)) as a, Image.open(io.BytesIO(converted)) as b:
            assert a.size == b.size
            assert list(a.convert("RGB").getdata()) == list(b.convert("RGB").getdata())


def test_convert_bytes_keeps_container(comic_members):
    fmt, data = Converter(_config(format=ImageFormat.PNG)).convert_bytes(make_zip_bytes(comic_members))
    assert fmt is ContainerFormat.ZIP
    assert zip_names(data) == ["page1.png", "page2.png", "cover.txt"]


@pytest.mark.parametrize("fmt", [ContainerFormat.TAR, ContainerFormat.SEVEN_ZIP])
def test_other_containers_round_trip(fmt, comic_members):
    entries = [ArchiveEntry(name, data) for name, data in comic_members]
    _, source = write_archive(entries, fmt)

    out_fmt, data = Converter(_config(format=ImageFormat.JPEG, quality=80)).convert_bytes(source)

    assert out_fmt is fmt
    archive = read_archive_bytes(data)
    assert [e.name for e in archive.entries] == ["page1.png", "page2.png", "cover.txt"]
    assert detect_image_codec(archive.entries[0].raw_bytes) is SourceCodec.JPEG
    assert archive.entries[2].raw_bytes == comic_members[2][1]


def test_rar_becomes_cbz(work_dir, fake_rar):
    pages = [("001.png", make_image_bytes()), ("002.png", make_image_bytes(color=(1, 2, 3)))]
    path = work_dir / "volume.cbr"
    path.write_bytes(fake_rar(pages))

    outcome = Converter(_config()).convert_file(path)

    assert outcome.output_path == work_dir / "volume.cbz"
    assert not path.exists()
    data = outcome.output_path.read_bytes()
    assert zip_names(data) == ["001.png", "002.png"]
    assert all(detect_image_codec(zip_read(data, n)) is SourceCodec.WEBP for n in ["001.png", "002.png"])


def test_rar_does_not_clobber_existing_cbz(work_dir, fake_rar):
    path = work_dir / "book.cbr"
    rar_bytes = fake_rar([("001.png", make_image_bytes())])
    path.write_bytes(rar_bytes)
    unrelated = work_dir / "book.cbz"
    unrelated.write_bytes(b"unrelated user archive")

    with pytest.raises(WriteError):
        Converter(_config(backup=True)).convert_file(path)

    assert unrelated.read_bytes() == b"unrelated user archive"
    assert path.read_bytes() == rar_bytes
    assert not (work_dir / "book.cbr.bak").exists()

    outcomes = Converter(_config()).convert_files([path])
    assert not outcomes[0].success
    assert outcomes[0].error_kind == "WriteError"
    assert unrelated.read_bytes() == b"unrelated user archive"


def test_reconversion_keeps_structure(comic_members):
    converter = Converter(_config(format=ImageFormat.JPEG, quality=60))
    _, once = converter.convert_bytes(make_zip_bytes(comic_members))
    _, twice = converter.convert_bytes(once)
    assert zip_names(once) == zip_names(twice)


def test_rename_entries(comic_members):
    config = _config(format=ImageFormat.JPEG, quality=70, rename_entries=True)
    _, data = Converter(config).convert_bytes(make_zip_bytes(comic_members))
    assert zip_names(data) == ["page1.jpg", "page2.jpg", "cover.txt"]


def test_backup_is_created(work_dir, comic_members):
    path = work_dir / "book.cbz"
    original = make_zip_bytes(comic_members)
    path.write_bytes(original)

    outcome = Converter(_config(backup=True)).convert_file(path)

    assert outcome.backup_path == work_dir / "book.cbz.bak"
    assert outcome.backup_path.read_bytes() == original
    assert path.read_bytes() != original


def test_sibling_output_leaves_original(work_dir, comic_members):
    path = work_dir / "book.cbz"
    original = make_zip_bytes(comic_members)
    path.write_bytes(original)

    outcome = Converter(_config(output_mode=OutputMode.SIBLING)).convert_file(path)

    assert outcome.output_path == work_dir / "book_webp.cbz"
    assert path.read_bytes() == original
    assert zip_names(outcome.output_path.read_bytes()) == ["page1.png", "page2.png", "cover.txt"]


def test_best_effort_keeps_undecodable_page(comic_members):
    # PNG signature followed by garbage: classified as image, fails to decode
    broken = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
    members = comic_members[:1] + [("broken.png", broken)] + comic_members[1:]

    converter = Converter(_config(format=ImageFormat.JPEG, quality=80))
    source = read_archive_bytes(make_zip_bytes(members))
    output = converter.convert_archive(source)

    assert (output.converted, output.failed, output.passthrough) == (2, 1, 1)
    assert zip_read(output.data, "broken.png") == broken


def test_strict_leaves_original_untouched(work_dir, comic_members):
    broken = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64
    path = work_dir / "book.cbz"
    original = make_zip_bytes(comic_members + [("broken.png", broken)])
    path.write_bytes(original)

    converter = Converter(_config(policy=FailurePolicy.STRICT, backup=True))
    with pytest.raises(TranscodeError) as exc_info:
        converter.convert_file(path)

    assert exc_info.value.kind == "UnsupportedSourceCodec"
    assert path.read_bytes() == original
    assert not (work_dir / "book.cbz.bak").exists()


def test_batch_continues_after_failure(work_dir, comic_members, caplog):
    corrupt = work_dir / "corrupt.cbz"
    corrupt.write_bytes(b"PK\x03\x04 this is not really a zip")
    unknown = work_dir / "notes.txt"
    unknown.write_bytes(b"shopping list")
    good = work_dir / "good.cbz"
    good.write_bytes(make_zip_bytes(comic_members))

    with caplog.at_level(logging.ERROR):
        outcomes = Converter(_config()).convert_files([corrupt, unknown, good])

    assert [o.success for o in outcomes] == [False, False, True]
    assert outcomes[0].error_kind == "CorruptArchive"
    assert outcomes[1].error_kind == "UnsupportedContainer"
    assert corrupt.read_bytes() == b"PK\x03\x04 this is not really a zip"
    assert f"{corrupt}: CorruptArchive:" in caplog.text


def test_missing_file_is_reported(work_dir):
    outcomes = Converter(_config()).convert_files([work_dir / "missing.cbz"])
    assert outcomes[0].success is False
    assert outcomes[0].error_kind == "FileNotFoundError"


def test_injected_transcoder_and_sink(comic_members):
    class JpegTranscoder:
        def transcode(self, data, settings):
            return make_image_bytes("JPEG")

    class Sink:
        def __init__(self):
            self.done = []

        def on_start(self, index, name):
            pass

        def on_done(self, index, name, size_delta):
            self.done.append(name)

        def on_error(self, index, name, error):
            pass

    sink = Sink()
    converter = Converter(_config(), sink=sink, transcoder=JpegTranscoder())
    _, data = converter.convert_bytes(make_zip_bytes(comic_members))

    assert sorted(sink.done) == ["page1.png", "page2.png"]
    assert detect_image_codec(zip_read(data, "page1.png")) is SourceCodec.JPEG


def test_archive_type_override(work_dir, comic_members):
    path = work_dir / "misnamed.cbr"
    path.write_bytes(make_zip_bytes(comic_members))

    outcome = Converter(_config(archive_type_override=ContainerFormat.ZIP)).convert_file(path)

    assert outcome.success
    assert read_archive(outcome.output_path).format is ContainerFormat.ZIP


def test_quality_metrics_collected(comic_members):
    config = _config(collect_metrics=True)
    output = Converter(config).convert_archive(read_archive_bytes(make_zip_bytes(comic_members)))

    page_results = [r for r in output.results if r is not None]
    assert all(r.psnr == 100.0 for r in page_results)
    assert all(r.ssim == pytest.approx(1.0) for r in page_results)


def test_encode_failure_is_per_page(comic_members):
    class Failing:
        def transcode(self, data, settings):
            raise EncodeFailure("encoder exploded")

    output = Converter(_config(), transcoder=Failing()).convert_archive(
        read_archive_bytes(make_zip_bytes(comic_members))
    )
    assert output.failed == 2
    assert zip_read(output.data, "page1.png") == comic_members[0][1]
