"""
Core conversion pipeline.

This package contains the stages a comic-book archive passes through:
- formats / archive: container detection, reading and writing
- classifier: image vs. passthrough entries
- transcoder / remote: local and remote page conversion
- scheduler: bounded parallel conversion with ordered results
- backup / converter: preserving originals and driving the whole pipeline
"""
from comiconv.core.errors import (
    ConversionError,
    ArchiveError,
    UnsupportedContainer,
    CorruptArchive,
    WriteError,
    BackupError,
    TranscodeError,
    UnsupportedSourceCodec,
    EncodeFailure,
    RemoteTranscodeError
)

from comiconv.core.formats import (
    detect_image_codec,
    detect_container,
    detect_container_magic
)

from comiconv.core.archive import (
    read_archive,
    read_archive_bytes,
    write_archive,
    validate_entry_name
)

from comiconv.core.classifier import classify, classify_entries

from comiconv.core.transcoder import (
    Transcoder,
    LocalTranscoder,
    decode_image,
    encode_image,
    encoder_options,
    supported_source_codecs,
    supported_target_formats
)

from comiconv.core.remote import RemoteTranscoder, normalize_server_address
from comiconv.core.scheduler import Scheduler
from comiconv.core.backup import create_backup, backup_path_for
from comiconv.core.converter import Converter

__all__ = [
    # Errors
    'ConversionError',
    'ArchiveError',
    'UnsupportedContainer',
    'CorruptArchive',
    'WriteError',
    'BackupError',
    'TranscodeError',
    'UnsupportedSourceCodec',
    'EncodeFailure',
    'RemoteTranscodeError',

    # Detection
    'detect_image_codec',
    'detect_container',
    'detect_container_magic',

    # Containers
    'read_archive',
    'read_archive_bytes',
    'write_archive',
    'validate_entry_name',
    'classify',
    'classify_entries',

    # Transcoding
    'Transcoder',
    'LocalTranscoder',
    'RemoteTranscoder',
    'decode_image',
    'encode_image',
    'encoder_options',
    'normalize_server_address',
    'supported_source_codecs',
    'supported_target_formats',

    # Pipeline
    'Scheduler',
    'create_backup',
    'backup_path_for',
    'Converter'
]
