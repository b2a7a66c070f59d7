"""
The conversion pipeline.

ArchiveReader -> EntryClassifier -> Scheduler (-> Transcoder) -> ArchiveWriter
-> BackupManager -> filesystem.
"""
import logging
import os
from pathlib import Path
from typing import Iterable, List, Optional, Tuple, Union

from comiconv.core.archive import read_archive, read_archive_bytes, write_archive
from comiconv.core.backup import create_backup
from comiconv.core.classifier import classify_entries
from comiconv.core.errors import ConversionError, WriteError
from comiconv.core.remote import RemoteTranscoder
from comiconv.core.scheduler import Scheduler
from comiconv.core.transcoder import LocalTranscoder, Transcoder
from comiconv.models.archive import FileOutcome, OutputArchive, SourceArchive
from comiconv.models.base import ContainerFormat, EntryRole, OutputMode
from comiconv.models.settings import ConverterConfig
from comiconv.utils.file_handling import atomic_write, output_path_for
from comiconv.utils.metrics import PerformanceTimer, measure_conversion_performance
from comiconv.utils.progress import LoggingProgressSink, NullProgressSink, ProgressSink

# Set up logging
logger = logging.getLogger(__name__)


class Converter:
    """Converts comic-book archives according to a ``ConverterConfig``."""

    def __init__(
        self,
        config: Optional[ConverterConfig] = None,
        sink: Optional[ProgressSink] = None,
        transcoder: Optional[Transcoder] = None
    ):
        """
        Initialize the converter.

        Args:
            config: Conversion configuration, defaults when omitted
            sink: Progress sink; a logging sink is used unless ``quiet``
            transcoder: Explicit transcoder; otherwise chosen from
                        ``config.server_address`` (remote) or local
        """
        self.config = config or ConverterConfig()
        self.settings = self.config.settings()
        self.sink = sink
        self._owns_transcoder = transcoder is None

        if transcoder is not None:
            self.transcoder = transcoder
        elif self.settings.is_remote:
            self.transcoder = RemoteTranscoder(
                self.settings.server_address,
                timeout=self.config.remote_timeout,
                retries=self.config.remote_retries,
            )
        else:
            self.transcoder = LocalTranscoder()

        self.fallback = None
        if self.config.remote_fallback_local and not isinstance(self.transcoder, LocalTranscoder):
            self.fallback = LocalTranscoder()

    def close(self) -> None:
        if self._owns_transcoder and isinstance(self.transcoder, RemoteTranscoder):
            self.transcoder.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    def _sink_for(self, total: int) -> ProgressSink:
        if self.sink is not None:
            return self.sink
        if self.config.quiet:
            return NullProgressSink()
        return LoggingProgressSink(total=total)

    def _rename(self, name: str) -> str:
        stem = name.rsplit(".", 1)[0] if "." in name.rsplit("/", 1)[-1] else name
        return f"{stem}.{self.settings.target_format.extension}"

    def convert_archive(self, source: SourceArchive) -> OutputArchive:
        """
        Convert an opened archive.

        Raises:
            TranscodeError: On the first failed page, in strict mode
            WriteError: If the new container cannot be serialized
        """
        entries = classify_entries(source.entries)
        scheduler = Scheduler(
            self.transcoder,
            pool_size=self.config.pool_size,
            policy=self.config.policy,
            sink=self._sink_for(sum(1 for entry in entries if entry.role is EntryRole.IMAGE)),
            fallback=self.fallback,
            collect_metrics=self.config.collect_metrics,
        )
        final, results = scheduler.run(entries, self.settings)

        if self.config.rename_entries:
            final = [
                entry.with_payload(entry.raw_bytes, name=self._rename(entry.name))
                if result is not None and result.ok else entry
                for entry, result in zip(final, results)
            ]

        fmt, data = write_archive(final, source.format)
        return OutputArchive(format=fmt, data=data, entries=final, results=results)

    def convert_bytes(self, data: bytes, name: Optional[str] = None) -> Tuple[ContainerFormat, bytes]:
        """Convert an in-memory archive and return (container, archive bytes)."""
        source = read_archive_bytes(data, name=name, override=self.config.archive_type_override)
        output = self.convert_archive(source)
        return output.format, output.data

    def convert_file(self, path: Union[str, Path]) -> FileOutcome:
        """
        Convert one archive file on disk.

        The new archive is staged to a temporary file and atomically moved
        into place; on any failure the original is left untouched.

        Raises:
            ConversionError: Any archive-level error, or a page error in strict mode
        """
        path = Path(path)
        if not self.config.quiet:
            logger.info(f"Converting {path}...")

        with PerformanceTimer() as timer:
            source = read_archive(path, override=self.config.archive_type_override)
            original_size = path.stat().st_size
            output = self.convert_archive(source)

        target = output_path_for(path, output.format, self.config.output_mode, self.settings.target_format)
        replaces_source = self.config.output_mode is OutputMode.IN_PLACE
        if replaces_source and target != path and target.exists():
            raise WriteError(f"Refusing to overwrite existing {target.name}", path=str(path))

        backup_path = None
        if self.config.backup and replaces_source:
            backup_path = create_backup(path)

        atomic_write(target, output.data)
        if replaces_source and target != path:
            # Container changed (RAR -> ZIP): the new file sits next to the old one
            os.remove(path)
            logger.info(f"Replaced {path.name} with {target.name}")

        if not self.config.quiet:
            stats = measure_conversion_performance(original_size, len(output.data), timer.execution_time)
            logger.info(
                f"Converted {path.name}: {output.converted} converted, {output.failed} failed, "
                f"{output.passthrough} unchanged, {stats['space_savings_percent']}% saved "
                f"in {timer.execution_time:.2f}s"
            )

        return FileOutcome(
            source_path=path,
            success=True,
            output_path=target,
            backup_path=backup_path,
            converted=output.converted,
            failed=output.failed,
            passthrough=output.passthrough,
        )

    def convert_files(self, paths: Iterable[Union[str, Path]]) -> List[FileOutcome]:
        """
        Convert a batch of archives, one after another.

        A failed archive is reported with its path and error kind; the rest of
        the batch still runs.
        """
        paths = [Path(p) for p in paths]
        outcomes = []
        for position, path in enumerate(paths, start=1):
            if not self.config.quiet:
                logger.info(f"[{position}/{len(paths)}] {path.name}")
            try:
                outcomes.append(self.convert_file(path))
            except (ConversionError, OSError) as e:
                kind = getattr(e, "kind", type(e).__name__)
                logger.error(f"{path}: {kind}: {e}")
                outcomes.append(FileOutcome(source_path=path, success=False, error_kind=kind, error=str(e)))

        if not self.config.quiet:
            failed = sum(1 for outcome in outcomes if not outcome.success)
            logger.info(f"Done! {len(outcomes) - failed} converted, {failed} failed")
        return outcomes
