"""
Bounded fan-out of image jobs with strict, index-ordered fan-in.

Each archive gets its own ``Scheduler``. Image entries become jobs submitted
to a thread pool; a bounded semaphore makes submission block while the pool
is saturated, so at most ``pool_size`` jobs are ever in flight. Results land
in a buffer sized to the entry count, written by index, and are read only
once every entry has resolved.
"""
import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

from comiconv.core.errors import RemoteTranscodeError, TranscodeError
from comiconv.core.transcoder import Transcoder
from comiconv.models.archive import ArchiveEntry
from comiconv.models.base import EntryRole, FailurePolicy
from comiconv.models.jobs import ConversionJob, ConversionResult
from comiconv.models.settings import ConversionSettings
from comiconv.utils.progress import NullProgressSink, ProgressSink

# Set up logging
logger = logging.getLogger(__name__)


class Scheduler:
    """Runs the image jobs of one archive on a bounded worker pool."""

    def __init__(
        self,
        transcoder: Transcoder,
        pool_size: int,
        policy: FailurePolicy = FailurePolicy.BEST_EFFORT,
        sink: Optional[ProgressSink] = None,
        fallback: Optional[Transcoder] = None,
        collect_metrics: bool = False
    ):
        """
        Initialize a scheduler.

        Args:
            transcoder: Transcoder every job is dispatched to
            pool_size: Maximum number of jobs running at once
            policy: BEST_EFFORT keeps failed pages as-is, STRICT aborts on the first failure
            sink: Receiver of per-entry progress events
            fallback: Transcoder retried once when the primary fails remotely
            collect_metrics: Compute PSNR/SSIM for every converted page
        """
        if pool_size < 1:
            raise ValueError("pool_size must be at least 1")
        self.transcoder = transcoder
        self.pool_size = pool_size
        self.policy = policy
        self.sink = sink or NullProgressSink()
        self.fallback = fallback
        self.collect_metrics = collect_metrics

        self._slots = threading.BoundedSemaphore(pool_size)
        self._sink_lock = threading.Lock()
        self._abort = threading.Event()
        self._first_error: Optional[TranscodeError] = None

    def _notify(self, event: str, *args) -> None:
        with self._sink_lock:
            getattr(self.sink, event)(*args)

    def _transcode(self, job: ConversionJob) -> bytes:
        try:
            return self.transcoder.transcode(job.source_bytes, job.settings)
        except RemoteTranscodeError as e:
            if self.fallback is None:
                raise
            logger.warning(f"Remote conversion of {job.name} failed ({e.error_kind}), converting locally")
            return self.fallback.transcode(job.source_bytes, job.settings)

    def _run_job(self, job: ConversionJob) -> ConversionResult:
        try:
            self._notify("on_start", job.entry_index, job.name)
            try:
                encoded = self._transcode(job)
            except TranscodeError as e:
                result = ConversionResult.failure(job, e)
                self._notify("on_error", job.entry_index, job.name, e)
                if self.policy is FailurePolicy.STRICT:
                    self._record_abort(e)
                return result

            psnr = ssim = None
            if self.collect_metrics:
                # Import here to avoid circular imports
                from comiconv.utils.metrics import measure_quality
                psnr, ssim = measure_quality(job.source_bytes, encoded)

            result = ConversionResult.success(job, encoded, psnr=psnr, ssim=ssim)
            self._notify("on_done", job.entry_index, job.name, result.size_delta)
            return result
        finally:
            self._slots.release()

    def _record_abort(self, error: TranscodeError) -> None:
        with self._sink_lock:
            if self._first_error is None:
                self._first_error = error
        self._abort.set()

    def run(
        self,
        entries: List[ArchiveEntry],
        settings: ConversionSettings
    ) -> Tuple[List[ArchiveEntry], List[Optional[ConversionResult]]]:
        """
        Convert every image entry and assemble the final ordered sequence.

        Args:
            entries: Classified entries in archive order
            settings: Frozen settings shared by every job

        Returns:
            Tuple of (final entries, per-entry results). Results are None for
            passthrough entries; failed images keep their original bytes.

        Raises:
            TranscodeError: The first failure, when the policy is STRICT
        """
        results: List[Optional[ConversionResult]] = [None] * len(entries)
        futures = {}
        self._abort.clear()
        self._first_error = None

        with ThreadPoolExecutor(max_workers=self.pool_size, thread_name_prefix="comiconv") as executor:
            for index, entry in enumerate(entries):
                if entry.role is not EntryRole.IMAGE:
                    continue
                self._slots.acquire()
                if self._abort.is_set():
                    self._slots.release()
                    break
                job = ConversionJob(
                    entry_index=index,
                    name=entry.name,
                    source_bytes=entry.raw_bytes,
                    settings=settings,
                )
                futures[index] = executor.submit(self._run_job, job)

        # The executor has drained: every submitted job has resolved
        if self._abort.is_set():
            logger.warning(f"Aborting archive after failure: {self._first_error}")
            raise self._first_error

        for index, future in futures.items():
            results[index] = future.result()

        final = []
        for index, entry in enumerate(entries):
            result = results[index]
            if result is not None and result.ok:
                final.append(entry.with_payload(result.encoded_bytes))
            else:
                final.append(entry)
        return final, results
