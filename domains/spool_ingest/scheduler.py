"""
Directory scheduler for the spool ingestion pipeline.

Runs two nested loops:
- the tick loop drains the spool every ``process_interval_seconds``
- the drain loop repeats scan cycles while a cycle ends early because the
  re-scan timeout (``reread_folder_seconds``) ran out, so that newly
  arrived files are listed again instead of waiting behind an old listing

Each scan cycle submits files to a bounded worker pool. In-flight workers
always run to completion, also when a stop is requested.
"""

import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, List

from loguru import logger

from metrics_sender.utils.config import Settings
from metrics_sender.utils.influx_client import create_influx_client

from domains.spool_ingest.errors import DirectoryUnavailable, SpoolIngestError
from domains.spool_ingest.inventory import SpoolFile, list_spool_files, order_spool_files
from domains.spool_ingest.processor import FileOutcome, FileProcessor, PointSink


@dataclass
class ScanResult:
    """Summary of one scan cycle."""

    listed: int = 0
    submitted: int = 0
    succeeded: int = 0
    failed: int = 0
    completed: bool = True


class SpoolScheduler:
    """Scans the spool directory and feeds files to a bounded worker pool."""

    def __init__(
        self,
        settings: Settings,
        sink_factory: Callable[[Settings], PointSink] = create_influx_client,
        processor_factory: Callable[[PointSink, Settings], FileProcessor] = FileProcessor,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize scheduler.

        Args:
            settings: Application settings
            sink_factory: Opens a sink handle for one scan cycle
            processor_factory: Builds the per-cycle file processor
            clock: Monotonic clock used for the re-scan timeout
        """
        self.settings = settings
        self.sink_factory = sink_factory
        self.processor_factory = processor_factory
        self.clock = clock

        self.max_workers = settings.max_concurrent_workers
        self.timeout = settings.reread_folder_seconds

        self.stop_event = threading.Event()
        self.wake_event = threading.Event()

    def request_stop(self):
        """Stop starting new cycles and submitting new files."""
        self.stop_event.set()
        self.wake_event.set()

    def wake(self):
        """Start the next drain without waiting for the tick."""
        self.wake_event.set()

    def list_spool_files(self) -> List[SpoolFile]:
        return list_spool_files(self.settings.source_folder)

    def order_files(self, files: List[SpoolFile]) -> List[SpoolFile]:
        return order_spool_files(files, self.settings.spool_order)

    def _process_file(
        self,
        processor: FileProcessor,
        spool_file: SpoolFile,
        slots: threading.BoundedSemaphore,
    ) -> FileOutcome:
        try:
            return processor.process(spool_file)
        except Exception as e:
            logger.exception(f"Unexpected error while processing file {spool_file.name}: {e}")
            return FileOutcome(
                path=spool_file.path,
                stage="unknown",
                error=SpoolIngestError(str(e), spool_file.path),
            )
        finally:
            slots.release()

    def _close_sink(self, sink: PointSink):
        close = getattr(sink, "close", None)
        if close is None:
            return
        try:
            close()
        except Exception as e:
            logger.warning(f"Could not close sink: {e}")

    def scan_once(self) -> ScanResult:
        """
        Run one scan cycle.

        Returns:
            ScanResult; ``completed`` is False when submission stopped early
        """
        result = ScanResult()

        try:
            files = self.list_spool_files()
        except DirectoryUnavailable as e:
            logger.error(str(e))
            return result

        if not files:
            logger.debug("No files to process")
            return result

        result.listed = len(files)
        files = self.order_files(files)

        try:
            sink = self.sink_factory(self.settings)
        except Exception as e:
            logger.error(f"Could not connect to sink: {e}")
            return result

        processor = self.processor_factory(sink, self.settings)
        slots = threading.BoundedSemaphore(self.max_workers)
        futures: List[Future] = []
        start = self.clock()

        logger.debug(f"Starting processing of {len(files)} files")

        try:
            with ThreadPoolExecutor(
                max_workers=self.max_workers, thread_name_prefix="spool-worker"
            ) as executor:
                for spool_file in files:
                    if self.stop_event.is_set():
                        logger.info("Stop requested, not submitting further files")
                        result.completed = False
                        break

                    if self.clock() - start > self.timeout:
                        logger.warning(
                            f"Processing of directory took longer than {self.timeout:.0f} seconds: re-starting..."
                        )
                        result.completed = False
                        break

                    # blocks while all workers are busy
                    slots.acquire()
                    futures.append(executor.submit(self._process_file, processor, spool_file, slots))
        finally:
            self._close_sink(sink)

        result.submitted = len(futures)
        for future in futures:
            if future.result().ok:
                result.succeeded += 1
            else:
                result.failed += 1

        if result.completed:
            logger.info(
                f"Finished processing of {result.submitted} files: "
                f"{result.succeeded} sent, {result.failed} failed"
            )

        return result

    def drain(self) -> int:
        """
        Scan until a cycle completes without hitting the re-scan timeout.

        Returns:
            Number of cycles run
        """
        cycles = 0
        while True:
            cycles += 1
            result = self.scan_once()
            if result.completed or self.stop_event.is_set():
                return cycles

    def run(self):
        """Drain now and after every tick until ``request_stop`` is called."""
        logger.info(
            f"Watching {self.settings.source_folder} every {self.settings.process_interval_seconds}s "
            f"with {self.max_workers} workers"
        )

        while not self.stop_event.is_set():
            self.drain()
            self.wake_event.wait(self.settings.process_interval_seconds)
            self.wake_event.clear()

        logger.info("Scheduler stopped")
