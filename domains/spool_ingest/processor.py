"""
Spool file processor.

Handles one file end to end: read, parse, encode, dispatch, delete. Any
failure leaves the file in the spool so that the next scan picks it up again.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Protocol

from loguru import logger

from metrics_sender.models.schemas import Batch, MeasurementPoint
from metrics_sender.utils.config import Settings

from domains.spool_ingest.errors import (
    DeletionFailure,
    DispatchFailure,
    FileReadError,
    LineTooLong,
    SpoolIngestError,
)
from domains.spool_ingest.inventory import SpoolFile
from domains.spool_ingest.line_parser import parse_lines


class PointSink(Protocol):
    """Anything that accepts a whole batch of points or raises."""

    def write_batch(self, points: List[MeasurementPoint]) -> int:
        ...


@dataclass
class FileOutcome:
    """Result of processing one spool file."""

    path: Path
    stage: str
    points: int = 0
    error: Optional[SpoolIngestError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def iter_lines(path: Path, max_line_length: int) -> Iterator[str]:
    r"""
    Yield the lines of ``path`` without terminators.

    Only ``\n`` ends a line; a single ``\r`` before it is dropped, any other
    ``\r`` is kept as part of the line.

    Raises:
        LineTooLong: If a line exceeds ``max_line_length`` characters
    """
    with open(path, "r", encoding="utf-8", errors="replace", newline="\n") as f:
        for number, line in enumerate(f, 1):
            line = line.removesuffix("\n").removesuffix("\r")
            if len(line) > max_line_length:
                raise LineTooLong(
                    f"line {number} is longer than {max_line_length} characters", path
                )
            yield line


class FileProcessor:
    """Processes single spool files against a shared sink."""

    def __init__(self, sink: PointSink, settings: Settings):
        self.sink = sink
        self.max_line_length = settings.max_line_length

    def read_points(self, path: Path) -> Batch:
        """Read and encode every line of ``path``."""
        try:
            return parse_lines(iter_lines(path, self.max_line_length))
        except OSError as e:
            raise FileReadError(f"Could not read file: {e}", path) from e

    def dispatch(self, path: Path, points: Batch) -> int:
        if not points:
            return 0
        try:
            return self.sink.write_batch(points)
        except DispatchFailure:
            raise
        except Exception as e:
            raise DispatchFailure(f"Could not send points: {e}", path) from e

    def delete(self, path: Path):
        try:
            path.unlink()
        except OSError as e:
            raise DeletionFailure(f"Could not delete file: {e}", path) from e

    def process(self, spool_file: SpoolFile) -> FileOutcome:
        """
        Process one spool file.

        Args:
            spool_file: File to process

        Returns:
            FileOutcome describing how far processing got
        """
        path = spool_file.path
        outcome = FileOutcome(path=path, stage="read")

        try:
            points = self.read_points(path)

            outcome.stage = "dispatch"
            outcome.points = self.dispatch(path, points)

            outcome.stage = "delete"
            self.delete(path)

            outcome.stage = "done"
            logger.debug(f"Successfully processed and sent {outcome.points} points of file {spool_file.name}")

        except SpoolIngestError as e:
            if e.path is None:
                e.path = path
            outcome.stage = e.stage
            outcome.error = e
            logger.error(f"Could not process file {spool_file.name} ({e.stage}): {e}")

        return outcome
