import os
import threading
from pathlib import Path

import pytest

from metrics_sender.utils.config import Settings

from domains.spool_ingest.line_parser import TOKEN_DELIMITER


class RecordingSink:
    """Sink double that keeps every batch it accepts."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.batches = []
        self.closed = False
        self.lock = threading.Lock()

    def write_batch(self, points):
        if self.fail:
            raise ConnectionError("influx is down")
        with self.lock:
            self.batches.append(list(points))
        return len(points)

    def close(self):
        self.closed = True


def check_line(state="0", timestamp="1000000000", perfdata="load=1", **tags) -> str:
    tokens = [f"state::{state}", f"timestamp::{timestamp}", f"perfdata::{perfdata}"]
    tokens += [f"{key}::{value}" for key, value in tags.items()]
    return TOKEN_DELIMITER.join(tokens)


def write_spool_file(folder: Path, name: str, *lines: str, mtime: float = None) -> Path:
    path = folder / name
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    if mtime is not None:
        os.utime(path, (mtime, mtime))
    return path


@pytest.fixture
def spool_dir(tmp_path):
    folder = tmp_path / "spool"
    folder.mkdir()
    return folder


@pytest.fixture
def settings(spool_dir):
    return Settings(
        _env_file=None,
        source_folder=spool_dir,
        process_interval_seconds=0.01,
        reread_folder_seconds=60,
        max_concurrent_workers=2,
    )
