"""Helpers for listing and ordering the spool directory."""

from __future__ import annotations

import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List

from loguru import logger

from domains.spool_ingest.errors import DirectoryUnavailable


class SpoolOrder(str, Enum):
    """Order in which files of one scan are submitted."""

    OLDEST_FIRST = "oldest_first"
    NEWEST_FIRST = "newest_first"


@dataclass(frozen=True, slots=True)
class SpoolFile:
    """Description of one entry of the spool directory."""

    path: Path
    name: str
    modified: float
    kind: str

    @property
    def is_file(self) -> bool:
        return self.kind == "file"


def create_spool_file(entry: os.DirEntry) -> SpoolFile:
    """Build a ``SpoolFile`` from a directory entry (may raise ``OSError``)."""

    stats = entry.stat()
    kind = "directory" if entry.is_dir() else "file"

    return SpoolFile(
        path=Path(entry.path),
        name=entry.name,
        modified=stats.st_mtime,
        kind=kind,
    )


def list_spool_files(folder: Path) -> List[SpoolFile]:
    """
    List the regular files of ``folder``.

    Sub-directories are skipped. Entries that disappear between listing and
    ``stat`` are skipped too.

    Raises:
        DirectoryUnavailable: If the folder cannot be listed
    """

    try:
        with os.scandir(folder) as entries:
            candidates = list(entries)
    except OSError as e:
        raise DirectoryUnavailable(f"Could not read source folder {folder}: {e}", folder) from e

    files: List[SpoolFile] = []
    for entry in candidates:
        try:
            item = create_spool_file(entry)
        except OSError as e:
            logger.warning(f"Could not read info of file {entry.name}: {e}")
            continue
        if not item.is_file:
            continue
        files.append(item)

    return files


def order_spool_files(files: Iterable[SpoolFile], order: SpoolOrder) -> List[SpoolFile]:
    """Sort ``files`` by modification time, name breaking ties."""

    newest_first = SpoolOrder(order) is SpoolOrder.NEWEST_FIRST
    ordered = sorted(files, key=lambda item: item.name)
    # sorted() is stable, so names stay ascending within equal timestamps
    return sorted(ordered, key=lambda item: item.modified, reverse=newest_first)
