"""
Filesystem watcher for the spool directory.

Wakes the scheduler as soon as a file lands in the spool instead of waiting
for the next tick. Uses the watchdog library for cross-platform events.
"""

from pathlib import Path
from typing import Callable

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer


class SpoolEventHandler(FileSystemEventHandler):
    """Calls ``on_arrival`` when a file is created in or moved into the spool."""

    def __init__(self, on_arrival: Callable[[], None]):
        super().__init__()
        self.on_arrival = on_arrival

    def on_created(self, event: FileSystemEvent):
        """Handle file creation."""
        if event.is_directory:
            return
        logger.trace(f"Created: {event.src_path}")
        self.on_arrival()

    def on_moved(self, event: FileSystemEvent):
        """Handle files renamed into the spool (atomic writers)."""
        if event.is_directory:
            return
        logger.trace(f"Moved: {event.src_path} -> {event.dest_path}")
        self.on_arrival()


class SpoolWatcher:
    """Owns the watchdog observer of one spool directory."""

    def __init__(self, folder: Path, on_arrival: Callable[[], None]):
        self.folder = folder
        self.event_handler = SpoolEventHandler(on_arrival)
        self.observer = Observer()
        self.observer.daemon = True

    def start(self):
        """Start watching the spool directory (not recursive)."""
        self.observer.schedule(self.event_handler, str(self.folder), recursive=False)
        self.observer.start()
        logger.success(f"Started watching: {self.folder}")

    def stop(self):
        """Stop watching."""
        self.observer.stop()
        self.observer.join()
        logger.info("Spool observer stopped")
