"""Polling filesystem watcher.

Works on any ``warbler.fs.FileSystem`` (embedded snapshots included) by
comparing modification times on a timer instead of relying on OS
notification APIs.
"""

from warbler.fsnotify.event import Event, Op
from warbler.fsnotify.watcher import CHECK_INTERVAL, Watcher

__all__ = ["CHECK_INTERVAL", "Event", "Op", "Watcher"]
