"""
firepush/upload/progress.py

Passive recorder of upload progress: counters plus a bounded log of events,
most recent first. Callers poll `snapshot` / `logs`, or register listeners to
be told about every change.
"""

from __future__ import annotations

from collections import deque
from typing import Callable, Deque, List, Optional

from firepush.models.upload import LogKind, UploadLogEntry, UploadProgress

ProgressListener = Callable[[UploadProgress], None]
LogListener = Callable[[UploadLogEntry], None]


class ProgressReporter:
    """Holds the live UploadProgress and a ring buffer of UploadLogEntry objects.

    One reporter belongs to one upload at a time; it is not safe to share
    between concurrently running uploads.
    """

    def __init__(
        self,
        max_entries: int = 100,
        on_progress: Optional[ProgressListener] = None,
        on_log: Optional[LogListener] = None,
    ) -> None:
        self._entries: Deque[UploadLogEntry] = deque(maxlen=max_entries)
        self._progress = UploadProgress()
        self._on_progress = on_progress
        self._on_log = on_log

    @property
    def snapshot(self) -> UploadProgress:
        return self._progress

    @property
    def logs(self) -> List[UploadLogEntry]:
        """Log entries, most recent first."""
        return list(self._entries)

    def emit(
        self, kind: LogKind, message: str, details: Optional[str] = None
    ) -> UploadLogEntry:
        """Record a log entry, evicting the oldest once the buffer is full."""
        entry = UploadLogEntry(kind=LogKind(kind), message=message, details=details)
        self._entries.appendleft(entry)
        if self._on_log is not None:
            self._on_log(entry)
        return entry

    def update_progress(self, completed: int, failed: int, total: int) -> UploadProgress:
        """Publish a new counter snapshot."""
        self._progress = UploadProgress.from_counts(completed, failed, total)
        if self._on_progress is not None:
            self._on_progress(self._progress)
        return self._progress

    def clear_logs(self) -> None:
        self._entries.clear()

    def reset_progress(self) -> None:
        self._progress = UploadProgress()
