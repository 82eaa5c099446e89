"""
Debounced autosave for form drafts.

Every keystroke-level update replaces the pending value for its key and
restarts that key's timer. The draft reaches the store only after `delay`
seconds without further updates, so a burst of edits costs one write.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Optional

from kemr.store import PatientStore


logger = logging.getLogger(__name__)


class DraftAutosaver:
    """
    Per-key debounced writer in front of a PatientStore.

    Store writes and deletes are serialised under `_write_lock`, and a write
    re-reads its pending value under that lock. A discard therefore always
    lands after any in-flight write for the same key.
    """

    def __init__(self, store: PatientStore, delay: float = 1.0):
        self.store = store
        self.delay = delay
        self._pending: dict[str, dict[str, Any]] = {}
        self._timers: dict[str, threading.Timer] = {}
        self._lock = threading.Lock()
        self._write_lock = threading.Lock()

    def update(self, key: str, data: dict[str, Any]) -> None:
        """Record the latest draft for `key` and restart its timer."""
        with self._lock:
            self._pending[key] = dict(data)
            timer = self._timers.pop(key, None)
            if timer is not None:
                timer.cancel()
            if self.delay <= 0:
                write_now = True
            else:
                write_now = False
                timer = threading.Timer(self.delay, self._fire, args=(key,))
                timer.daemon = True
                self._timers[key] = timer
                timer.start()
        if write_now:
            self._fire(key)

    def _fire(self, key: str) -> None:
        with self._write_lock:
            with self._lock:
                self._timers.pop(key, None)
                data = self._pending.pop(key, None)
            if data is None:
                return
            try:
                self.store.save_draft(key, data)
            except Exception:
                logger.exception("Autosave failed for draft %s", key)
                return
        logger.debug("Autosaved draft %s", key)

    def get(self, key: str) -> Optional[dict[str, Any]]:
        """Pending value if a write is scheduled, else the stored draft."""
        with self._lock:
            if key in self._pending:
                return dict(self._pending[key])
        return self.store.get_draft(key)

    def has_pending(self, key: str | None = None) -> bool:
        with self._lock:
            return bool(self._pending) if key is None else key in self._pending

    def _drop(self, key: str) -> None:
        self._pending.pop(key, None)
        timer = self._timers.pop(key, None)
        if timer is not None:
            timer.cancel()

    def discard(self, key: str) -> None:
        """Cancel any scheduled write and delete the stored draft."""
        with self._write_lock:
            with self._lock:
                self._drop(key)
            self.store.delete_draft(key)

    def cancel_all(self) -> int:
        """Drop every pending draft without writing it. Returns the number dropped."""
        with self._write_lock:
            with self._lock:
                keys = list(self._pending)
                for key in list(self._timers):
                    self._drop(key)
                self._pending.clear()
        return len(keys)

    def flush(self) -> int:
        """Write every pending draft now. Returns the number written."""
        with self._lock:
            keys = list(self._pending)
            for key in keys:
                timer = self._timers.pop(key, None)
                if timer is not None:
                    timer.cancel()
        for key in keys:
            self._fire(key)
        return len(keys)

    def close(self) -> None:
        """Flush pending drafts; used on shutdown."""
        written = self.flush()
        if written:
            logger.info("Flushed %d pending draft(s)", written)
