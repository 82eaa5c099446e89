"""
Tests for debounced draft autosave.
"""

import threading
import time

import pytest


class RecordingStore:
    """Store double that records draft writes."""

    def __init__(self):
        self.drafts = {}
        self.writes = []

    def get_draft(self, key):
        return self.drafts.get(key)

    def save_draft(self, key, data):
        self.writes.append((key, data))
        self.drafts[key] = data

    def delete_draft(self, key):
        self.drafts.pop(key, None)


class TestDraftAutosaver:

    def test_burst_of_updates_writes_once(self):
        from kemr.drafts import DraftAutosaver

        store = RecordingStore()
        saver = DraftAutosaver(store, delay=0.05)
        for text in ("S", "Su", "Sul", "Sulfa"):
            saver.update("MRN1:alert", {"text": text})
        assert store.writes == []
        assert saver.has_pending("MRN1:alert")

        time.sleep(0.3)
        assert store.writes == [("MRN1:alert", {"text": "Sulfa"})]
        assert not saver.has_pending()

    def test_get_prefers_pending_value(self):
        from kemr.drafts import DraftAutosaver

        store = RecordingStore()
        store.drafts["MRN1:note"] = {"content": "old"}
        saver = DraftAutosaver(store, delay=60)
        saver.update("MRN1:note", {"content": "new"})
        assert saver.get("MRN1:note") == {"content": "new"}
        saver.discard("MRN1:note")

    def test_flush_writes_immediately(self):
        from kemr.drafts import DraftAutosaver

        store = RecordingStore()
        saver = DraftAutosaver(store, delay=60)
        saver.update("a:alert", {"text": "x"})
        saver.update("b:alert", {"text": "y"})
        assert saver.flush() == 2
        assert dict(store.writes) == {"a:alert": {"text": "x"}, "b:alert": {"text": "y"}}
        assert saver.flush() == 0

    def test_discard_cancels_pending_write(self):
        from kemr.drafts import DraftAutosaver

        store = RecordingStore()
        store.drafts["MRN1:alert"] = {"text": "stored"}
        saver = DraftAutosaver(store, delay=0.05)
        saver.update("MRN1:alert", {"text": "typed"})
        saver.discard("MRN1:alert")

        time.sleep(0.2)
        assert store.writes == []
        assert saver.get("MRN1:alert") is None

    def test_zero_delay_writes_synchronously(self):
        from kemr.drafts import DraftAutosaver

        store = RecordingStore()
        DraftAutosaver(store, delay=0).update("k", {"a": 1})
        assert store.writes == [("k", {"a": 1})]

    def test_failed_write_is_logged(self, caplog):
        from kemr.drafts import DraftAutosaver

        class FailingStore(RecordingStore):
            def save_draft(self, key, data):
                raise OSError("disk full")

        DraftAutosaver(FailingStore(), delay=0).update("k", {"a": 1})
        assert "Autosave failed for draft k" in caplog.text

    def test_update_copies_data(self):
        from kemr.drafts import DraftAutosaver

        store = RecordingStore()
        saver = DraftAutosaver(store, delay=60)
        data = {"text": "a"}
        saver.update("k", data)
        data["text"] = "changed"
        assert saver.get("k") == {"text": "a"}
        saver.close()

    def test_discard_during_write_wins(self):
        from kemr.drafts import DraftAutosaver

        class SlowStore(RecordingStore):
            def __init__(self):
                super().__init__()
                self.writing = threading.Event()
                self.release = threading.Event()

            def save_draft(self, key, data):
                self.writing.set()
                self.release.wait(2)
                super().save_draft(key, data)

        store = SlowStore()
        saver = DraftAutosaver(store, delay=0)
        writer = threading.Thread(target=saver.update, args=("MRN1:note", {"content": "half typed"}))
        writer.start()
        assert store.writing.wait(2)

        discarder = threading.Thread(target=saver.discard, args=("MRN1:note",))
        discarder.start()
        time.sleep(0.05)
        store.release.set()
        writer.join(2)
        discarder.join(2)

        assert store.get_draft("MRN1:note") is None

    def test_cancel_all_drops_pending(self):
        from kemr.drafts import DraftAutosaver

        store = RecordingStore()
        saver = DraftAutosaver(store, delay=0.05)
        saver.update("a:note", {"content": "x"})
        saver.update("b:note", {"content": "y"})
        assert saver.cancel_all() == 2

        time.sleep(0.2)
        assert store.writes == []
        assert not saver.has_pending()
