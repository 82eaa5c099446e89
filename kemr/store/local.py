"""
JSON file store.

The entire dashboard state lives in one document:

    {"version": 1, "patients": [...], "drafts": {"<mrn>:<form>": {...}}}

Writes go to a temporary file in the same directory and are moved into
place with os.replace, so a crash never leaves a half-written state file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from kemr.errors import StorageError
from kemr.models import Patient
from kemr.store.base import PatientStore
from kemr.store.seed import demo_patients


logger = logging.getLogger(__name__)

STATE_VERSION = 1


class LocalStore(PatientStore):
    """
    Local filesystem store.

    A missing state file means first run: the demo patients are returned and
    written on the next save. A corrupt file is logged and treated the same
    way, after being set aside as state.json.corrupt.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.RLock()

    def _empty_state(self) -> dict[str, Any]:
        return {
            "version": STATE_VERSION,
            "patients": [p.model_dump(mode="json") for p in demo_patients()],
            "drafts": {},
        }

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return self._empty_state()
        try:
            state = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Could not read %s (%s); starting from demo data", self.path, e)
            self._quarantine()
            return self._empty_state()
        if not isinstance(state, dict) or "patients" not in state:
            logger.warning("Unexpected state layout in %s; starting from demo data", self.path)
            self._quarantine()
            return self._empty_state()
        state.setdefault("drafts", {})
        return state

    def _quarantine(self) -> None:
        try:
            os.replace(self.path, self.path.with_suffix(self.path.suffix + ".corrupt"))
        except OSError as e:
            logger.error("Could not move aside corrupt state file %s: %s", self.path, e)

    def _write(self, state: dict[str, Any]) -> None:
        state["version"] = STATE_VERSION
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=".state-", suffix=".json", dir=str(self.path.parent)
            )
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(state, fh, indent=2)
            os.replace(tmp_name, self.path)
        except OSError as e:
            raise StorageError(f"Could not write {self.path}: {e}") from e
        logger.debug("Saved state to %s", self.path)

    def load_patients(self) -> list[Patient]:
        with self._lock:
            state = self._read()
        patients = []
        for raw in state["patients"]:
            try:
                patients.append(Patient.model_validate(raw))
            except ValidationError as e:
                logger.warning("Skipping unreadable patient record %s: %s", raw.get("id"), e)
        return patients

    def save_patients(self, patients: list[Patient]) -> None:
        with self._lock:
            state = self._read()
            state["patients"] = [p.model_dump(mode="json") for p in patients]
            self._write(state)

    def get_draft(self, key: str) -> Optional[dict[str, Any]]:
        with self._lock:
            return self._read()["drafts"].get(key)

    def save_draft(self, key: str, data: dict[str, Any]) -> None:
        with self._lock:
            state = self._read()
            state["drafts"][key] = data
            self._write(state)

    def delete_draft(self, key: str) -> None:
        with self._lock:
            state = self._read()
            if state["drafts"].pop(key, None) is not None:
                self._write(state)

    def reset(self) -> list[Patient]:
        with self._lock:
            state = self._empty_state()
            self._write(state)
        logger.info("State reset to demo patients")
        return [Patient.model_validate(raw) for raw in state["patients"]]
