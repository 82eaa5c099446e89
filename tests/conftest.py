"""
Shared fixtures.

Every test runs against a fresh state file in a temporary directory and
with the LLM client singleton cleared.
"""

import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest

from kemr.models import AiSummary


ENV_VARS = (
    "KEMR_STORE",
    "KEMR_DRAFT_DELAY",
    "KEMR_LOG_LEVEL",
    "KEMR_LLM_MODEL",
    "ANTHROPIC_API_KEY",
    "SUPABASE_URL",
    "SUPABASE_ANON_KEY",
    "SUPABASE_SERVICE_KEY",
    "SUPABASE_JWT_SECRET",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    from kemr.config import reset_settings
    from kemr.db import reset_clients
    from kemr.llm import set_client

    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("KEMR_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("KEMR_CLINICIAN", "Dr. Test Clinician")
    reset_settings()
    reset_clients()
    set_client(None)
    yield
    reset_settings()
    reset_clients()
    set_client(None)


@pytest.fixture
def store(tmp_path):
    from kemr.store import LocalStore
    return LocalStore(tmp_path / "data" / "state.json")


@pytest.fixture
def dashboard(store):
    from kemr.dashboard import ClinicalDashboard
    from kemr.drafts import DraftAutosaver

    board = ClinicalDashboard(store, autosaver=DraftAutosaver(store, delay=0))
    yield board
    board.close()


class FakeLLM:
    """Stands in for LLMClient; records calls and returns a canned summary."""

    def __init__(self, result=None, error=None):
        self.result = result or AiSummary(
            summary="58-year-old woman with poorly controlled hypertension and diabetes.",
            key_concerns=["BP above target", "A1c 7.8%"],
            suggested_actions=["Titrate lisinopril", "Repeat A1c in 3 months"],
        )
        self.error = error
        self.calls = []

    def generate_with_context(self, prompt, context, schema, system=None, **kwargs):
        self.calls.append({"prompt": prompt, "context": context, "schema": schema, "system": system})
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def fake_llm():
    from kemr.llm import set_client

    llm = FakeLLM()
    set_client(llm)
    return llm


class FakeResponse:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Chainable query builder over a FakeTable, like postgrest's."""

    def __init__(self, table, op, payload=None, columns="*"):
        self.table = table
        self.op = op
        self.payload = payload
        self.columns = columns
        self.filters = []

    def eq(self, column, value):
        self.filters.append(lambda row: row.get(column) == value)
        return self

    def neq(self, column, value):
        self.filters.append(lambda row: row.get(column) != value)
        return self

    def in_(self, column, values):
        values = list(values)
        self.filters.append(lambda row: row.get(column) in values)
        return self

    def order(self, column, desc=False):
        self.table.order_by = column
        return self

    def _matches(self, row):
        return all(f(row) for f in self.filters)

    def execute(self):
        rows = self.table.rows
        key = self.table.key
        if self.op == "select":
            data = [dict(r) for r in rows.values() if self._matches(r)]
            if self.columns != "*":
                data = [{c: r[c] for c in self.columns.split(",")} for r in data]
            return FakeResponse(data)
        if self.op == "upsert":
            payload = self.payload if isinstance(self.payload, list) else [self.payload]
            for row in payload:
                rows[row[key]] = dict(row)
            return FakeResponse([dict(r) for r in payload])
        if self.op == "delete":
            removed = [k for k, r in rows.items() if self._matches(r)]
            data = [rows.pop(k) for k in removed]
            return FakeResponse(data)
        raise AssertionError(self.op)


class FakeTable:
    def __init__(self, key):
        self.key = key
        self.rows = {}
        self.order_by = None

    def select(self, columns="*"):
        return FakeQuery(self, "select", columns=columns)

    def upsert(self, payload):
        return FakeQuery(self, "upsert", payload=payload)

    def delete(self):
        return FakeQuery(self, "delete")


class FakeSupabase:
    """In-memory replacement for SupabaseClient.table()."""

    def __init__(self):
        self.tables = {
            "patients": FakeTable("id"),
            "drafts": FakeTable("key"),
            "meta": FakeTable("key"),
        }

    def table(self, name):
        return self.tables[name]


@pytest.fixture
def fake_supabase():
    return FakeSupabase()
