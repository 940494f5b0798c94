"""
Shared test fixtures for the Smart Evaluation backend.
Stores point at temporary files, Gemini and Supabase are replaced with
in-memory fakes. Zero network calls.
"""
import copy
import json
import os
from datetime import datetime, timedelta, timezone

import jwt
import pytest

FIXTURES_DIR = os.path.join(os.path.dirname(__file__), "fixtures")
JWT_SECRET = "test-jwt-secret"


# ── Fakes ─────────────────────────────────────────────────────

class FakeResponse:
    def __init__(self, text):
        self.text = text


class BlockedResponse:
    """A response stopped by safety filters: reading .text raises, as in the SDK."""

    @property
    def text(self):
        raise ValueError("The `response.text` quick accessor requires the response to contain a valid `Part`")


class FakeChat:
    def __init__(self, model, history):
        self.model = model
        self.history = history

    def send_message(self, parts):
        self.model.calls.append({"chat_history": self.history, "message": parts})
        return self.model.next_response()


class FakeGeminiModel:
    """
    Stands in for genai.GenerativeModel. Queued entries are returned in order:
    strings become responses, exceptions are raised, response objects pass through.
    """

    def __init__(self, texts=None):
        self.texts = list(texts or [])
        self.calls = []
        self.created_with = []

    def next_response(self):
        item = self.texts.pop(0) if self.texts else ""
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, str):
            return FakeResponse(item)
        return item

    def generate_content(self, contents, generation_config=None):
        self.calls.append({"contents": contents, "generation_config": generation_config})
        return self.next_response()

    def start_chat(self, history=None):
        return FakeChat(self, history or [])


class FakeResult:
    def __init__(self, data):
        self.data = data


class FakeQuery:
    """Minimal chainable query over an in-memory table, like postgrest's builder."""

    def __init__(self, table, action, payload=None, on_conflict=None):
        self.table = table
        self.action = action
        self.payload = payload
        self.on_conflict = on_conflict
        self.filters = []
        self.order_by = None

    def eq(self, column, value):
        self.filters.append((column, value))
        return self

    def order(self, column, desc=False):
        self.order_by = (column, desc)
        return self

    def _matches(self, row):
        return all(row.get(c) == v for c, v in self.filters)

    def execute(self):
        rows = self.table.rows
        if self.action == "select":
            data = [copy.deepcopy(r) for r in rows if self._matches(r)]
            if self.order_by:
                column, desc = self.order_by
                data.sort(key=lambda r: r.get(column) or "", reverse=desc)
            return FakeResult(data)
        if self.action == "upsert":
            key = self.on_conflict
            self.table.rows = [r for r in rows if r.get(key) != self.payload.get(key)]
            self.table.rows.append(copy.deepcopy(self.payload))
            return FakeResult([copy.deepcopy(self.payload)])
        if self.action == "update":
            updated = []
            for r in rows:
                if self._matches(r):
                    r.update(copy.deepcopy(self.payload))
                    updated.append(copy.deepcopy(r))
            return FakeResult(updated)
        if self.action == "delete":
            removed = [r for r in rows if self._matches(r)]
            self.table.rows = [r for r in rows if not self._matches(r)]
            return FakeResult(removed)
        raise ValueError(self.action)


class FakeTable:
    def __init__(self):
        self.rows = []

    def select(self, columns="*"):
        return FakeQuery(self, "select")

    def upsert(self, payload, on_conflict=None):
        return FakeQuery(self, "upsert", payload, on_conflict)

    def update(self, payload):
        return FakeQuery(self, "update", payload)

    def delete(self):
        return FakeQuery(self, "delete")


class FakeSupabase:
    def __init__(self):
        self.tables = {}

    def table(self, name):
        return self.tables.setdefault(name, FakeTable())


# ── Fixtures ──────────────────────────────────────────────────

@pytest.fixture
def fixtures_dir():
    """Return the path to the fixtures directory."""
    return FIXTURES_DIR


@pytest.fixture
def sample_reports():
    """Fresh copies of the fixture reports."""
    with open(os.path.join(FIXTURES_DIR, "reports.json"), encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def sample_report(sample_reports):
    return sample_reports[0]


@pytest.fixture
def json_store(tmp_path):
    """Activate a JsonReportStore backed by a temp file."""
    from backend.services.report_store import JsonReportStore, set_store
    store = JsonReportStore(str(tmp_path / "records.json"))
    set_store(store)
    yield store
    set_store(None)


@pytest.fixture
def fake_supabase():
    return FakeSupabase()


@pytest.fixture
def supabase_store(fake_supabase):
    from backend.services.report_store import SupabaseReportStore, set_store
    store = SupabaseReportStore(client=fake_supabase)
    set_store(store)
    yield store
    set_store(None)


@pytest.fixture
def fake_gemini(monkeypatch):
    """Patch the Gemini model factory; queue response texts on the returned fake."""
    import backend.services.gemini_service as gs
    model = FakeGeminiModel()

    def _get_model(model_name, system_instruction=None):
        model.created_with.append({"model": model_name, "system_instruction": system_instruction})
        return model

    monkeypatch.setattr(gs, "_get_model", _get_model)
    return model


@pytest.fixture
def audit_file(monkeypatch, tmp_path):
    import backend.audit as audit
    path = str(tmp_path / "audit.log")
    monkeypatch.setattr(audit, "AUDIT_LOG_FILE", path)
    return path


@pytest.fixture
def jwt_secret(monkeypatch):
    monkeypatch.setenv("SUPABASE_JWT_SECRET", JWT_SECRET)
    return JWT_SECRET


@pytest.fixture
def app(jwt_secret, json_store, audit_file):
    from backend.app import create_app
    return create_app({"TESTING": True})


@pytest.fixture
def client(app):
    return app.test_client()


def make_token(sub="teacher-1", email="teacher@school.edu", name="Ms. Rivera", secret=JWT_SECRET,
               expires_in=3600):
    payload = {
        "email": email,
        "aud": "authenticated",
        "user_metadata": {"full_name": name},
        "exp": datetime.now(timezone.utc) + timedelta(seconds=expires_in),
    }
    if sub is not None:
        payload["sub"] = sub
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {make_token()}"}


@pytest.fixture
def other_teacher_headers():
    return {"Authorization": f"Bearer {make_token(sub='teacher-2', email='other@school.edu', name='Mr. Chen')}"}


@pytest.fixture
def ai_evaluation_json():
    """A well-formed model response for a two-question paper."""
    return json.dumps({
        "evaluation": [
            {"question": "Q1. Define velocity.", "student_answer": "Speed with direction",
             "marks_awarded": 4, "max_marks": 5, "feedback": "Mention it is a vector."},
            {"question": "Q2. State Ohm's law.", "student_answer": "V = IR",
             "marks_awarded": 5, "max_marks": 5, "feedback": "Correct."},
        ],
        "summary": {"overall_feedback": "Strong answers overall."},
    })


@pytest.fixture
def token_factory():
    """make_token, for tests that need custom claims."""
    return make_token


@pytest.fixture
def blocked_response():
    return BlockedResponse()
