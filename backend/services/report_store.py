"""
Report Store
============
Persistence for evaluation reports.

Reports are keyed by the teacher-supplied submission id. Saving a report
under an id that already exists overwrites the earlier one; there is no
versioning. Every write recomputes the summary from the evaluation items so
a stored report always satisfies
    summary.total_marks_awarded == sum(item.marks_awarded).

Two stores share one interface:
- SupabaseReportStore: the `reports` table in Supabase (default)
- JsonReportStore: a local JSON file, for single-machine use and tests
"""
import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone

from supabase import create_client, Client

from backend.config import SUPABASE_URL, SUPABASE_SERVICE_KEY, REPORTS_TABLE, config
from backend.services.grade_calculator import normalize_item, recompute_summary

logger = logging.getLogger(__name__)

# Columns of the reports table; display-only fields are dropped on write
REPORT_FIELDS = (
    "submission_id", "student_name", "roll_no", "subject", "submission_date",
    "extracted_text", "plagiarism_report", "evaluation", "summary",
    "graded_by", "teacher_name", "created_at",
)


def _now_iso():
    return datetime.now(timezone.utc).isoformat()


def _clean(value):
    return str(value or "").strip()


def prepare_for_storage(report: dict, teacher_id: str, teacher_name: str = "",
                        created_at: str = None) -> dict:
    """Recompute the derived summary and stamp ownership fields."""
    submission_id = _clean(report.get("submission_id"))
    if not submission_id:
        raise ValueError("submission_id is required")

    evaluation = report.get("evaluation") or []
    if not isinstance(evaluation, list) or not all(isinstance(item, dict) for item in evaluation):
        raise ValueError("evaluation must be a list of question objects")

    row = {k: v for k, v in report.items() if k in REPORT_FIELDS}
    row["evaluation"] = [normalize_item(item) for item in evaluation]
    row = recompute_summary(row)
    row["submission_id"] = submission_id
    for field in ("student_name", "roll_no", "subject"):
        row[field] = _clean(row.get(field))
    row["graded_by"] = teacher_id
    row["teacher_name"] = teacher_name or row.get("teacher_name") or ""
    row["created_at"] = created_at or _now_iso()
    row.setdefault("submission_date", row["created_at"])
    return row


class SupabaseReportStore:
    """Reports in a Supabase table with `submission_id` as primary key."""

    def __init__(self, client: Client = None, table: str = REPORTS_TABLE):
        self._client = client
        self.table = table

    @property
    def client(self) -> Client:
        if self._client is None:
            if not SUPABASE_URL or not SUPABASE_SERVICE_KEY:
                raise RuntimeError("Supabase credentials not configured. "
                                   "Check SUPABASE_URL and SUPABASE_SERVICE_KEY in .env")
            self._client = create_client(SUPABASE_URL, SUPABASE_SERVICE_KEY)
        return self._client

    def _table(self):
        return self.client.table(self.table)

    def save_report(self, report: dict, teacher_id: str, teacher_name: str = "") -> str:
        row = prepare_for_storage(report, teacher_id, teacher_name)
        self._table().upsert(row, on_conflict="submission_id").execute()
        logger.info("Report saved with ID: %s", row["submission_id"])
        return row["submission_id"]

    def get_report(self, submission_id: str, teacher_id: str = None):
        query = self._table().select("*").eq("submission_id", submission_id)
        if teacher_id:
            query = query.eq("graded_by", teacher_id)
        result = query.execute()
        return result.data[0] if result.data else None

    def list_reports(self, teacher_id: str) -> list:
        result = (self._table().select("*")
                  .eq("graded_by", teacher_id)
                  .order("created_at", desc=True)
                  .execute())
        return result.data or []

    def update_report(self, submission_id: str, report: dict, teacher_id: str):
        existing = self.get_report(submission_id, teacher_id)
        if existing is None:
            return None
        merged = dict(report, submission_id=submission_id)
        row = prepare_for_storage(merged, teacher_id, existing.get("teacher_name", ""),
                                  created_at=existing.get("created_at"))
        (self._table().update(row)
         .eq("submission_id", submission_id)
         .eq("graded_by", teacher_id)
         .execute())
        logger.info("Report %s updated", submission_id)
        return row

    def delete_report(self, submission_id: str, teacher_id: str) -> bool:
        result = (self._table().delete()
                  .eq("submission_id", submission_id)
                  .eq("graded_by", teacher_id)
                  .execute())
        deleted = bool(result.data)
        if deleted:
            logger.info("Report %s deleted", submission_id)
        return deleted

    def find_student_reports(self, student_name: str, roll_no: str) -> list:
        result = (self._table().select("*")
                  .eq("student_name", _clean(student_name))
                  .eq("roll_no", _clean(roll_no))
                  .order("created_at", desc=True)
                  .execute())
        return result.data or []


class JsonReportStore:
    """Reports in a local JSON file: {submission_id: report}."""

    def __init__(self, path: str = None):
        self.path = path or config.records_file
        self._lock = threading.Lock()

    def _load(self) -> dict:
        if not os.path.exists(self.path):
            return {}
        with open(self.path, 'r', encoding='utf-8') as f:
            try:
                return json.load(f)
            except json.JSONDecodeError:
                logger.error("Failed to parse records from %s", self.path)
                raise

    def _write(self, records: dict):
        directory = os.path.dirname(os.path.abspath(self.path))
        os.makedirs(directory, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=directory, suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(records, f, indent=2)
            os.replace(tmp_path, self.path)
        except Exception:
            os.remove(tmp_path)
            raise

    @staticmethod
    def _owned(report: dict, teacher_id: str = None) -> bool:
        return teacher_id is None or report.get("graded_by") == teacher_id

    def save_report(self, report: dict, teacher_id: str, teacher_name: str = "") -> str:
        row = prepare_for_storage(report, teacher_id, teacher_name)
        with self._lock:
            records = self._load()
            records[row["submission_id"]] = row
            self._write(records)
        logger.info("Report saved with ID: %s", row["submission_id"])
        return row["submission_id"]

    def get_report(self, submission_id: str, teacher_id: str = None):
        report = self._load().get(submission_id)
        if report is None or not self._owned(report, teacher_id):
            return None
        return report

    def list_reports(self, teacher_id: str) -> list:
        reports = [r for r in self._load().values() if self._owned(r, teacher_id)]
        return sorted(reports, key=lambda r: r.get("created_at") or "", reverse=True)

    def update_report(self, submission_id: str, report: dict, teacher_id: str):
        with self._lock:
            records = self._load()
            existing = records.get(submission_id)
            if existing is None or not self._owned(existing, teacher_id):
                return None
            merged = dict(report, submission_id=submission_id)
            row = prepare_for_storage(merged, teacher_id, existing.get("teacher_name", ""),
                                      created_at=existing.get("created_at"))
            records[submission_id] = row
            self._write(records)
        logger.info("Report %s updated", submission_id)
        return row

    def delete_report(self, submission_id: str, teacher_id: str) -> bool:
        with self._lock:
            records = self._load()
            existing = records.get(submission_id)
            if existing is None or not self._owned(existing, teacher_id):
                return False
            del records[submission_id]
            self._write(records)
        logger.info("Report %s deleted", submission_id)
        return True

    def find_student_reports(self, student_name: str, roll_no: str) -> list:
        name, roll = _clean(student_name), _clean(roll_no)
        reports = [r for r in self._load().values()
                   if r.get("student_name") == name and r.get("roll_no") == roll]
        return sorted(reports, key=lambda r: r.get("created_at") or "", reverse=True)


_store = None


def get_store():
    """Get or create the configured report store."""
    global _store
    if _store is None:
        if config.record_store == "json":
            _store = JsonReportStore(config.records_file)
        elif config.record_store == "supabase":
            _store = SupabaseReportStore()
        else:
            raise RuntimeError(f"Unknown RECORD_STORE '{config.record_store}'. Use 'supabase' or 'json'.")
    return _store


def set_store(store):
    """Replace the active store (None resets to the configured one)."""
    global _store
    _store = store
