"""
Test: Report persistence. Both stores share the same behaviour, so most
tests run against each of them.
"""
import json

import pytest

from backend.services.report_store import (
    JsonReportStore, SupabaseReportStore, get_store, set_store, prepare_for_storage,
)


@pytest.fixture(params=["json", "supabase"])
def store(request, tmp_path, fake_supabase):
    if request.param == "json":
        return JsonReportStore(str(tmp_path / "records.json"))
    return SupabaseReportStore(client=fake_supabase)


class TestPrepareForStorage:
    def test_requires_submission_id(self, sample_report):
        sample_report["submission_id"] = "  "
        with pytest.raises(ValueError):
            prepare_for_storage(sample_report, "teacher-1")

    def test_summary_is_derived(self, sample_report):
        sample_report["summary"]["total_marks_awarded"] = 42
        sample_report["summary"]["final_grade"] = "A+"
        row = prepare_for_storage(sample_report, "teacher-1", "Ms. Rivera")
        assert row["summary"]["total_marks_awarded"] == 8
        assert row["summary"]["final_grade"] == "A"
        assert row["graded_by"] == "teacher-1"
        assert row["teacher_name"] == "Ms. Rivera"
        assert row["created_at"]

    def test_over_max_marks_clamped(self, sample_report):
        sample_report["evaluation"][1]["marks_awarded"] = 99
        row = prepare_for_storage(sample_report, "teacher-1")
        assert row["evaluation"][1]["marks_awarded"] == 5
        assert row["summary"]["total_marks_awarded"] == 10

    def test_display_fields_dropped(self, sample_report):
        sample_report["score_percentage"] = 80.0
        sample_report["grade_tier"] = "excellent"
        row = prepare_for_storage(sample_report, "teacher-1")
        assert "score_percentage" not in row
        assert "grade_tier" not in row

    def test_identity_fields_trimmed(self, sample_report):
        sample_report["submission_id"] = " PHY-101-2024 "
        sample_report["student_name"] = " Alice Johnson "
        row = prepare_for_storage(sample_report, "teacher-1")
        assert row["submission_id"] == "PHY-101-2024"
        assert row["student_name"] == "Alice Johnson"


class TestSaveAndGet:
    def test_round_trip(self, store, sample_report):
        submission_id = store.save_report(sample_report, "teacher-1", "Ms. Rivera")
        assert submission_id == "PHY-101-2024"
        stored = store.get_report(submission_id)
        assert stored["student_name"] == "Alice Johnson"
        assert stored["summary"]["total_marks_awarded"] == sum(
            item["marks_awarded"] for item in stored["evaluation"])

    def test_duplicate_id_overwrites(self, store, sample_report):
        store.save_report(sample_report, "teacher-1")
        second = dict(sample_report, student_name="Someone Else")
        store.save_report(second, "teacher-1")
        reports = store.list_reports("teacher-1")
        assert len(reports) == 1
        assert reports[0]["student_name"] == "Someone Else"

    def test_get_missing(self, store):
        assert store.get_report("NOPE") is None

    def test_get_scoped_to_teacher(self, store, sample_report):
        store.save_report(sample_report, "teacher-1")
        assert store.get_report("PHY-101-2024", "teacher-1") is not None
        assert store.get_report("PHY-101-2024", "teacher-2") is None


class TestListReports:
    def test_scoped_to_teacher(self, store, sample_reports):
        for i, report in enumerate(sample_reports):
            row = prepare_for_storage(report, "teacher-1", created_at=f"2024-03-0{i + 1}T00:00:00+00:00")
            store.save_report(row, "teacher-1")
        store.save_report(dict(sample_reports[0], submission_id="OTHER-1"), "teacher-2")

        reports = store.list_reports("teacher-1")
        assert len(reports) == 3

    def test_created_at_order(self, tmp_path, sample_reports):
        store = JsonReportStore(str(tmp_path / "records.json"))
        records = {}
        for i, report in enumerate(sample_reports):
            row = prepare_for_storage(report, "teacher-1", created_at=f"2024-03-0{i + 1}T00:00:00+00:00")
            records[row["submission_id"]] = row
        store._write(records)
        ids = [r["submission_id"] for r in store.list_reports("teacher-1")]
        assert ids == ["PHY-102-2024", "CHEM-101-2024", "PHY-101-2024"]


class TestUpdateReport:
    def test_update_recomputes(self, store, sample_report):
        store.save_report(sample_report, "teacher-1", "Ms. Rivera")
        original = store.get_report("PHY-101-2024")
        edited = json.loads(json.dumps(original))
        edited["evaluation"][1]["marks_awarded"] = 5
        edited["summary"]["total_marks_awarded"] = 3  # stale, must be ignored

        updated = store.update_report("PHY-101-2024", edited, "teacher-1")
        assert updated["summary"]["total_marks_awarded"] == 10
        assert updated["summary"]["final_grade"] == "A+"
        assert updated["created_at"] == original["created_at"]
        assert updated["teacher_name"] == "Ms. Rivera"
        assert store.get_report("PHY-101-2024")["summary"]["total_marks_awarded"] == 10

    def test_update_missing(self, store, sample_report):
        assert store.update_report("NOPE", sample_report, "teacher-1") is None

    def test_update_other_teachers_report(self, store, sample_report):
        store.save_report(sample_report, "teacher-1")
        assert store.update_report("PHY-101-2024", sample_report, "teacher-2") is None


class TestDeleteReport:
    def test_delete(self, store, sample_report):
        store.save_report(sample_report, "teacher-1")
        assert store.delete_report("PHY-101-2024", "teacher-1") is True
        assert store.get_report("PHY-101-2024") is None

    def test_delete_missing(self, store):
        assert store.delete_report("NOPE", "teacher-1") is False

    def test_delete_other_teachers_report(self, store, sample_report):
        store.save_report(sample_report, "teacher-1")
        assert store.delete_report("PHY-101-2024", "teacher-2") is False
        assert store.get_report("PHY-101-2024") is not None


class TestFindStudentReports:
    def test_across_teachers(self, store, sample_reports):
        store.save_report(sample_reports[0], "teacher-1")
        store.save_report(sample_reports[1], "teacher-2")
        store.save_report(sample_reports[2], "teacher-1")
        found = store.find_student_reports("Alice Johnson", "101")
        assert sorted(r["submission_id"] for r in found) == ["CHEM-101-2024", "PHY-101-2024"]

    def test_both_must_match(self, store, sample_reports):
        store.save_report(sample_reports[0], "teacher-1")
        assert store.find_student_reports("Alice Johnson", "102") == []
        assert store.find_student_reports("Brian Okafor", "101") == []

    def test_input_trimmed(self, store, sample_reports):
        store.save_report(sample_reports[0], "teacher-1")
        assert len(store.find_student_reports("  Alice Johnson ", " 101 ")) == 1


class TestJsonFile:
    def test_file_keyed_by_submission_id(self, tmp_path, sample_report):
        path = tmp_path / "nested" / "records.json"
        store = JsonReportStore(str(path))
        store.save_report(sample_report, "teacher-1")
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        assert list(data.keys()) == ["PHY-101-2024"]

    def test_failed_write_leaves_no_temp_file(self, tmp_path, sample_report):
        store = JsonReportStore(str(tmp_path / "records.json"))
        store.save_report(sample_report, "teacher-1")
        with pytest.raises(TypeError):
            store._write({"bad": object()})
        assert sorted(p.name for p in tmp_path.iterdir()) == ["records.json"]
        assert store.get_report("PHY-101-2024") is not None

    def test_corrupt_file_raises(self, tmp_path):
        path = tmp_path / "records.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(json.JSONDecodeError):
            JsonReportStore(str(path)).list_reports("teacher-1")


class TestSupabaseStore:
    def test_upsert_on_submission_id(self, fake_supabase, sample_report):
        store = SupabaseReportStore(client=fake_supabase)
        store.save_report(sample_report, "teacher-1")
        store.save_report(sample_report, "teacher-1")
        assert len(fake_supabase.table("reports").rows) == 1

    def test_missing_credentials(self, monkeypatch):
        import backend.services.report_store as rs
        monkeypatch.setattr(rs, "SUPABASE_URL", "")
        with pytest.raises(RuntimeError, match="Supabase credentials"):
            SupabaseReportStore().list_reports("teacher-1")


class TestGetStore:
    def test_json_backend(self, monkeypatch, tmp_path):
        from backend.config import config
        monkeypatch.setattr(config, "record_store", "json")
        monkeypatch.setattr(config, "records_file", str(tmp_path / "r.json"))
        set_store(None)
        try:
            assert isinstance(get_store(), JsonReportStore)
        finally:
            set_store(None)

    def test_unknown_backend(self, monkeypatch):
        from backend.config import config
        monkeypatch.setattr(config, "record_store", "mongo")
        set_store(None)
        try:
            with pytest.raises(RuntimeError):
                get_store()
        finally:
            set_store(None)
