"""
Student Result Portal Routes.
Students look up their own submissions by full name and roll number, then
filter by subject. Public: students don't have accounts.
"""
import io
import logging
from flask import Blueprint, request, jsonify, send_file

from backend.services.grade_calculator import grade_tier
from backend.services.record_filters import filter_by_subject, list_subjects, score_percentage, ALL_SUBJECTS
from backend.services.report_pdf import render_report_pdf, report_filename
from backend.services.report_store import get_store

logger = logging.getLogger(__name__)

student_portal_bp = Blueprint('student_portal', __name__)

# Fields a student sees; teacher-side fields (graded_by, extracted_text) are left out
STUDENT_VISIBLE_FIELDS = (
    "submission_id", "student_name", "roll_no", "subject", "submission_date",
    "plagiarism_report", "evaluation", "summary", "teacher_name", "created_at",
)


def _student_view(report):
    view = {k: report.get(k) for k in STUDENT_VISIBLE_FIELDS}
    view["score_percentage"] = round(score_percentage(report), 2)
    view["grade_tier"] = grade_tier((report.get("summary") or {}).get("final_grade", ""))
    return view


def _lookup(student_name, roll_no):
    return get_store().find_student_reports(student_name, roll_no)


@student_portal_bp.route('/api/student/results', methods=['POST'])
def student_results():
    """
    Find a student's submissions.

    Body: {"student_name": ..., "roll_no": ..., "subject": "All" | <subject>}
    """
    data = request.get_json(silent=True) or {}
    student_name = str(data.get('student_name') or '').strip()
    roll_no = str(data.get('roll_no') or '').strip()
    subject = data.get('subject') or ALL_SUBJECTS

    if not student_name or not roll_no:
        return jsonify({"error": "Please enter both your full name and roll number."}), 400

    try:
        reports = _lookup(student_name, roll_no)
    except Exception as e:
        logger.exception("Student lookup error: %s", e)
        return jsonify({"error": f"Error fetching results: {e}"}), 500

    if not reports:
        return jsonify({"error": "No submissions found for the provided details.", "results": []}), 404

    filtered = filter_by_subject(reports, subject)
    return jsonify({
        "results": [_student_view(r) for r in filtered],
        "subjects": list_subjects(reports),
        "selected_subject": subject,
        "total": len(reports),
    })


@student_portal_bp.route('/api/student/results/<submission_id>/pdf', methods=['GET'])
def student_result_pdf(submission_id):
    """Download one of the student's own reports. Name and roll no must match."""
    student_name = request.args.get('student_name', '').strip()
    roll_no = request.args.get('roll_no', '').strip()
    if not student_name or not roll_no:
        return jsonify({"error": "Please enter both your full name and roll number."}), 400

    try:
        reports = _lookup(student_name, roll_no)
    except Exception as e:
        logger.exception("Student lookup error: %s", e)
        return jsonify({"error": f"Error fetching results: {e}"}), 500

    report = next((r for r in reports if r.get("submission_id") == submission_id), None)
    if report is None:
        return jsonify({"error": "Report not found"}), 404

    visible = {k: report.get(k) for k in STUDENT_VISIBLE_FIELDS}
    return send_file(io.BytesIO(render_report_pdf(visible)), mimetype='application/pdf',
                     as_attachment=True, download_name=report_filename(visible))
