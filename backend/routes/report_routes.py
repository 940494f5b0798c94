"""
Report API routes (teacher).
Save reviewed evaluations, list/search them for the dashboard, edit marks
and feedback, delete, and export as PDF. All routes act on the signed-in
teacher's reports only.
"""
import io
import logging
from flask import Blueprint, request, jsonify, g, send_file

from backend.audit import audit_log, get_audit_logs
from backend.services.grade_calculator import apply_edits, grade_tier
from backend.services.plagiarism import highlight_matches
from backend.services.record_filters import search_reports, dashboard_stats, score_percentage
from backend.services.report_pdf import render_report_pdf, report_filename
from backend.services.report_store import get_store

logger = logging.getLogger(__name__)

report_bp = Blueprint('reports', __name__)


def _with_display_fields(report):
    """Add the derived values the dashboard table shows."""
    summary = report.get("summary") or {}
    return dict(
        report,
        score_percentage=round(score_percentage(report), 2),
        grade_tier=grade_tier(summary.get("final_grade", "")),
    )


@report_bp.route('/api/reports', methods=['POST'])
def save_report():
    """Save a reviewed evaluation. An existing report with the same ID is replaced."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"error": "Request body must be a JSON object"}), 400
    report = data.get('result') or data
    if not isinstance(report, dict) or not str(report.get('submission_id') or '').strip():
        return jsonify({"error": "A result with a submission_id is required"}), 400

    try:
        store = get_store()
        report = dict(report, submission_id=str(report['submission_id']).strip())
        replaced = store.get_report(report['submission_id']) is not None
        submission_id = store.save_report(report, g.user_id, g.get('user_name', ''))
        saved = store.get_report(submission_id, g.user_id)
        audit_log("SAVE_REPORT", f"{submission_id}{' (replaced)' if replaced else ''}",
                  user=g.get('user_email') or g.user_id)
        return jsonify({"success": True, "id": submission_id, "replaced": replaced, "report": saved})
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.exception("Save report error: %s", e)
        return jsonify({"error": str(e)}), 500


@report_bp.route('/api/reports', methods=['GET'])
def list_reports():
    """List the teacher's reports, newest first, with optional ?q= search."""
    query = request.args.get('q', '')
    try:
        reports = get_store().list_reports(g.user_id)
    except Exception as e:
        logger.exception("Error loading reports: %s", e)
        return jsonify({"error": str(e)}), 500

    matches = search_reports(reports, query)
    return jsonify({
        "reports": [_with_display_fields(r) for r in matches],
        "stats": dashboard_stats(reports),
        "total": len(reports),
        "matched": len(matches),
    })


@report_bp.route('/api/reports/<submission_id>', methods=['GET'])
def get_report(submission_id):
    try:
        report = get_store().get_report(submission_id, g.user_id)
    except Exception as e:
        logger.exception("Get report error: %s", e)
        return jsonify({"error": str(e)}), 500
    if report is None:
        return jsonify({"error": "Report not found"}), 404

    matches = (report.get("plagiarism_report") or {}).get("matches") or []
    detail = _with_display_fields(report)
    detail["highlighted_text"] = highlight_matches(report.get("extracted_text") or "", matches)
    return jsonify({"report": detail})


@report_bp.route('/api/reports/<submission_id>', methods=['PUT'])
def update_report(submission_id):
    """
    Apply teacher edits and re-derive the total and grade.

    Body:
        {
            "evaluation": [{"index": 0, "marks_awarded": 4, "feedback": "..."}],
            "overall_feedback": "..."
        }
    """
    edits = request.get_json(silent=True) or {}
    store = get_store()
    try:
        existing = store.get_report(submission_id, g.user_id)
        if existing is None:
            return jsonify({"error": "Report not found"}), 404

        edited = apply_edits(existing, edits)
        updated = store.update_report(submission_id, edited, g.user_id)
        if updated is None:
            return jsonify({"error": "Report not found"}), 404

        summary = updated["summary"]
        audit_log("UPDATE_REPORT",
                  f"{submission_id} total={summary['total_marks_awarded']}/{summary['total_max_marks']}",
                  user=g.get('user_email') or g.user_id)
        return jsonify({"success": True, "report": _with_display_fields(updated)})
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except Exception as e:
        logger.exception("Failed to update marks: %s", e)
        return jsonify({"error": str(e)}), 500


@report_bp.route('/api/reports/<submission_id>', methods=['DELETE'])
def delete_report(submission_id):
    try:
        deleted = get_store().delete_report(submission_id, g.user_id)
    except Exception as e:
        logger.exception("Failed to delete report: %s", e)
        return jsonify({"error": str(e)}), 500
    if not deleted:
        return jsonify({"error": "Report not found"}), 404

    audit_log("DELETE_REPORT", submission_id, user=g.get('user_email') or g.user_id)
    return jsonify({"success": True})


@report_bp.route('/api/reports/<submission_id>/pdf', methods=['GET'])
def download_report_pdf(submission_id):
    try:
        report = get_store().get_report(submission_id, g.user_id)
    except Exception as e:
        logger.exception("Get report error: %s", e)
        return jsonify({"error": str(e)}), 500
    if report is None:
        return jsonify({"error": "Report not found"}), 404

    pdf_bytes = render_report_pdf(report)
    return send_file(io.BytesIO(pdf_bytes), mimetype='application/pdf',
                     as_attachment=True, download_name=report_filename(report))


@report_bp.route('/api/audit-log', methods=['GET'])
def audit_log_entries():
    limit = request.args.get('limit', 100, type=int)
    return jsonify({"logs": get_audit_logs(limit)})
