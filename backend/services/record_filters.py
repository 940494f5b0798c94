"""
List transforms over fetched reports: teacher search, student subject
filtering and dashboard statistics.
"""

ALL_SUBJECTS = "All"


def _summary(report: dict) -> dict:
    return report.get("summary") or {}


def search_reports(reports: list, query: str) -> list:
    """Case-insensitive substring match on student name, roll no or submission id."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(reports)
    matches = []
    for report in reports:
        haystacks = (
            report.get("student_name"),
            report.get("roll_no"),
            report.get("submission_id"),
        )
        if any(needle in str(h).lower() for h in haystacks if h is not None):
            matches.append(report)
    return matches


def list_subjects(reports: list) -> list:
    """Sorted unique subject identifiers."""
    return sorted({r.get("subject") for r in reports if r.get("subject")})


def filter_by_subject(reports: list, subject: str = None) -> list:
    if not subject or subject == ALL_SUBJECTS:
        return list(reports)
    return [r for r in reports if r.get("subject") == subject]


def score_percentage(report: dict) -> float:
    summary = _summary(report)
    total_max = summary.get("total_max_marks") or 0
    if total_max <= 0:
        return 0.0
    return (summary.get("total_marks_awarded") or 0) / total_max * 100


def dashboard_stats(reports: list) -> dict:
    """Total, average, highest and lowest awarded marks across reports."""
    if not reports:
        return {"total": 0, "avg_score": 0, "max_score": 0, "min_score": 0}

    scores = [_summary(r).get("total_marks_awarded") or 0 for r in reports]
    return {
        "total": len(reports),
        "avg_score": round(sum(scores) / len(scores), 2),
        "max_score": max(scores),
        "min_score": min(scores),
    }
