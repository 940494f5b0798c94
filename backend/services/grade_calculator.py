"""
Grade Calculator
================
Single source of truth for grade arithmetic.

The summary of an evaluation is always derived from its per-question items:
total marks awarded is the sum of the current item marks, and the final grade
is the band that percentage falls into. Anything that changes item marks goes
through recompute_summary() before the record is persisted.
"""

import copy
from datetime import datetime, timezone

# Descending (minimum percentage, grade) bands
GRADE_BANDS = [
    (90, "A+"),
    (80, "A"),
    (70, "B+"),
    (60, "B"),
    (50, "C+"),
    (40, "C"),
    (30, "D"),
]
FAILING_GRADE = "F"
NO_GRADE = "N/A"

GRADE_TIERS = {
    "A+": "excellent",
    "A": "excellent",
    "B+": "good",
    "B": "good",
    "C+": "average",
    "C": "average",
    "D": "weak",
}

EDITABLE_ITEM_FIELDS = ("feedback", "student_answer")


def _to_number(value):
    """Coerce a mark to int/float. Anything unparseable counts as 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        number = value
    else:
        try:
            number = float(str(value).strip())
        except (TypeError, ValueError):
            return 0
    if number != number:  # NaN
        return 0
    if isinstance(number, float) and number.is_integer():
        return int(number)
    return number


def calculate_percentage(total_marks_awarded, total_max_marks) -> float:
    if not total_max_marks:
        return 0.0
    return (total_marks_awarded / total_max_marks) * 100


def calculate_grade(total_marks_awarded, total_max_marks) -> str:
    """Map awarded/max marks to a letter band. Zero max marks has no grade."""
    if not total_max_marks:
        return NO_GRADE
    percentage = calculate_percentage(total_marks_awarded, total_max_marks)
    for threshold, grade in GRADE_BANDS:
        if percentage >= threshold:
            return grade
    return FAILING_GRADE


def grade_tier(grade: str) -> str:
    """Display tier used to colour a grade."""
    return GRADE_TIERS.get(grade, "fail")


def clamp_marks(value, max_marks):
    """Clamp a mark into [0, max_marks]."""
    upper = max(0, _to_number(max_marks))
    return max(0, min(_to_number(value), upper))


def normalize_item(item: dict) -> dict:
    """Coerce one AI-returned evaluation item into the stored shape."""
    item = item or {}
    max_marks = max(0, _to_number(item.get("max_marks", item.get("maxMarks"))))
    awarded = item.get("marks_awarded", item.get("marksAwarded"))
    return {
        "question": str(item.get("question") or ""),
        "student_answer": str(item.get("student_answer", item.get("studentAnswer")) or ""),
        "marks_awarded": clamp_marks(awarded, max_marks),
        "max_marks": max_marks,
        "feedback": str(item.get("feedback") or ""),
    }


def recompute_summary(result: dict) -> dict:
    """
    Re-derive the summary totals and grade from the evaluation items.

    Returns a new result; the input is not modified. The overall feedback
    already on the summary is kept.
    """
    updated = copy.deepcopy(result)
    evaluation = updated.get("evaluation") or []
    total_awarded = sum(_to_number(item.get("marks_awarded")) for item in evaluation)
    total_max = sum(_to_number(item.get("max_marks")) for item in evaluation)

    summary = dict(updated.get("summary") or {})
    summary["total_marks_awarded"] = total_awarded
    summary["total_max_marks"] = total_max
    summary["final_grade"] = calculate_grade(total_awarded, total_max)
    summary.setdefault("overall_feedback", "")
    updated["evaluation"] = evaluation
    updated["summary"] = summary
    return updated


def assemble_result(submission_id: str, student_name: str, roll_no: str, subject: str,
                    evaluation: list, overall_feedback: str, plagiarism_report: dict,
                    extracted_text: str = "", submission_date: str = None) -> dict:
    """
    Merge an AI evaluation list and submission metadata into a full result.

    The evaluation list may have any length (including zero). The summary is
    computed here, never taken from the AI.
    """
    result = {
        "submission_id": submission_id,
        "student_name": student_name,
        "roll_no": roll_no,
        "subject": subject,
        "submission_date": submission_date or datetime.now(timezone.utc).isoformat(),
        "extracted_text": extracted_text,
        "plagiarism_report": plagiarism_report,
        "evaluation": [normalize_item(item) for item in (evaluation or [])],
        "summary": {"overall_feedback": overall_feedback or ""},
    }
    return recompute_summary(result)


def apply_edits(result: dict, edits: dict) -> dict:
    """
    Apply teacher edits to a result and recompute the summary.

    edits format:
        {
            "evaluation": [{"index": 0, "marks_awarded": 4, "feedback": "..."}, ...],
            "overall_feedback": "..."
        }

    Marks are clamped to the item's max marks. A malformed edit body or an
    unknown index raises ValueError.
    """
    if not isinstance(edits, dict):
        raise ValueError("Edits must be a JSON object")
    item_edits = edits.get("evaluation") or []
    if not isinstance(item_edits, list) or not all(isinstance(e, dict) for e in item_edits):
        raise ValueError("'evaluation' must be a list of edit objects")

    updated = copy.deepcopy(result)
    evaluation = updated.get("evaluation") or []

    for edit in item_edits:
        index = edit.get("index")
        if isinstance(index, bool) or not isinstance(index, int) or not 0 <= index < len(evaluation):
            raise ValueError(f"No question at index {index}")
        item = evaluation[index]
        if "marks_awarded" in edit:
            item["marks_awarded"] = clamp_marks(edit["marks_awarded"], item.get("max_marks"))
        for field in EDITABLE_ITEM_FIELDS:
            if field in edit:
                item[field] = str(edit[field] or "")

    if "overall_feedback" in edits:
        summary = dict(updated.get("summary") or {})
        summary["overall_feedback"] = str(edits["overall_feedback"] or "")
        updated["summary"] = summary

    updated["evaluation"] = evaluation
    return recompute_summary(updated)
