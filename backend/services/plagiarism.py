"""
Plagiarism report for an answer sheet.

There is no similarity corpus behind this check: the percentage is simulated
in [0, PLAGIARISM_SIMULATED_MAX) and the report carries no matches.
"""
import html
import logging
import random

from backend.config import PLAGIARISM_SIMULATED_MAX, config

logger = logging.getLogger(__name__)

STATUS_DETECTED = "Plagiarism Detected"
STATUS_CLEAR = "Clear"


def check_plagiarism(text: str, rng: random.Random = None) -> dict:
    """Return {"percentage", "summary"} for the given answer text."""
    rng = rng or random
    percentage = int(rng.random() * PLAGIARISM_SIMULATED_MAX)
    if percentage > config.plagiarism_threshold:
        summary = (f"A low to moderate similarity score of {percentage}% was detected. "
                   "Manual review is recommended.")
    else:
        summary = f"No significant plagiarism detected ({percentage}% similarity)."
    logger.debug("Plagiarism check on %d chars: %d%%", len(text or ""), percentage)
    return {"percentage": percentage, "summary": summary}


def build_plagiarism_report(check: dict, matches: list = None) -> dict:
    percentage = check.get("percentage", 0)
    return {
        "status": STATUS_DETECTED if percentage > config.plagiarism_threshold else STATUS_CLEAR,
        "summary": check.get("summary", ""),
        "matches": list(matches or []),
        "plagiarism_percentage": percentage,
    }


def highlight_matches(text: str, matches: list) -> str:
    """
    Escape text as HTML and wrap each matched span in <mark>.

    Each match is {"student_text": ..., "source": ...}. Only the first
    occurrence of each span is marked; spans not found are ignored.
    """
    if not text:
        return ""
    spans = []
    taken = []
    for match in matches or []:
        snippet = match.get("student_text") or ""
        if not snippet:
            continue
        start = text.find(snippet)
        if start == -1:
            continue
        end = start + len(snippet)
        if any(start < t_end and end > t_start for t_start, t_end in taken):
            continue
        taken.append((start, end))
        spans.append((start, end, match.get("source") or ""))

    spans.sort()
    parts = []
    cursor = 0
    for start, end, source in spans:
        parts.append(html.escape(text[cursor:start]))
        parts.append(f'<mark title="Possible Source: {html.escape(source, quote=True)}">'
                     f'{html.escape(text[start:end])}</mark>')
        cursor = end
    parts.append(html.escape(text[cursor:]))
    return "".join(parts)
