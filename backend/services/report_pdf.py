"""
Printable PDF of an evaluation report.
"""
import io
from xml.sax.saxutils import escape

from reportlab.lib.pagesizes import A4
from reportlab.lib.units import inch
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.colors import HexColor, lightgrey, white
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from backend.services.grade_calculator import grade_tier

TIER_COLORS = {
    "excellent": "#16a34a",
    "good": "#0891b2",
    "average": "#ca8a04",
    "weak": "#ea580c",
    "fail": "#dc2626",
}


def _p(text, style):
    return Paragraph(escape(str(text if text is not None else "")).replace("\n", "<br/>"), style)


def report_filename(report: dict) -> str:
    raw = f"{report.get('submission_id', 'report')}_{report.get('student_name', '')}"
    safe = "".join(c for c in raw if c.isalnum() or c in ' -_').strip().replace(' ', '_')
    return f"{safe or 'report'}.pdf"


def render_report_pdf(report: dict) -> bytes:
    """Render a report (as stored) to PDF bytes."""
    styles = getSampleStyleSheet()
    title_style = ParagraphStyle(
        'ReportTitle', parent=styles['Heading1'],
        alignment=TA_CENTER, fontSize=18, spaceAfter=6
    )
    heading_style = ParagraphStyle(
        'ReportHeading', parent=styles['Heading2'],
        fontSize=13, spaceAfter=6, spaceBefore=12
    )
    normal_style = styles['Normal']
    cell_style = ParagraphStyle('Cell', parent=styles['Normal'], fontSize=9, leading=11)

    summary = report.get("summary") or {}
    plagiarism = report.get("plagiarism_report") or {}
    grade = summary.get("final_grade", "N/A")

    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer, pagesize=A4,
        topMargin=0.6*inch, bottomMargin=0.6*inch,
        leftMargin=0.7*inch, rightMargin=0.7*inch
    )
    story = [_p("Evaluation Report", title_style), Spacer(1, 0.1*inch)]

    details = [
        ["Student", report.get("student_name", ""), "Roll No.", report.get("roll_no", "")],
        ["Subject", report.get("subject", ""), "Submission ID", report.get("submission_id", "")],
        ["Score", f"{summary.get('total_marks_awarded', 0)}/{summary.get('total_max_marks', 0)}",
         "Grade", grade],
        ["Plagiarism", plagiarism.get("status", ""), "Similarity",
         f"{plagiarism.get('plagiarism_percentage', 0)}%"],
    ]
    details_rows = [[_p(c, cell_style) for c in row] for row in details]
    details_rows[2][3] = Paragraph(
        f'<font color="{TIER_COLORS[grade_tier(grade)]}"><b>{escape(str(grade))}</b></font>',
        cell_style
    )
    details_table = Table(details_rows, colWidths=[1.1*inch, 2.2*inch, 1.1*inch, 2.2*inch])
    details_table.setStyle(TableStyle([
        ('GRID', (0, 0), (-1, -1), 0.5, lightgrey),
        ('BACKGROUND', (0, 0), (0, -1), HexColor("#f3f4f6")),
        ('BACKGROUND', (2, 0), (2, -1), HexColor("#f3f4f6")),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ]))
    story.append(details_table)

    if plagiarism.get("summary"):
        story.append(Spacer(1, 0.1*inch))
        story.append(_p(plagiarism["summary"], normal_style))

    story.append(_p("Question-wise Breakdown", heading_style))
    rows = [["#", "Question", "Answer Summary", "Marks", "Feedback"]]
    for i, item in enumerate(report.get("evaluation") or [], start=1):
        rows.append([
            _p(i, cell_style),
            _p(item.get("question", ""), cell_style),
            _p(item.get("student_answer", ""), cell_style),
            _p(f"{item.get('marks_awarded', 0)}/{item.get('max_marks', 0)}", cell_style),
            _p(item.get("feedback", ""), cell_style),
        ])
    breakdown = Table(rows, colWidths=[0.35*inch, 1.7*inch, 1.8*inch, 0.65*inch, 2.1*inch],
                      repeatRows=1)
    breakdown.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), HexColor("#4472C4")),
        ('TEXTCOLOR', (0, 0), (-1, 0), white),
        ('GRID', (0, 0), (-1, -1), 0.5, lightgrey),
        ('VALIGN', (0, 0), (-1, -1), 'TOP'),
    ]))
    story.append(breakdown)

    story.append(_p("Overall Feedback", heading_style))
    story.append(_p(summary.get("overall_feedback") or "No overall feedback.", normal_style))

    doc.build(story)
    return buffer.getvalue()
