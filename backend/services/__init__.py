"""
Smart Evaluation Services
=========================

Business logic for the application.

Services:
- grade_calculator: grade bands, mark clamping, derived summaries, teacher edits
- record_filters: teacher search, student subject filter, dashboard stats
- plagiarism: plagiarism report and match highlighting
- gemini_service: text extraction, rules chat and AI evaluation
- report_store: Supabase / local JSON persistence keyed by submission id
- report_pdf: printable PDF of a report
- uploads: PDF upload validation
"""

# Services are imported directly when needed to avoid circular imports
# Example: from backend.services.grade_calculator import calculate_grade

__all__ = [
    'grade_calculator',
    'record_filters',
    'plagiarism',
    'gemini_service',
    'report_store',
    'report_pdf',
    'uploads',
]
