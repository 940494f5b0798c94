"""
Smart Evaluation API Routes
===========================

All API route blueprints for the application.

Usage:
    from backend.routes import register_routes
    register_routes(app)
"""
from .evaluation_routes import evaluation_bp
from .report_routes import report_bp
from .student_portal_routes import student_portal_bp


def register_routes(app):
    """Register all route blueprints with the Flask app."""
    app.register_blueprint(evaluation_bp)
    app.register_blueprint(report_bp)
    app.register_blueprint(student_portal_bp)


__all__ = [
    'register_routes',
    'evaluation_bp',
    'report_bp',
    'student_portal_bp',
]
