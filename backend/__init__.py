"""
Smart Evaluation Backend Package
================================

Flask-based backend for AI-assisted answer sheet evaluation.

Structure:
- routes/: API route blueprints
- services/: Grading arithmetic, AI calls, persistence, PDF export
- auth.py: Supabase JWT authentication
- audit.py: Audit log of report changes
- config.py: Configuration management
"""

from .config import config, Config

__version__ = "1.0.0"

__all__ = ['config', 'Config']
