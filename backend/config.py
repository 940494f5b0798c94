"""
Configuration management for the Smart Evaluation backend.
"""
import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# User data directories
HOME_DIR = Path.home()
DATA_DIR = Path(os.getenv("EVALUATION_DATA_DIR", str(HOME_DIR / ".smart_evaluation")))
RECORDS_FILE = os.getenv("RECORDS_FILE", str(DATA_DIR / "records.json"))
AUDIT_LOG_FILE = os.getenv("AUDIT_LOG_FILE", str(DATA_DIR / "audit.log"))

# API Configuration
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_GRADING_MODEL = os.getenv("GEMINI_GRADING_MODEL", "gemini-2.5-pro")
GEMINI_EXTRACTION_MODEL = os.getenv("GEMINI_EXTRACTION_MODEL", "gemini-2.5-flash")

# Supabase (managed document store). SUPABASE_JWT_SECRET is read by auth per request
SUPABASE_URL = os.getenv("SUPABASE_URL", "")
SUPABASE_SERVICE_KEY = os.getenv("SUPABASE_SERVICE_KEY", "")
REPORTS_TABLE = os.getenv("REPORTS_TABLE", "reports")

# "supabase" for the cloud store, "json" for a local records file
RECORD_STORE = os.getenv("RECORD_STORE", "supabase").lower()

# Server configuration
HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", "3000"))
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
MAX_UPLOAD_MB = int(os.getenv("MAX_UPLOAD_MB", "20"))

# Evaluation configuration
SUPPORTED_UPLOAD_TYPES = ['application/pdf']
PLAGIARISM_THRESHOLD = float(os.getenv("PLAGIARISM_THRESHOLD", "5"))
PLAGIARISM_SIMULATED_MAX = 20


class Config:
    """Runtime settings; tests and the health check read these."""

    def __init__(self):
        self.record_store = RECORD_STORE
        self.records_file = RECORDS_FILE
        self.grading_model = GEMINI_GRADING_MODEL
        self.extraction_model = GEMINI_EXTRACTION_MODEL
        self.plagiarism_threshold = PLAGIARISM_THRESHOLD

    def to_dict(self):
        return {
            "record_store": self.record_store,
            "grading_model": self.grading_model,
            "extraction_model": self.extraction_model,
            "plagiarism_threshold": self.plagiarism_threshold,
        }


# Global config instance
config = Config()
