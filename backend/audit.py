"""
Audit log of report changes.

One line per action: `timestamp | user | action | details`. Details carry
submission ids only, never answer text or feedback.
"""
import logging
import os
from datetime import datetime

from backend.config import AUDIT_LOG_FILE

logger = logging.getLogger(__name__)


def audit_log(action: str, details: str = "", user: str = "teacher"):
    """Append an entry. A failed write is logged and does not fail the request."""
    try:
        os.makedirs(os.path.dirname(os.path.abspath(AUDIT_LOG_FILE)), exist_ok=True)
        timestamp = datetime.now().isoformat()
        safe_details = str(details).replace("\n", " ").replace("|", "/")
        with open(AUDIT_LOG_FILE, 'a', encoding='utf-8') as f:
            f.write(f"{timestamp} | {user} | {action} | {safe_details}\n")
    except OSError as e:
        logger.warning("Audit log error: %s", e)


def get_audit_logs(limit: int = 100):
    """Retrieve recent audit log entries, newest first."""
    if not os.path.exists(AUDIT_LOG_FILE):
        return []

    with open(AUDIT_LOG_FILE, 'r', encoding='utf-8') as f:
        lines = f.readlines()

    recent = lines[-limit:] if limit > 0 else []
    logs = []
    for line in recent:
        parts = line.rstrip('\n').split(' | ')
        if len(parts) >= 4:
            logs.append({
                'timestamp': parts[0],
                'user': parts[1],
                'action': parts[2],
                'details': parts[3],
            })
    return logs[::-1]
