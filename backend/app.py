#!/usr/bin/env python3
"""
Smart Evaluation System - AI-Assisted Answer Sheet Grading
==========================================================
Run: python3 -m backend.app
Then open: http://localhost:3000
"""

import logging
import os

from flask import Flask, jsonify, send_from_directory
from flask_cors import CORS

from backend.config import (
    config, DEBUG, GEMINI_API_KEY, HOST, MAX_UPLOAD_MB, PORT, SUPABASE_SERVICE_KEY, SUPABASE_URL,
)
from backend.auth import init_auth
from backend.routes import register_routes

logger = logging.getLogger(__name__)

STATIC_DIR = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'static')


def create_app(test_config: dict = None) -> Flask:
    """Build the Flask app: CORS, auth hook, API blueprints, SPA fallback."""
    app = Flask(__name__, static_folder=STATIC_DIR, static_url_path='')
    app.config['MAX_CONTENT_LENGTH'] = MAX_UPLOAD_MB * 1024 * 1024
    if test_config:
        app.config.update(test_config)
    CORS(app)

    # ══════════════════════════════════════════════════════════════
    # AUTHENTICATION (must be registered before the blueprints)
    # ══════════════════════════════════════════════════════════════
    init_auth(app)
    register_routes(app)

    @app.route('/api/health')
    def health():
        return jsonify({
            "status": "ok",
            **config.to_dict(),
            "gemini_configured": bool(GEMINI_API_KEY),
            "supabase_configured": bool(SUPABASE_URL and SUPABASE_SERVICE_KEY),
            "auth_configured": bool(os.getenv('SUPABASE_JWT_SECRET')),
        })

    @app.errorhandler(413)
    def upload_too_large(_error):
        return jsonify({"error": f"Upload exceeds the {MAX_UPLOAD_MB} MB limit"}), 413

    # ══════════════════════════════════════════════════════════════
    # STATIC FILE SERVING
    # ══════════════════════════════════════════════════════════════

    @app.route('/')
    def serve_frontend():
        """Serve the browser frontend."""
        return send_from_directory(app.static_folder, 'index.html')

    @app.route('/<path:path>')
    def serve_static(path):
        """Serve static files or fall back to index.html for SPA routing."""
        if path.startswith('api/'):
            return jsonify({"error": "Not found"}), 404
        if os.path.exists(os.path.join(app.static_folder, path)):
            return send_from_directory(app.static_folder, path)
        return send_from_directory(app.static_folder, 'index.html')

    return app


# ══════════════════════════════════════════════════════════════
# MAIN
# ══════════════════════════════════════════════════════════════

def main():
    logging.basicConfig(
        level=logging.DEBUG if DEBUG else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    app = create_app()

    print()
    print("+" + "=" * 50 + "+")
    print("|  Smart Evaluation System                         |")
    print("+" + "=" * 50 + "+")
    print(f"|  Open in browser: http://localhost:{PORT:<14}|")
    print("|  Press Ctrl+C to stop                            |")
    print("+" + "=" * 50 + "+")
    print()

    if not GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY is not set; evaluation requests will fail")

    app.run(host=HOST, port=PORT, debug=DEBUG)


if __name__ == '__main__':
    main()
