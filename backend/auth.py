"""
Teacher authentication.

Teachers sign in through Supabase Auth in the browser and send the access
token as `Authorization: Bearer <jwt>`. The token is verified locally with
the project's JWT secret; no round trip to Supabase.

Students have no accounts, so the result portal and the health check are
public.
"""
import logging
import os

import jwt
from flask import request, jsonify, g

logger = logging.getLogger(__name__)

TOKEN_AUDIENCE = 'authenticated'
TOKEN_ALGORITHMS = ['HS256']

PUBLIC_PREFIXES = ('/api/student/',)
PUBLIC_PATHS = ('/api/health',)


def get_jwt_secret():
    """Read at call time so tests and reloads can swap the secret."""
    secret = os.getenv('SUPABASE_JWT_SECRET')
    if not secret:
        raise RuntimeError('SUPABASE_JWT_SECRET not configured')
    return secret


def validate_token(token):
    """Decoded claims for a valid teacher token, None for a bad or expired one."""
    try:
        return jwt.decode(token, get_jwt_secret(), algorithms=TOKEN_ALGORITHMS, audience=TOKEN_AUDIENCE)
    except jwt.ExpiredSignatureError:
        logger.debug("Rejected expired token")
        return None
    except jwt.InvalidTokenError as e:
        logger.debug("Rejected token: %s", e)
        return None


def is_public_route(path):
    return path in PUBLIC_PATHS or path.startswith(PUBLIC_PREFIXES)


def teacher_display_name(payload):
    """Name shown on reports: the profile name if set, else the email."""
    metadata = payload.get('user_metadata') or {}
    return metadata.get('full_name') or metadata.get('name') or payload.get('email', '')


def _unauthorized(message):
    return jsonify({'error': message}), 401


def init_auth(app):
    """Install the token check. Must run before the blueprints are registered."""

    @app.before_request
    def require_teacher():
        path = request.path
        if not path.startswith('/api/') or is_public_route(path):
            return None

        scheme, _, token = request.headers.get('Authorization', '').partition(' ')
        if scheme != 'Bearer' or not token:
            return _unauthorized('Authentication required')

        claims = validate_token(token)
        if claims is None or not claims.get('sub'):
            return _unauthorized('Invalid or expired token')

        g.user_id = claims['sub']
        g.user_email = claims.get('email', '')
        g.user_name = teacher_display_name(claims)
        return None
