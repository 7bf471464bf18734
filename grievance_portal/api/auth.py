"""
Session-token verification for the Flask API.

Tokens are HS256 JWTs issued by the hosted identity provider; the ``sub``
claim carries the identity id. ``generate_token`` mints the same shape of
token for local development and tests.
"""

from datetime import datetime, timedelta, timezone
from functools import wraps
from typing import Any, Dict, Optional

import jwt
from flask import jsonify, request

from grievance_portal.config import SESSION_JWT_AUDIENCE, SESSION_JWT_SECRET, TOKEN_EXPIRY_HOURS


def generate_token(user_id: str, email: Optional[str] = None, hours: int = TOKEN_EXPIRY_HOURS) -> str:
    """Generate a session JWT for *user_id*."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": user_id,
        "aud": SESSION_JWT_AUDIENCE,
        "role": "authenticated",
        "iat": now,
        "exp": now + timedelta(hours=hours),
    }
    if email:
        payload["email"] = email
    return jwt.encode(payload, SESSION_JWT_SECRET, algorithm="HS256")


def verify_token(token: str) -> Optional[Dict[str, Any]]:
    """Verify a session JWT and return the decoded payload (or None)."""
    try:
        payload = jwt.decode(
            token,
            SESSION_JWT_SECRET,
            algorithms=["HS256"],
            audience=SESSION_JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        return None
    except jwt.InvalidTokenError:
        return None
    if not payload.get("sub"):
        return None
    return payload


def token_required(f):
    """Decorator that protects endpoints with session-token authentication."""
    @wraps(f)
    def decorated(*args, **kwargs):
        token = None

        if "Authorization" in request.headers:
            auth_header = request.headers["Authorization"]
            parts = auth_header.split(" ")
            if len(parts) != 2 or parts[0].lower() != "bearer":
                return jsonify({"error": "Invalid authorization header format"}), 401
            token = parts[1]

        if not token:
            token = request.args.get("token")

        if not token:
            return jsonify({"error": "Authentication token is missing"}), 401

        payload = verify_token(token)
        if not payload:
            return jsonify({"error": "Invalid or expired token"}), 401

        # Request-local only; the identity is resolved per request in the routes.
        request.user_id = str(payload["sub"])
        request.token_claims = payload

        return f(*args, **kwargs)

    return decorated
