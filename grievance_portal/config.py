"""
Centralised configuration constants and environment helpers.
"""

import os
import sys

from dotenv import load_dotenv

load_dotenv()

# ── Session tokens (issued by the identity provider) ────────────────
SESSION_JWT_SECRET = os.getenv("SESSION_JWT_SECRET", "dev-secret-key-change-in-production")
SESSION_JWT_AUDIENCE = os.getenv("SESSION_JWT_AUDIENCE", "authenticated")
TOKEN_EXPIRY_HOURS = 24

# ── Roles ────────────────────────────────────────────────────────────
ROLES = ("student", "faculty", "admin")
ADMIN_ROLE = "admin"

# ── Grievance display codes ──────────────────────────────────────────
GRIEVANCE_ID_PREFIX = "GRV"
GRIEVANCE_ID_RANDOM_LENGTH = 6

# ── API server ───────────────────────────────────────────────────────
MAX_RESULTS_RETURN = 1000
MAX_TITLE_CHARS = 200


def get_env(name: str) -> str:
    """Return an environment variable or exit with an error message."""
    value = os.getenv(name)
    if not value:
        print(f"ERROR: env var {name} is not set", file=sys.stderr)
        sys.exit(1)
    return value
