"""
Role-Based Access Control – resolving the caller's role and identity.
"""

from typing import Optional

from grievance_portal.config import ADMIN_ROLE, ROLES
from grievance_portal.database import fetch_profile, fetch_role, insert_identity
from grievance_portal.errors import Unauthorized, ValidationError
from grievance_portal.models import Identity


def _normalise_role(raw: str) -> str:
    role = str(raw).strip().lower()
    if role not in ROLES:
        raise ValueError(f"Unsupported role '{raw}' in user_roles.")
    return role


def resolve_role(engine, user_id: str) -> Optional[str]:
    """Return the role for *user_id*, or None if no role row exists yet."""
    raw = fetch_role(engine, user_id)
    if raw is None:
        return None
    return _normalise_role(raw)


def load_identity(engine, user_id: str) -> Identity:
    """Build the request Identity. ``role`` stays None when no role row exists."""
    role = resolve_role(engine, user_id)
    profile = fetch_profile(engine, user_id) or {}
    return Identity(
        user_id=user_id,
        role=role,
        full_name=profile.get("full_name"),
        user_id_number=profile.get("user_id_number"),
        department=profile.get("department"),
    )


def require_role(identity: Identity) -> Identity:
    """Fail closed: an identity without a role may not use role-gated views."""
    if identity.role is None:
        raise Unauthorized("No role assigned to this account yet.")
    return identity


def require_admin(identity: Identity) -> Identity:
    require_role(identity)
    if identity.role != ADMIN_ROLE:
        raise Unauthorized("Admin role required.")
    return identity


def register_identity(
    engine,
    user_id: str,
    role: str,
    full_name: str = "",
    user_id_number: str = "",
    department: str = "",
) -> Identity:
    """Record the role and profile chosen at sign-up (insert-once)."""
    if not role or str(role).strip().lower() not in ROLES:
        raise ValidationError(f"Role must be one of: {', '.join(ROLES)}")
    role = str(role).strip().lower()
    profile = {
        "full_name": (full_name or "").strip() or None,
        "user_id_number": (user_id_number or "").strip() or None,
        "department": (department or "").strip() or None,
    }
    insert_identity(engine, user_id, role, profile)
    return Identity(user_id=user_id, role=role, **profile)
