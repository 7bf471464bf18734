"""
Submitting a grievance: validate, assign a display code, insert.
"""

import secrets
import string
import sys
import uuid
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from grievance_portal.config import GRIEVANCE_ID_PREFIX, GRIEVANCE_ID_RANDOM_LENGTH
from grievance_portal.database import insert_grievance
from grievance_portal.errors import Conflict
from grievance_portal.models import Grievance, Identity
from grievance_portal.rbac import require_role
from grievance_portal.validation import validate

_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_grievance_id(now: Optional[datetime] = None) -> str:
    """Human-readable display code, e.g. GRV-20250314-7QK2ZD."""
    now = now or datetime.now(timezone.utc)
    random_part = "".join(
        secrets.choice(_CODE_ALPHABET) for _ in range(GRIEVANCE_ID_RANDOM_LENGTH)
    )
    return f"{GRIEVANCE_ID_PREFIX}-{now:%Y%m%d}-{random_part}"


def submit_grievance(
    engine,
    identity: Identity,
    candidate: Mapping[str, Any],
    id_factory=generate_grievance_id,
) -> Grievance:
    """Validate and store a new grievance for *identity*.

    A duplicate display code gets one regenerated retry; a second
    collision surfaces as Conflict.
    """
    require_role(identity)
    record = validate(candidate, submitted_by=identity.user_id)

    row_id = str(uuid.uuid4())
    created_at = datetime.now(timezone.utc)
    try:
        return insert_grievance(engine, record, row_id, id_factory(), created_at)
    except Conflict as e:
        print(f"[WARN] Grievance id collision, regenerating: {e}", file=sys.stderr)
    return insert_grievance(engine, record, row_id, id_factory(), created_at)
