"""
Grievance status lifecycle – admin-only, forward-only transitions.
"""

from datetime import datetime, timezone
from typing import Callable, Optional

from grievance_portal.config import ADMIN_ROLE
from grievance_portal.database import update_status
from grievance_portal.errors import InvalidTransition, Unauthorized
from grievance_portal.models import Grievance, Identity, StatusChanged
from grievance_portal.taxonomy import STATUSES, TRANSITIONS


def can_transition(current: str, new_status: str) -> bool:
    return (current, new_status) in TRANSITIONS


def transition(
    engine,
    grievance: Grievance,
    new_status: str,
    actor: Identity,
    on_change: Optional[Callable[[StatusChanged], None]] = None,
) -> Grievance:
    """
    Move *grievance* to *new_status* on behalf of *actor*.

    Only admins may transition. Requesting the current status is a no-op
    that writes nothing and emits nothing. Only the status column is
    persisted; *on_change* receives a StatusChanged event after the write.
    """
    if actor.role != ADMIN_ROLE:
        raise Unauthorized("Only admins can change grievance status.")

    if new_status not in STATUSES:
        raise InvalidTransition(grievance.status, new_status)

    if new_status == grievance.status:
        return grievance

    if not can_transition(grievance.status, new_status):
        raise InvalidTransition(grievance.status, new_status)

    update_status(engine, grievance.id, new_status)
    updated = grievance.with_status(new_status)

    if on_change is not None:
        on_change(StatusChanged(
            grievance_id=grievance.grievance_id,
            submitted_by=grievance.submitted_by,
            old_status=grievance.status,
            new_status=new_status,
            changed_by=actor.user_id,
            changed_at=datetime.now(timezone.utc),
        ))
    return updated


def log_status_change(event: StatusChanged) -> None:
    """Default notification hook: an audit line on stdout."""
    print(
        f"[audit] {event.grievance_id}: {event.old_status} -> {event.new_status} "
        f"by {event.changed_by} (submitter {event.submitted_by})"
    )
