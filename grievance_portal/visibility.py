"""
Role-scoped visibility of grievance records.

Admins see every grievance together with the submitter's profile; everyone
else sees only what they submitted. The narrowing filters in
``apply_filters`` run after that boundary and can never widen it.
"""

from typing import Iterable, List, Optional

from grievance_portal.database import get_grievance, list_grievances
from grievance_portal.errors import NotFound
from grievance_portal.models import Grievance, Identity
from grievance_portal.rbac import require_role
from grievance_portal.taxonomy import status_slug


def list_visible(engine, identity: Identity, limit: Optional[int] = None) -> List[Grievance]:
    """Grievances readable by *identity*, newest first."""
    require_role(identity)
    if identity.is_admin:
        return list_grievances(engine, with_submitter=True, limit=limit)
    return list_grievances(engine, submitted_by=identity.user_id, limit=limit)


def get_visible(engine, identity: Identity, key: str) -> Grievance:
    """Point read. Another user's grievance looks exactly like a missing one."""
    require_role(identity)
    grievance = get_grievance(engine, key)
    if not identity.is_admin and grievance.submitted_by != identity.user_id:
        raise NotFound(f"Grievance '{key}' not found")
    return grievance


def apply_filters(
    grievances: Iterable[Grievance],
    search: Optional[str] = None,
    category: Optional[str] = None,
    status: Optional[str] = None,
) -> List[Grievance]:
    """Dashboard search / category / status narrowing. ``"all"`` means no filter."""
    search = (search or "").strip().lower()
    category = (category or "").strip().lower()
    status = (status or "").strip().lower()

    def matches(g: Grievance) -> bool:
        if category and category != "all" and g.category.lower() != category:
            return False
        if status and status != "all" and status not in (g.status.lower(), status_slug(g.status)):
            return False
        if search:
            name = ((g.submitter or {}).get("full_name") or "").lower()
            if not (
                search in g.grievance_id.lower()
                or search in g.title.lower()
                or search in name
            ):
                return False
        return True

    return [g for g in grievances if matches(g)]
