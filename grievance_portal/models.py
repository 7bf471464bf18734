"""
Domain dataclasses used across the application.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional


@dataclass
class Identity:
    """The authenticated caller, resolved once per request."""
    user_id: str
    role: Optional[str]              # "student", "faculty", "admin" or None (no role row yet)
    full_name: Optional[str] = None
    user_id_number: Optional[str] = None
    department: Optional[str] = None

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


@dataclass
class ValidatedGrievance:
    """A well-formed candidate that has not been persisted yet."""
    submitted_by: str
    title: str
    description: str
    category: str
    subcategory: str
    details: Dict[str, Any]
    status: str


@dataclass
class Grievance:
    id: str
    grievance_id: str
    submitted_by: str
    title: str
    description: str
    category: str
    subcategory: str
    details: Dict[str, Any]
    status: str
    created_at: datetime
    # Submitter display attributes, only populated on the admin listing.
    submitter: Optional[Dict[str, Any]] = field(default=None, compare=False)

    def with_status(self, status: str) -> "Grievance":
        return replace(self, status=status)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "grievance_id": self.grievance_id,
            "submitted_by": self.submitted_by,
            "title": self.title,
            "description": self.description,
            "category": self.category,
            "subcategory": self.subcategory,
            "details": dict(self.details),
            "status": self.status,
            "created_at": self.created_at.isoformat(),
        }
        if self.submitter is not None:
            data["submitter"] = dict(self.submitter)
        return data


@dataclass
class StatusChanged:
    """Emitted after a status change is persisted."""
    grievance_id: str
    submitted_by: str
    old_status: str
    new_status: str
    changed_by: str
    changed_at: datetime
