"""
Submission validation against the category taxonomy.
"""

from collections.abc import Mapping
from typing import Any, Dict

from grievance_portal.errors import (
    InvalidCategory,
    InvalidSubcategory,
    MissingRequiredField,
    ValidationError,
)
from grievance_portal.config import MAX_TITLE_CHARS
from grievance_portal.models import ValidatedGrievance
from grievance_portal.taxonomy import CATEGORIES, INITIAL_STATUS, is_valid_pair

REQUIRED_FIELDS = ("title", "description", "category", "subcategory")


def _required_str(candidate: Mapping[str, Any], name: str) -> str:
    value = candidate.get(name)
    if value is None or not isinstance(value, str) or not value.strip():
        raise MissingRequiredField(name)
    return value.strip()


def validate(candidate: Mapping[str, Any], submitted_by: str) -> ValidatedGrievance:
    """
    Check a candidate submission and return it as a ValidatedGrievance.

    Raises MissingRequiredField, InvalidCategory or InvalidSubcategory.
    ``details`` is copied through as-is; its keys are not checked.
    """
    if not submitted_by:
        raise MissingRequiredField("submitted_by")

    values = {name: _required_str(candidate, name) for name in REQUIRED_FIELDS}
    category = values["category"]
    subcategory = values["subcategory"]

    if len(values["title"]) > MAX_TITLE_CHARS:
        raise ValidationError(f"title must be at most {MAX_TITLE_CHARS} characters")

    if category not in CATEGORIES:
        raise InvalidCategory(f"Unknown category '{category}'")
    if not is_valid_pair(category, subcategory):
        raise InvalidSubcategory(
            f"Subcategory '{subcategory}' is not valid for category '{category}'"
        )

    raw_details = candidate.get("details")
    if raw_details is None:
        raw_details = {}
    if not isinstance(raw_details, Mapping):
        raise ValidationError("details must be an object")
    details: Dict[str, Any] = dict(raw_details)
    details["subcategory"] = subcategory

    return ValidatedGrievance(
        submitted_by=submitted_by,
        title=values["title"],
        description=values["description"],
        category=category,
        subcategory=subcategory,
        details=details,
        status=INITIAL_STATUS,
    )
