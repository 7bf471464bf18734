"""
Fixed category taxonomy, grievance statuses and the transition table.
"""

from typing import Dict, FrozenSet, List, Tuple

# ── Categories ───────────────────────────────────────────────────────
SUBCATEGORIES_BY_CATEGORY: Dict[str, List[str]] = {
    "Academic": ["Teaching Quality", "Syllabus", "Time-Table Clash", "Lab/Equipment"],
    "Facility": [
        "Classroom Infrastructure", "WiFi", "Water Supply", "Restrooms",
        "Canteen", "Hostel", "Library", "Parking",
    ],
    "Examination": [
        "Marks Related", "Exam Scheduling", "Exam Not Given",
        "Results Delay", "Invigilation/Conduct",
    ],
    "Placement": [
        "Eligibility Issues", "Company Opportunity", "Documentation",
        "Placement Cell Support", "Interview Process",
    ],
    "Harassment": [
        "Workplace Harassment", "Student Harassment", "Discrimination",
        "Bullying", "Inappropriate Behavior",
    ],
    "Other": ["Other"],
}

CATEGORIES = tuple(SUBCATEGORIES_BY_CATEGORY)

# Extra form fields the submission form collects for some subcategories.
# Informational only: the values land in the open ``details`` mapping.
DETAIL_FIELD_HINTS: Dict[Tuple[str, str], Dict[str, object]] = {
    ("Facility", "WiFi"): {
        "building": None,
        "floor": None,
        "location": None,
    },
    ("Academic", "Teaching Quality"): {
        "subjectName": None,
        "facultyName": None,
        "issueType": ["pace", "methodology", "doubts"],
    },
    ("Examination", "Marks Related"): {
        "subject": None,
        "courseCode": None,
        "examName": None,
        "examIssueType": ["error-total", "not-graded", "wrong-marks"],
    },
}

# ── Statuses ─────────────────────────────────────────────────────────
SUBMITTED = "Submitted"
IN_PROGRESS = "In Progress"
RESOLVED = "Resolved"
CLOSED = "Closed"

STATUSES = (SUBMITTED, IN_PROGRESS, RESOLVED, CLOSED)
INITIAL_STATUS = SUBMITTED

# Forward-only. Closed has no outbound edge.
TRANSITIONS: FrozenSet[Tuple[str, str]] = frozenset({
    (SUBMITTED, IN_PROGRESS),
    (SUBMITTED, RESOLVED),
    (SUBMITTED, CLOSED),
    (IN_PROGRESS, RESOLVED),
    (IN_PROGRESS, CLOSED),
    (RESOLVED, CLOSED),
})


def is_valid_pair(category: str, subcategory: str) -> bool:
    return subcategory in SUBCATEGORIES_BY_CATEGORY.get(category, ())


def allowed_next(status: str) -> List[str]:
    """Statuses reachable in one step from *status*, in lifecycle order."""
    return [s for s in STATUSES if (status, s) in TRANSITIONS]


def status_slug(status: str) -> str:
    """'In Progress' -> 'in-progress' (the dashboard filter value)."""
    return status.lower().replace(" ", "-")


def describe() -> dict:
    """JSON-friendly view of the taxonomy for API clients."""
    return {
        "categories": {c: list(subs) for c, subs in SUBCATEGORIES_BY_CATEGORY.items()},
        "statuses": list(STATUSES),
        "initial_status": INITIAL_STATUS,
        "transitions": {s: allowed_next(s) for s in STATUSES},
        "detail_fields": [
            {"category": c, "subcategory": sub, "fields": fields}
            for (c, sub), fields in DETAIL_FIELD_HINTS.items()
        ],
    }
