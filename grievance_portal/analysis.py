"""
Dashboard aggregation – status and category counts over a grievance list.
"""

from typing import Dict, List, Sequence

import pandas as pd

from grievance_portal.models import Grievance
from grievance_portal.taxonomy import CATEGORIES, STATUSES


def grievances_to_frame(grievances: Sequence[Grievance]) -> pd.DataFrame:
    """Flatten grievances into a DataFrame (one row per grievance)."""
    rows: List[Dict] = []
    for g in grievances:
        row = {
            "grievance_id": g.grievance_id,
            "title": g.title,
            "category": g.category,
            "subcategory": g.subcategory,
            "status": g.status,
            "created_at": g.created_at,
        }
        if g.submitter is not None:
            row["submitted_by"] = g.submitter.get("full_name") or g.submitted_by
        rows.append(row)
    columns = ["grievance_id", "title", "category", "subcategory", "status", "created_at"]
    if not rows:
        return pd.DataFrame(columns=columns)
    return pd.DataFrame(rows)


def compute_status_summary(grievances: Sequence[Grievance]) -> Dict:
    """
    Totals for the dashboards.
    Every status and category is always present, with 0 when unused.
    """
    df = grievances_to_frame(grievances)
    by_status = {s: 0 for s in STATUSES}
    by_category = {c: 0 for c in CATEGORIES}

    if not df.empty:
        for status, count in df["status"].value_counts().items():
            by_status[status] = int(count)
        for category, count in df["category"].value_counts().items():
            by_category[category] = int(count)

    return {
        "total": int(len(df)),
        "by_status": by_status,
        "by_category": by_category,
    }


def format_grievance_table(grievances: Sequence[Grievance]) -> str:
    """Markdown table for the CLI."""
    df = grievances_to_frame(grievances)
    if df.empty:
        return "(no grievances)"
    df = df.copy()
    df["created_at"] = df["created_at"].map(lambda d: d.strftime("%Y-%m-%d %H:%M"))
    return df.drop(columns=["subcategory"]).to_markdown(index=False)
