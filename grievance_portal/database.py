"""
Database engine initialisation and the grievance / role record store.

All statements are plain ``text()`` SQL that runs on PostgreSQL (the hosted
backend) and SQLite (local development and tests).
"""

import json
import sys
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from sqlalchemy import create_engine, text
from sqlalchemy import exc as sa_exc

from grievance_portal.config import get_env
from grievance_portal.errors import Conflict, NotFound, StoreUnavailable
from grievance_portal.models import Grievance, ValidatedGrievance

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S.%f"

SCHEMA_STATEMENTS = (
    """
    CREATE TABLE IF NOT EXISTS user_roles (
        user_id TEXT PRIMARY KEY,
        role TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS profiles (
        id TEXT PRIMARY KEY,
        full_name TEXT,
        user_id_number TEXT,
        department TEXT
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS grievances (
        id TEXT PRIMARY KEY,
        grievance_id TEXT NOT NULL UNIQUE,
        submitted_by TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT NOT NULL,
        category TEXT NOT NULL,
        subcategory TEXT NOT NULL,
        details TEXT NOT NULL,
        status TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """,
    "CREATE INDEX IF NOT EXISTS ix_grievances_submitted_by ON grievances (submitted_by)",
)

_GRIEVANCE_COLUMNS = (
    "g.id, g.grievance_id, g.submitted_by, g.title, g.description, g.category, "
    "g.subcategory, g.details, g.status, g.created_at"
)


# ── Engine ───────────────────────────────────────────────────────────

def init_engine(db_uri: Optional[str] = None):
    """Create a SQLAlchemy engine and verify the connection."""
    db_uri = db_uri or get_env("DB_URI")
    engine = create_engine(db_uri, echo=False, future=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception as e:
        print("ERROR: could not connect to DB:", e, file=sys.stderr)
        sys.exit(1)
    print("[init] Connected to DB.")
    return engine


def init_schema(engine) -> None:
    """Create the tables if they do not exist yet."""
    with engine.begin() as conn:
        for stmt in SCHEMA_STATEMENTS:
            conn.execute(text(stmt))


@contextmanager
def store_errors() -> Iterator[None]:
    """Translate driver errors into the store's error taxonomy."""
    try:
        yield
    except sa_exc.IntegrityError as e:
        raise Conflict(str(e.orig)) from e
    except (sa_exc.OperationalError, sa_exc.InterfaceError, sa_exc.TimeoutError) as e:
        raise StoreUnavailable(str(e)) from e
    except sa_exc.DBAPIError as e:
        if e.connection_invalidated:
            raise StoreUnavailable(str(e)) from e
        raise


def retry_once_on_unavailable(fn, *args, **kwargs):
    """Call *fn*; if the store is unavailable, try exactly once more."""
    try:
        return fn(*args, **kwargs)
    except StoreUnavailable as e:
        print(f"[WARN] Store unavailable, retrying once: {e}", file=sys.stderr)
        return fn(*args, **kwargs)


# ── Row conversion ───────────────────────────────────────────────────

def format_timestamp(dt: datetime) -> str:
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc).replace(tzinfo=None)
    return dt.strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value) -> datetime:
    if isinstance(value, datetime):
        dt = value
    else:
        dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _row_to_grievance(row, with_submitter: bool = False) -> Grievance:
    details = row["details"]
    if isinstance(details, str):
        details = json.loads(details) if details else {}
    submitter = None
    if with_submitter:
        submitter = {
            "full_name": row["full_name"],
            "user_id_number": row["user_id_number"],
            "department": row["department"],
        }
    return Grievance(
        id=str(row["id"]),
        grievance_id=str(row["grievance_id"]),
        submitted_by=str(row["submitted_by"]),
        title=row["title"],
        description=row["description"],
        category=row["category"],
        subcategory=row["subcategory"],
        details=dict(details or {}),
        status=row["status"],
        created_at=parse_timestamp(row["created_at"]),
        submitter=submitter,
    )


# ── Roles and profiles ───────────────────────────────────────────────

def fetch_role(engine, user_id: str) -> Optional[str]:
    """Return the raw role string for *user_id*, or None if no row exists."""
    sql = text("SELECT role FROM user_roles WHERE user_id = :u")
    with store_errors():
        with engine.connect() as conn:
            row = conn.execute(sql, {"u": user_id}).mappings().first()
    return None if row is None else row["role"]


def fetch_profile(engine, user_id: str) -> Optional[Dict[str, Any]]:
    sql = text("""
        SELECT full_name, user_id_number, department
        FROM profiles
        WHERE id = :u
    """)
    with store_errors():
        with engine.connect() as conn:
            row = conn.execute(sql, {"u": user_id}).mappings().first()
    return None if row is None else dict(row)


def insert_identity(engine, user_id: str, role: str, profile: Dict[str, Any]) -> None:
    """Insert the role row and profile row in one transaction.

    The role row is insert-once: a second call for the same user raises Conflict.
    """
    with store_errors():
        with engine.begin() as conn:
            conn.execute(
                text("INSERT INTO user_roles (user_id, role) VALUES (:u, :r)"),
                {"u": user_id, "r": role},
            )
            conn.execute(
                text("""
                    INSERT INTO profiles (id, full_name, user_id_number, department)
                    VALUES (:u, :full_name, :user_id_number, :department)
                """),
                {
                    "u": user_id,
                    "full_name": profile.get("full_name"),
                    "user_id_number": profile.get("user_id_number"),
                    "department": profile.get("department"),
                },
            )


# ── Grievances ───────────────────────────────────────────────────────

def insert_grievance(
    engine,
    record: ValidatedGrievance,
    row_id: str,
    grievance_id: str,
    created_at: datetime,
) -> Grievance:
    """Insert a validated grievance. A duplicate grievance_id raises Conflict."""
    params = {
        "id": row_id,
        "grievance_id": grievance_id,
        "submitted_by": record.submitted_by,
        "title": record.title,
        "description": record.description,
        "category": record.category,
        "subcategory": record.subcategory,
        "details": json.dumps(record.details),
        "status": record.status,
        "created_at": format_timestamp(created_at),
    }
    with store_errors():
        with engine.begin() as conn:
            conn.execute(
                text("""
                    INSERT INTO grievances
                        (id, grievance_id, submitted_by, title, description,
                         category, subcategory, details, status, created_at)
                    VALUES
                        (:id, :grievance_id, :submitted_by, :title, :description,
                         :category, :subcategory, :details, :status, :created_at)
                """),
                params,
            )
    return Grievance(
        id=row_id,
        grievance_id=grievance_id,
        submitted_by=record.submitted_by,
        title=record.title,
        description=record.description,
        category=record.category,
        subcategory=record.subcategory,
        details=dict(record.details),
        status=record.status,
        created_at=parse_timestamp(params["created_at"]),
    )


def get_grievance(engine, key: str) -> Grievance:
    """Point read by internal id or display code."""
    sql = text(f"""
        SELECT {_GRIEVANCE_COLUMNS}
        FROM grievances g
        WHERE g.id = :k OR g.grievance_id = :k
    """)
    with store_errors():
        with engine.connect() as conn:
            row = conn.execute(sql, {"k": key}).mappings().first()
    if row is None:
        raise NotFound(f"Grievance '{key}' not found")
    return _row_to_grievance(row)


def update_status(engine, row_id: str, status: str) -> None:
    """Write the status column only. Last write wins."""
    with store_errors():
        with engine.begin() as conn:
            updated = conn.execute(
                text("UPDATE grievances SET status = :s WHERE id = :id"),
                {"s": status, "id": row_id},
            ).rowcount
    if updated == 0:
        raise NotFound(f"Grievance '{row_id}' not found")


def list_grievances(
    engine,
    submitted_by: Optional[str] = None,
    with_submitter: bool = False,
    limit: Optional[int] = None,
) -> List[Grievance]:
    """Newest first. Optionally scoped to one submitter and joined with profiles."""
    columns = _GRIEVANCE_COLUMNS
    joins = ""
    if with_submitter:
        columns += ", p.full_name, p.user_id_number, p.department"
        joins = "LEFT JOIN profiles p ON p.id = g.submitted_by"

    where = ""
    params: Dict[str, Any] = {}
    if submitted_by is not None:
        where = "WHERE g.submitted_by = :u"
        params["u"] = submitted_by

    limit_clause = ""
    if limit is not None:
        limit_clause = "LIMIT :limit"
        params["limit"] = int(limit)

    sql = text(f"""
        SELECT {columns}
        FROM grievances g
        {joins}
        {where}
        ORDER BY g.created_at DESC, g.grievance_id DESC
        {limit_clause}
    """)
    with store_errors():
        with engine.connect() as conn:
            rows = conn.execute(sql, params).mappings().all()
    return [_row_to_grievance(r, with_submitter=with_submitter) for r in rows]
