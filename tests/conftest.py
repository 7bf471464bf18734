"""
Shared fixtures: an in-memory SQLite store with the portal schema.
"""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from grievance_portal.database import init_schema
from grievance_portal.rbac import register_identity


@pytest.fixture
def engine():
    eng = create_engine(
        "sqlite+pysqlite:///:memory:",
        future=True,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    init_schema(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def users(engine):
    """One identity per role, plus a second student."""
    return {
        "student": register_identity(engine, "u-student", "student", "Asha Rao", "21CS001", "CSE"),
        "student2": register_identity(engine, "u-student2", "student", "Ravi Kumar", "21EC014", "ECE"),
        "faculty": register_identity(engine, "u-faculty", "faculty", "Dr. Meena Iyer", "F-102", "CSE"),
        "admin": register_identity(engine, "u-admin", "admin", "Registrar", "A-1", "Admin"),
    }
