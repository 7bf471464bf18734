"""
Unit tests for the record store – error translation, retries and rows.
"""

from datetime import datetime, timezone

import pytest
from sqlalchemy import exc as sa_exc
from sqlalchemy import text

from grievance_portal.database import (
    format_timestamp,
    get_grievance,
    insert_grievance,
    list_grievances,
    parse_timestamp,
    retry_once_on_unavailable,
    store_errors,
    update_status,
)
from grievance_portal.errors import Conflict, NotFound, StoreUnavailable
from grievance_portal.models import ValidatedGrievance


def _record(owner="u1"):
    return ValidatedGrievance(
        submitted_by=owner,
        title="Water cooler empty",
        description="No drinking water on the 3rd floor.",
        category="Facility",
        subcategory="Water Supply",
        details={"subcategory": "Water Supply", "floor": "3rd"},
        status="Submitted",
    )


NOW = datetime(2025, 3, 14, 10, 30, 0, tzinfo=timezone.utc)


# ── Tests: error translation ─────────────────────────────────────────

def test_store_errors_maps_integrity_to_conflict():
    with pytest.raises(Conflict):
        with store_errors():
            raise sa_exc.IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))


def test_store_errors_maps_operational_to_unavailable():
    with pytest.raises(StoreUnavailable):
        with store_errors():
            raise sa_exc.OperationalError("SELECT 1", {}, Exception("timeout expired"))


def test_store_errors_passes_other_errors_through():
    with pytest.raises(KeyError):
        with store_errors():
            raise KeyError("x")


# ── Tests: retry ─────────────────────────────────────────────────────

def test_retry_once_recovers_from_single_outage(capsys):
    calls = []

    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise StoreUnavailable("down")
        return "ok"

    assert retry_once_on_unavailable(flaky) == "ok"
    assert len(calls) == 2
    assert "[WARN]" in capsys.readouterr().err


def test_retry_once_surfaces_second_outage():
    calls = []

    def down():
        calls.append(1)
        raise StoreUnavailable("down")

    with pytest.raises(StoreUnavailable):
        retry_once_on_unavailable(down)
    assert len(calls) == 2


def test_retry_once_does_not_retry_other_errors():
    calls = []

    def missing():
        calls.append(1)
        raise NotFound("x")

    with pytest.raises(NotFound):
        retry_once_on_unavailable(missing)
    assert len(calls) == 1


# ── Tests: grievance rows ────────────────────────────────────────────

def test_insert_and_read_back(engine):
    created = insert_grievance(engine, _record(), "row-1", "GRV-20250314-AAAAAA", NOW)
    stored = get_grievance(engine, "row-1")
    assert stored == created
    assert stored.details == {"subcategory": "Water Supply", "floor": "3rd"}
    assert stored.created_at == NOW


def test_duplicate_display_code_is_conflict(engine):
    insert_grievance(engine, _record(), "row-1", "GRV-20250314-AAAAAA", NOW)
    with pytest.raises(Conflict):
        insert_grievance(engine, _record(), "row-2", "GRV-20250314-AAAAAA", NOW)
    assert len(list_grievances(engine)) == 1


def test_update_status_only_touches_status(engine):
    insert_grievance(engine, _record(), "row-1", "GRV-20250314-AAAAAA", NOW)
    update_status(engine, "row-1", "Resolved")
    stored = get_grievance(engine, "row-1")
    assert stored.status == "Resolved"
    assert stored.title == "Water cooler empty"


def test_update_status_missing_row(engine):
    with pytest.raises(NotFound):
        update_status(engine, "nope", "Closed")


def test_list_scoped_to_submitter(engine):
    insert_grievance(engine, _record("u1"), "row-1", "GRV-1", NOW)
    insert_grievance(engine, _record("u2"), "row-2", "GRV-2", NOW)
    assert [g.id for g in list_grievances(engine, submitted_by="u2")] == ["row-2"]


def test_details_stored_as_json_text(engine):
    insert_grievance(engine, _record(), "row-1", "GRV-1", NOW)
    with engine.connect() as conn:
        raw = conn.execute(text("SELECT details FROM grievances WHERE id = 'row-1'")).scalar()
    assert raw.startswith("{")


# ── Tests: timestamps ────────────────────────────────────────────────

def test_timestamp_format_sorts_lexicographically():
    a = format_timestamp(datetime(2025, 1, 1, 10, 0, 0, tzinfo=timezone.utc))
    b = format_timestamp(datetime(2025, 1, 1, 10, 0, 0, 500, tzinfo=timezone.utc))
    assert a < b
    assert len(a) == len(b)


def test_parse_timestamp_assumes_utc():
    assert parse_timestamp("2025-03-14T10:30:00.000000") == NOW
    assert parse_timestamp(NOW) == NOW
