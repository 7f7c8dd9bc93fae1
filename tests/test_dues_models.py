from datetime import date, datetime

import pytest

from dues_models import (
    ExpectedCollection,
    LedgerSnapshot,
    PaymentRecord,
    SnapshotUnavailableError,
    parse_amount,
    parse_date,
    parse_datetime,
)


def test_parse_amount_tolerates_bad_input():
    assert parse_amount("5,250") == 5250.0
    assert parse_amount(5000) == 5000.0
    assert parse_amount("") is None
    assert parse_amount(None) is None
    assert parse_amount("abc") is None
    assert parse_amount(True) is None


def test_parse_dates():
    assert parse_date("2025-04-15") == date(2025, 4, 15)
    assert parse_date("2025-04-15T10:00:00Z") == date(2025, 4, 15)
    assert parse_date("15/04/2025") is None
    assert parse_datetime("2025-04-15T10:00:00Z") == datetime(2025, 4, 15, 10, 0)
    assert parse_datetime("2025-04-15") == datetime(2025, 4, 15)
    assert parse_datetime("nope") is None


def test_payment_record_from_dict_degrades_malformed_fields():
    rec = PaymentRecord.from_dict({
        "flat_id": "f1", "payment_amount": "", "payment_date": "not-a-date", "status": "Approved",
    })
    assert rec.id.startswith("row-")
    assert rec.payment_amount is None
    assert rec.payment_date is None
    assert rec.is_approved


def test_expected_collection_from_dict():
    c = ExpectedCollection.from_dict({
        "id": 7, "payment_type": "maintenance", "quarter": "Q1", "financial_year": "FY25",
        "due_date": "2025-04-10", "amount_due": "5000", "daily_fine": -5, "is_active": True,
        "flat_type_rates": {"2BHK": "4500", "bad": "x"},
    })
    assert c.id == "7"
    assert c.daily_fine == 0.0
    assert c.flat_type_rates == {"2BHK": 4500.0}
    assert c.label == "Maintenance - Q1 FY25"


def test_snapshot_collection_selection(snapshot):
    assert [c.id for c in snapshot.active_collections()] == ["c-q2", "c-q1"]
    assert [c.id for c in snapshot.archived_collections()] == ["c-old"]
    assert snapshot.default_collection().id == "c-q2"
    assert snapshot.find_collection("missing") is None
    assert [p.id for p in snapshot.payments_by_flat()["f-2"]] == ["p1"]


def test_empty_snapshot():
    snap = LedgerSnapshot.from_dict({})
    assert snap.default_collection() is None
    assert snap.blocks == ()


def test_rows_without_id_get_order_independent_ids():
    rows = [
        {"flat_id": "f1", "payment_amount": 2000, "payment_date": "2025-04-08", "status": "Received"},
        {"flat_id": "f1", "payment_amount": 3000, "payment_date": "2025-04-12", "status": "Approved"},
    ]
    forward = LedgerSnapshot.from_dict({"payments": rows})
    backward = LedgerSnapshot.from_dict({"payments": list(reversed(rows))})
    assert {p.payment_amount: p.id for p in forward.payments} == {p.payment_amount: p.id for p in backward.payments}
    assert forward.payments[0].id != forward.payments[1].id


def test_snapshot_rows_must_be_objects():
    with pytest.raises(SnapshotUnavailableError):
        LedgerSnapshot.from_dict({"payments": {"message": "bad code"}})
    with pytest.raises(SnapshotUnavailableError):
        LedgerSnapshot.from_dict({"blocks": ["Block A"]})
