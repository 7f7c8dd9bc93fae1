import os
import sys
from datetime import date

import pytest

# srcディレクトリをパスに追加
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..', 'src')))

from dues_models import ExpectedCollection, LedgerSnapshot  # noqa: E402


@pytest.fixture
def q1_collection():
    return ExpectedCollection(
        id="c-q1",
        apartment_id="apt-1",
        payment_type="maintenance",
        quarter="Q1",
        financial_year="FY25",
        due_date=date(2025, 4, 10),
        amount_due=5000.0,
        daily_fine=50.0,
    )


@pytest.fixture
def snapshot_dict():
    return {
        "country": "India",
        "blocks": [
            {
                "id": "b-2",
                "block_name": "Block B",
                "flats": [{"id": "f-b1", "flat_number": "B-1"}],
            },
            {
                "id": "b-1",
                "block_name": "Block A",
                "flats": [
                    {"id": "f-10", "flat_number": "A-10"},
                    {"id": "f-2", "flat_number": "A-2"},
                    {"id": "f-9", "flat_number": "A-9", "flat_type": "3BHK"},
                ],
            },
        ],
        "expected_collections": [
            {
                "id": "c-q1", "apartment_id": "apt-1", "payment_type": "maintenance",
                "quarter": "Q1", "financial_year": "FY25", "due_date": "2025-04-10",
                "amount_due": 5000, "daily_fine": 50, "is_active": True,
                "flat_type_rates": {"3BHK": 6000},
            },
            {
                "id": "c-q2", "apartment_id": "apt-1", "payment_type": "maintenance",
                "quarter": "Q2", "financial_year": "FY25", "due_date": "2025-07-10",
                "amount_due": 4000, "daily_fine": 0, "is_active": True,
            },
            {
                "id": "c-old", "apartment_id": "apt-1", "payment_type": "maintenance",
                "quarter": "Q4", "financial_year": "FY24", "due_date": "2025-01-10",
                "amount_due": 4500, "daily_fine": 10, "is_active": False,
            },
        ],
        "payments": [
            {"id": "p1", "flat_id": "f-2", "payment_type": "Maintenance", "payment_quarter": "Q1-2025",
             "payment_amount": 5000, "payment_date": "2025-04-05", "status": "Approved",
             "created_at": "2025-04-05T10:00:00Z"},
            {"id": "p2", "flat_id": "f-10", "payment_type": "maintenance", "payment_quarter": "Q1 2025",
             "payment_amount": "5200", "payment_date": "2025-04-15", "status": "Approved",
             "created_at": "2025-04-15T09:00:00Z"},
            {"id": "p3", "flat_id": "f-9", "expected_collection_id": "c-q1",
             "payment_amount": 6000, "payment_date": "2025-04-01", "status": "Approved",
             "created_at": "2025-04-01T08:00:00Z"},
            {"id": "p4", "flat_id": "f-b1", "payment_type": "maintenance", "payment_quarter": "Q2-2025",
             "payment_amount": 4000, "payment_date": "2025-07-01", "status": "Approved",
             "created_at": "2025-07-01T08:00:00Z"},
        ],
    }


@pytest.fixture
def snapshot(snapshot_dict):
    return LedgerSnapshot.from_dict(snapshot_dict)
