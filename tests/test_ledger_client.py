"""
台帳APIクライアントのテスト（requests をモック）
"""

import unittest
from unittest.mock import Mock, patch

import requests

from dues_models import SnapshotUnavailableError
from ledger_client import LedgerClient


def _response(payload, status_code=200):
    resp = Mock()
    resp.status_code = status_code
    resp.json.return_value = payload
    if status_code >= 400:
        resp.raise_for_status.side_effect = requests.HTTPError(f"{status_code} Error")
    else:
        resp.raise_for_status.return_value = None
    return resp


class TestLedgerClient(unittest.TestCase):

    def setUp(self):
        self.client = LedgerClient("https://ledger.example.com/", "test-key", timeout=5, page_size=2, verbose=False)

    def test_base_url_and_headers(self):
        self.assertEqual(self.client.base_url, "https://ledger.example.com/rest/v1")
        self.assertEqual(self.client.headers["apikey"], "test-key")
        self.assertEqual(self.client.headers["Authorization"], "Bearer test-key")

    def test_expected_collections_query(self):
        with patch("requests.get") as mock_get:
            mock_get.return_value = _response([{"id": "c1"}])
            rows = self.client.get_expected_collections("apt-1")

        self.assertEqual(rows, [{"id": "c1"}])
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], "https://ledger.example.com/rest/v1/expected_collections")
        self.assertEqual(kwargs["params"]["apartment_id"], "eq.apt-1")
        self.assertEqual(kwargs["timeout"], 5)

    def test_payments_are_paged_until_short_page(self):
        pages = [
            _response([{"id": "p1"}, {"id": "p2"}]),
            _response([{"id": "p3"}]),
        ]
        with patch("requests.get", side_effect=pages) as mock_get:
            rows = self.client.get_payments("apt-1")

        self.assertEqual([r["id"] for r in rows], ["p1", "p2", "p3"])
        offsets = [c.kwargs["params"]["offset"] for c in mock_get.call_args_list]
        self.assertEqual(offsets, [0, 2])

    def test_http_error_becomes_snapshot_unavailable(self):
        with patch("requests.get", return_value=_response({}, status_code=500)):
            with self.assertRaises(SnapshotUnavailableError):
                self.client.get_blocks("apt-1")

    def test_connection_error_becomes_snapshot_unavailable(self):
        with patch("requests.get", side_effect=requests.ConnectionError("down")):
            with self.assertRaises(SnapshotUnavailableError):
                self.client.fetch_snapshot("apt-1")

    def test_non_list_body_is_rejected(self):
        with patch("requests.get", return_value=_response({"message": "oops"})):
            with self.assertRaises(SnapshotUnavailableError):
                self.client.get_expected_collections("apt-1")

    def test_fetch_snapshot_with_access_code_uses_rpc(self):
        gets = [
            _response([{"id": "c1", "payment_type": "maintenance", "quarter": "Q1", "financial_year": "FY25",
                        "due_date": "2025-04-10", "amount_due": 5000, "is_active": True}]),
            _response([{"id": "b1", "block_name": "A", "flats": [{"id": "f1", "flat_number": "1"}]}]),
            _response([{"country": "India"}]),
        ]
        with patch("requests.get", side_effect=gets), patch("requests.post") as mock_post:
            mock_post.return_value = _response([
                {"flat_id": "f1", "expected_collection_id": "c1", "payment_amount": 5000,
                 "payment_date": "2025-04-01", "status": "Approved"},
            ])
            snap = self.client.fetch_snapshot("apt-1", access_code="CODE1")

        self.assertTrue(mock_post.call_args.args[0].endswith("/rpc/get_payment_status_data"))
        self.assertEqual(mock_post.call_args.kwargs["json"], {"access_code": "CODE1"})
        self.assertEqual(snap.country, "India")
        self.assertEqual(len(snap.payments), 1)
        self.assertTrue(snap.payments[0].id.startswith("row-"))
        self.assertEqual(snap.blocks[0].flats[0].flat_number, "1")

    def test_rpc_error_object_becomes_snapshot_unavailable(self):
        gets = [_response([]), _response([]), _response([])]
        with patch("requests.get", side_effect=gets), patch("requests.post") as mock_post:
            mock_post.return_value = _response({"message": "bad code"})
            with self.assertRaises(SnapshotUnavailableError):
                self.client.fetch_snapshot("apt-1", access_code="BAD")

    def test_rpc_null_body_means_no_payments(self):
        with patch("requests.post", return_value=_response(None)):
            self.assertEqual(self.client.get_payments_by_access_code("CODE1"), [])


if __name__ == "__main__":
    unittest.main()
