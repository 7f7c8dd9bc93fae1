import requests
from typing import Dict, List, Optional

from dues_models import LedgerSnapshot, SnapshotUnavailableError
from snapshot_loader import dump_snapshot_dict


PAYMENT_COLUMNS = (
    "id,flat_id,expected_collection_id,payment_amount,payment_type,payment_quarter,"
    "payment_date,status,created_at,payment_source"
)
BLOCK_COLUMNS = "id,block_name,flats:flat_numbers(id,flat_number,flat_type,built_up_area)"


class LedgerClient:
    """コレクション登録・入金台帳を読み出す REST (PostgREST) クライアント

    取得のみ行い、書き込みはしない。通信・応答の失敗はすべて
    SnapshotUnavailableError に変換する。
    """

    def __init__(self, base_url: str, api_key: str, timeout: float = 15, page_size: int = 1000, verbose: bool = True):
        self.verbose = verbose
        self.base_url = f"{base_url.rstrip('/')}/rest/v1"
        self.timeout = timeout
        self.page_size = page_size
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Accept": "application/json",
        }

    def _get(self, table: str, params: Dict) -> List[Dict]:
        url = f"{self.base_url}/{table}"
        try:
            response = requests.get(url, headers=self.headers, params=params, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise SnapshotUnavailableError(f"{table} の取得に失敗しました: {e}") from e
        if not isinstance(data, list):
            raise SnapshotUnavailableError(f"{table} の応答形式が不正です: {type(data).__name__}")
        return data

    def get_expected_collections(self, apartment_id: str) -> List[Dict]:
        return self._get("expected_collections", {
            "select": "*",
            "apartment_id": f"eq.{apartment_id}",
            "order": "due_date.desc",
        })

    def get_blocks(self, apartment_id: str) -> List[Dict]:
        return self._get("buildings_blocks_phases", {
            "select": BLOCK_COLUMNS,
            "apartment_id": f"eq.{apartment_id}",
            "order": "block_name",
        })

    def get_country(self, apartment_id: str) -> Optional[str]:
        rows = self._get("apartments", {"select": "country", "id": f"eq.{apartment_id}"})
        return rows[0].get("country") if rows else None

    def get_payments(self, apartment_id: str) -> List[Dict]:
        """入金申請をページングしながら全件取得"""
        payments: List[Dict] = []
        offset = 0
        while True:
            page = self._get("payment_submissions", {
                "select": PAYMENT_COLUMNS,
                "apartment_id": f"eq.{apartment_id}",
                "order": "created_at.asc",
                "limit": self.page_size,
                "offset": offset,
            })
            payments.extend(page)
            if len(page) < self.page_size:
                return payments
            offset += self.page_size

    def get_payments_by_access_code(self, access_code: str) -> List[Dict]:
        """公開ステータスページ用: アクセスコード経由のRPCで入金を取得"""
        url = f"{self.base_url}/rpc/get_payment_status_data"
        try:
            response = requests.post(url, headers=self.headers, json={"access_code": access_code}, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            raise SnapshotUnavailableError(f"get_payment_status_data の呼び出しに失敗しました: {e}") from e
        if data is None:
            return []
        if not isinstance(data, list):
            raise SnapshotUnavailableError(f"get_payment_status_data の応答形式が不正です: {type(data).__name__}")
        return data

    def fetch_raw(self, apartment_id: str, access_code: Optional[str] = None) -> Dict:
        """APIの生データをエクスポート形式の辞書で取得"""
        if self.verbose:
            print(f"\n📥 台帳スナップショットを取得中... (apartment={apartment_id})")
        collections = self.get_expected_collections(apartment_id)
        blocks = self.get_blocks(apartment_id)
        country = self.get_country(apartment_id)
        if access_code:
            payments = self.get_payments_by_access_code(access_code)
        else:
            payments = self.get_payments(apartment_id)

        if self.verbose:
            print(f"   ✅ コレクション {len(collections)}件 / ブロック {len(blocks)}件 / 入金 {len(payments)}件")
        return dump_snapshot_dict(blocks, collections, payments, country)

    def fetch_snapshot(self, apartment_id: str, access_code: Optional[str] = None) -> LedgerSnapshot:
        """1回分の不変スナップショットを取得"""
        return LedgerSnapshot.from_dict(self.fetch_raw(apartment_id, access_code))
