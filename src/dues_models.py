import hashlib
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, List, Optional, Tuple


STATUS_APPROVED = "Approved"

FLAT_PAID = "paid"
FLAT_PARTIAL = "partial"
FLAT_PENDING = "pending"
FLAT_STATUSES = (FLAT_PAID, FLAT_PARTIAL, FLAT_PENDING)


class SnapshotUnavailableError(Exception):
    """コレクション/入金台帳のスナップショットが取得できない場合のエラー

    計算済みの pending とは区別し、呼び出し側は「ステータス不明」として扱う。
    """


def parse_amount(value) -> Optional[float]:
    """金額を数値に変換。空・不正値は None（未入力扱い）"""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    s = str(value).strip().replace(",", "")
    if not s:
        return None
    try:
        return float(s)
    except ValueError:
        return None


def parse_date(value) -> Optional[date]:
    """YYYY-MM-DD または ISO日時文字列を date に変換。不正値は None"""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    s = str(value).strip()
    if not s:
        return None
    try:
        return datetime.strptime(s[:10], "%Y-%m-%d").date()
    except ValueError:
        return None


def parse_datetime(value) -> Optional[datetime]:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime.combine(value, datetime.min.time())
    s = str(value).strip()
    if not s:
        return None
    try:
        # "Z" 終端は fromisoformat が古いPythonで読めないため置換
        return datetime.fromisoformat(s.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        d = parse_date(s)
        return datetime.combine(d, datetime.min.time()) if d else None


def _optional_str(value) -> Optional[str]:
    if value is None:
        return None
    s = str(value)
    return s if s.strip() else None


def _fallback_payment_id(data: Dict) -> str:
    """id を持たない行（RPC経由）の内容から決まる安定ID"""
    base = "|".join(str(data.get(k) or "") for k in (
        "flat_id", "expected_collection_id", "payment_type", "payment_quarter",
        "payment_amount", "payment_date", "status", "created_at",
    ))
    return "row-" + hashlib.sha1(base.encode("utf-8")).hexdigest()[:12]


@dataclass(frozen=True)
class Flat:
    id: str
    flat_number: str
    flat_type: Optional[str] = None
    built_up_area: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict) -> "Flat":
        return cls(
            id=str(data.get("id")),
            flat_number=str(data.get("flat_number") or ""),
            flat_type=_optional_str(data.get("flat_type")),
            built_up_area=parse_amount(data.get("built_up_area")),
        )


@dataclass(frozen=True)
class Block:
    id: str
    name: str
    flats: Tuple[Flat, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict) -> "Block":
        return cls(
            id=str(data.get("id")),
            name=str(data.get("block_name") or data.get("name") or ""),
            flats=tuple(Flat.from_dict(f) for f in (data.get("flats") or [])),
        )


@dataclass(frozen=True)
class ExpectedCollection:
    id: str
    apartment_id: Optional[str]
    payment_type: Optional[str]
    quarter: Optional[str]
    financial_year: Optional[str]
    due_date: Optional[date]
    amount_due: float
    daily_fine: float = 0.0
    is_active: bool = True
    collection_name: Optional[str] = None
    payment_frequency: Optional[str] = None
    flat_type_rates: Dict[str, float] = field(default_factory=dict)
    rate_per_sqft: Optional[float] = None

    @classmethod
    def from_dict(cls, data: Dict) -> "ExpectedCollection":
        rates = {}
        for flat_type, rate in (data.get("flat_type_rates") or {}).items():
            parsed = parse_amount(rate)
            if parsed is not None:
                rates[str(flat_type)] = parsed
        # 日額罰金は負にならない
        daily_fine = max(0.0, parse_amount(data.get("daily_fine")) or 0.0)
        return cls(
            id=str(data.get("id")),
            apartment_id=_optional_str(data.get("apartment_id")),
            payment_type=_optional_str(data.get("payment_type")),
            quarter=_optional_str(data.get("quarter")),
            financial_year=_optional_str(data.get("financial_year")),
            due_date=parse_date(data.get("due_date")),
            amount_due=parse_amount(data.get("amount_due")) or 0.0,
            daily_fine=daily_fine,
            is_active=data.get("is_active") is True,
            collection_name=_optional_str(data.get("collection_name")),
            payment_frequency=_optional_str(data.get("payment_frequency")),
            flat_type_rates=rates,
            rate_per_sqft=parse_amount(data.get("rate_per_sqft")),
        )

    @property
    def label(self) -> str:
        if self.collection_name:
            return self.collection_name
        kind = (self.payment_type or "collection").capitalize()
        return f"{kind} - {self.quarter or '?'} {self.financial_year or '?'}"


@dataclass(frozen=True)
class PaymentRecord:
    id: str
    flat_id: Optional[str]
    expected_collection_id: Optional[str] = None
    payment_type: Optional[str] = None
    payment_quarter: Optional[str] = None
    payment_amount: Optional[float] = None
    payment_date: Optional[date] = None
    status: Optional[str] = None
    created_at: Optional[datetime] = None
    payment_source: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict) -> "PaymentRecord":
        record_id = data.get("id")
        return cls(
            id=str(record_id) if record_id is not None else _fallback_payment_id(data),
            flat_id=_optional_str(data.get("flat_id")),
            expected_collection_id=_optional_str(data.get("expected_collection_id")),
            payment_type=_optional_str(data.get("payment_type")),
            payment_quarter=_optional_str(data.get("payment_quarter")),
            payment_amount=parse_amount(data.get("payment_amount")),
            payment_date=parse_date(data.get("payment_date")),
            status=_optional_str(data.get("status")),
            created_at=parse_datetime(data.get("created_at")),
            payment_source=_optional_str(data.get("payment_source")),
        )

    @property
    def is_approved(self) -> bool:
        return self.status == STATUS_APPROVED


@dataclass(frozen=True)
class FlatStatus:
    flat_id: str
    flat_number: str
    status: str
    paid_amount: float
    expected_amount: float
    base_amount: float
    most_recent_payment_date: Optional[date] = None
    most_recent_payment_status: Optional[str] = None
    most_recent_payment_amount: Optional[float] = None
    matched_count: int = 0
    reasons: Tuple[str, ...] = ()

    def to_dict(self) -> Dict:
        return {
            "flat_id": self.flat_id,
            "flat_number": self.flat_number,
            "status": self.status,
            "paid_amount": self.paid_amount,
            "expected_amount": self.expected_amount,
            "most_recent_payment_date": self.most_recent_payment_date.isoformat() if self.most_recent_payment_date else None,
            "most_recent_payment_status": self.most_recent_payment_status,
            "most_recent_payment_amount": self.most_recent_payment_amount,
            "matched_count": self.matched_count,
            "reasons": list(self.reasons),
        }


@dataclass(frozen=True)
class BlockStatus:
    block_id: str
    block_name: str
    flats: Tuple[FlatStatus, ...]


@dataclass(frozen=True)
class CollectionSummary:
    counts_by_status: Dict[str, int]
    total_collected: float
    total_expected: float
    flat_count: int

    @property
    def collection_rate(self) -> float:
        if self.total_expected <= 0:
            return 0.0
        return self.total_collected / self.total_expected * 100

    def to_dict(self) -> Dict:
        return {
            "counts_by_status": dict(self.counts_by_status),
            "total_collected": self.total_collected,
            "total_expected": self.total_expected,
            "flat_count": self.flat_count,
            "collection_rate": round(self.collection_rate, 2),
        }


@dataclass(frozen=True)
class LedgerSnapshot:
    """1回の取得で得た不変スナップショット（ブロック・コレクション・入金）"""
    blocks: Tuple[Block, ...]
    collections: Tuple[ExpectedCollection, ...]
    payments: Tuple[PaymentRecord, ...]
    country: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict) -> "LedgerSnapshot":
        return cls(
            blocks=tuple(Block.from_dict(b) for b in _rows(data, "blocks")),
            collections=tuple(ExpectedCollection.from_dict(c) for c in _rows(data, "expected_collections")),
            payments=tuple(PaymentRecord.from_dict(p) for p in _rows(data, "payments")),
            country=_optional_str(data.get("country")),
        )

    def active_collections(self) -> List[ExpectedCollection]:
        return _newest_first([c for c in self.collections if c.is_active])

    def archived_collections(self) -> List[ExpectedCollection]:
        return _newest_first([c for c in self.collections if not c.is_active])

    def default_collection(self) -> Optional[ExpectedCollection]:
        active = self.active_collections()
        return active[0] if active else None

    def find_collection(self, collection_id: str) -> Optional[ExpectedCollection]:
        for c in self.collections:
            if c.id == str(collection_id):
                return c
        return None

    def payments_by_flat(self) -> Dict[str, List[PaymentRecord]]:
        grouped: Dict[str, List[PaymentRecord]] = {}
        for p in self.payments:
            if p.flat_id:
                grouped.setdefault(p.flat_id, []).append(p)
        return grouped


def _newest_first(collections: List[ExpectedCollection]) -> List[ExpectedCollection]:
    # 期日なしは末尾
    return sorted(collections, key=lambda c: (c.due_date is not None, c.due_date or date.min), reverse=True)


def _rows(data: Dict, key: str) -> List[Dict]:
    rows = data.get(key) or []
    if not isinstance(rows, list) or not all(isinstance(r, dict) for r in rows):
        raise SnapshotUnavailableError(f"スナップショットの {key} の形式が不正です")
    return rows
