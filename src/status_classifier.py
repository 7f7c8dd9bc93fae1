import re
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional

from collection_matcher import CollectionMatcher, select_matching_records
from dues_models import (
    FLAT_PAID,
    FLAT_PARTIAL,
    FLAT_PENDING,
    Block,
    BlockStatus,
    ExpectedCollection,
    Flat,
    FlatStatus,
    LedgerSnapshot,
    PaymentRecord,
)
from fine_calculator import expected_amount


AMOUNT_TOLERANCE = 0.01


def _tolerance(cfg: Optional[Dict]) -> float:
    # 設定値が空・数値でない・負の場合は既定値
    try:
        tol = float((cfg or {}).get("amount_tolerance", AMOUNT_TOLERANCE))
    except (TypeError, ValueError):
        return AMOUNT_TOLERANCE
    return tol if tol >= 0 else AMOUNT_TOLERANCE


def base_amount_for_flat(collection: ExpectedCollection, flat: Optional[Flat] = None) -> float:
    """フラットごとの基本請求額

    優先順: 間取り別単価 → 面積単価 × 延床面積 → amount_due
    """
    if flat is not None:
        if flat.flat_type and flat.flat_type in collection.flat_type_rates:
            return collection.flat_type_rates[flat.flat_type]
        if collection.rate_per_sqft and flat.built_up_area:
            return collection.rate_per_sqft * flat.built_up_area
    return collection.amount_due


def _scan_key(record: PaymentRecord):
    return (record.payment_date is None, record.payment_date or date.min, record.id)


def most_recent_record(records: List[PaymentRecord]) -> Optional[PaymentRecord]:
    """最新の支払日を持つレコード（同日は created_at、id の順で後勝ち）"""
    if not records:
        return None
    dated = [r for r in records if r.payment_date is not None]
    pool = dated or records
    return max(pool, key=lambda r: (r.payment_date or date.min, r.created_at or datetime.min, r.id))


def classify_flat(
    flat: Flat,
    collection: ExpectedCollection,
    records: Iterable[PaymentRecord],
    cfg: Optional[Dict] = None,
    matcher: Optional[CollectionMatcher] = None,
) -> FlatStatus:
    """1フラット × 1コレクションの支払状況を paid / partial / pending に分類

    入力スナップショットのみから毎回計算する純粋関数。例外は送出しない。
    """
    tol = _tolerance(cfg)
    base = base_amount_for_flat(collection, flat)
    matched = [
        r for r in select_matching_records(flat.id, collection, records, matcher)
        if r.payment_amount is not None
    ]

    if not matched:
        return FlatStatus(
            flat_id=flat.id,
            flat_number=flat.flat_number,
            status=FLAT_PENDING,
            paid_amount=0.0,
            expected_amount=round(base, 2),
            base_amount=base,
            reasons=("no_matching_records",),
        )

    reasons: List[str] = []
    is_paid = False
    is_partial = False

    for r in sorted(matched, key=_scan_key):
        amount = r.payment_amount
        fine = expected_amount(base, collection.daily_fine, collection.due_date, r.payment_date)

        if fine.is_on_time and r.is_approved and abs(amount - base) < tol:
            reasons.append(f"paid_on_time:{r.id}")
            is_paid = True
            break
        if fine.is_late and r.is_approved and abs(amount - fine.amount) < tol:
            reasons.append(f"paid_late:{r.id}")
            is_paid = True
            break

        if fine.is_on_time and amount < base:
            reasons.append(f"partial_on_time:{r.id}")
            is_partial = True
        elif fine.is_late and abs(amount - fine.amount) >= tol:
            reasons.append(f"partial_late:{r.id}")
            is_partial = True
        elif r.payment_date is None and not r.is_approved and abs(amount - base) >= tol:
            reasons.append(f"fallback_undated:{r.id}")
            is_partial = True

    if is_paid:
        status = FLAT_PAID
        expected = base
    else:
        # 一致レコードがあれば、個別ルール不成立でも partial とする
        if not is_partial:
            reasons.append("non_empty_default")
        status = FLAT_PARTIAL
        # 表示用の請求額は全一致レコード中の最新支払日で再計算
        latest_dates = [r.payment_date for r in matched if r.payment_date is not None]
        latest = max(latest_dates) if latest_dates else None
        expected = expected_amount(base, collection.daily_fine, collection.due_date, latest).amount

    recent = most_recent_record(matched)
    return FlatStatus(
        flat_id=flat.id,
        flat_number=flat.flat_number,
        status=status,
        paid_amount=round(sum(r.payment_amount for r in matched), 2),
        expected_amount=round(expected, 2),
        base_amount=base,
        most_recent_payment_date=recent.payment_date,
        most_recent_payment_status=recent.status,
        most_recent_payment_amount=recent.payment_amount,
        matched_count=len(matched),
        reasons=tuple(reasons),
    )


def natural_key(text: str):
    """"2" < "10"、"A-9" < "A-10" となる自然順キー"""
    parts = re.split(r"(\d+)", text or "")
    return tuple((0, int(p), "") if p.isdigit() else (1, 0, p.lower()) for p in parts if p)


def sort_flats(flats: Iterable[Flat]) -> List[Flat]:
    return sorted(flats, key=lambda f: (natural_key(f.flat_number), f.id))


def classify_block(
    block: Block,
    collection: ExpectedCollection,
    payments_by_flat: Dict[str, List[PaymentRecord]],
    cfg: Optional[Dict] = None,
    matcher: Optional[CollectionMatcher] = None,
) -> BlockStatus:
    flats = tuple(
        classify_flat(f, collection, payments_by_flat.get(f.id, []), cfg, matcher)
        for f in sort_flats(block.flats)
    )
    return BlockStatus(block_id=block.id, block_name=block.name, flats=flats)


def classify_blocks(
    snapshot: LedgerSnapshot,
    collection: ExpectedCollection,
    cfg: Optional[Dict] = None,
    matcher: Optional[CollectionMatcher] = None,
) -> List[BlockStatus]:
    """スナップショット全体を選択コレクションに対して一から分類する"""
    payments_by_flat = snapshot.payments_by_flat()
    blocks = sorted(snapshot.blocks, key=lambda b: (natural_key(b.name), b.id))
    return [classify_block(b, collection, payments_by_flat, cfg, matcher) for b in blocks]
