from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Tuple

from collection_matcher import CollectionMatcher
from dues_models import (
    FLAT_STATUSES,
    BlockStatus,
    CollectionSummary,
    ExpectedCollection,
    FlatStatus,
    LedgerSnapshot,
)
from status_classifier import classify_blocks


def summarize(statuses: Iterable[FlatStatus]) -> CollectionSummary:
    """フラット別ステータスを件数・回収額・請求額に集約（副作用なし）"""
    counts: Dict[str, int] = defaultdict(int)
    total_collected = 0.0
    total_expected = 0.0
    flat_count = 0

    for s in statuses:
        counts[s.status] += 1
        total_collected += s.paid_amount
        total_expected += s.expected_amount
        flat_count += 1

    return CollectionSummary(
        counts_by_status={k: counts.get(k, 0) for k in FLAT_STATUSES},
        total_collected=round(total_collected, 2),
        total_expected=round(total_expected, 2),
        flat_count=flat_count,
    )


def summarize_blocks(block_statuses: Iterable[BlockStatus]) -> Dict[str, CollectionSummary]:
    return {b.block_id: summarize(b.flats) for b in block_statuses}


def summarize_apartment(block_statuses: Iterable[BlockStatus]) -> CollectionSummary:
    return summarize(f for b in block_statuses for f in b.flats)


def collection_statistics(
    snapshot: LedgerSnapshot,
    collection: ExpectedCollection,
    cfg: Optional[Dict] = None,
    matcher: Optional[CollectionMatcher] = None,
) -> Tuple[List[BlockStatus], CollectionSummary]:
    """選択コレクションについて全フラットを再分類し、集計まで行う

    コレクションを切り替えた場合も差分更新はせず、毎回一から計算する。
    """
    blocks = classify_blocks(snapshot, collection, cfg, matcher)
    return blocks, summarize_apartment(blocks)


def all_collection_statistics(
    snapshot: LedgerSnapshot,
    cfg: Optional[Dict] = None,
    include_archived: bool = False,
) -> List[Tuple[ExpectedCollection, CollectionSummary]]:
    collections = snapshot.active_collections()
    if include_archived:
        collections = collections + snapshot.archived_collections()
    return [(c, collection_statistics(snapshot, c, cfg)[1]) for c in collections]
