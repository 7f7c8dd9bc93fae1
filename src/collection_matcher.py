import re
from typing import Iterable, List, Optional, Sequence

from dues_models import ExpectedCollection, PaymentRecord


FISCAL_PREFIX = "fy"
_TWO_DIGIT = re.compile(r"^\d{2}$")


def _lower(text: Optional[str]) -> str:
    if not text:
        return ""
    return text.strip().lower()


def normalize_financial_year(label: Optional[str]) -> str:
    """年度ラベルを4桁年に正規化する

    "FY25" -> "2025"、"FY2025" -> "2025"、"2025" -> "2025"。
    プレフィックスなしの形式はそのまま（小文字化のみ）。
    """
    s = _lower(label)
    if not s.startswith(FISCAL_PREFIX):
        return s
    suffix = s[len(FISCAL_PREFIX):].strip()
    if _TWO_DIGIT.match(suffix):
        return "20" + suffix
    return suffix


class ExplicitLinkStrategy:
    """明示的な expected_collection_id による紐付け（唯一の確実な経路）"""

    name = "explicit_link"

    def matches(self, record: PaymentRecord, collection: ExpectedCollection) -> bool:
        return bool(record.expected_collection_id) and record.expected_collection_id == collection.id


class TokenContainmentStrategy:
    """支払種別 + 四半期/年度トークンの部分一致による推定マッチ

    "Q1-2025" と "Q1"/"FY25" のような表記ゆれを許容するため、厳密な
    トークン分割ではなく部分文字列の包含で判定する。偶然の重なりで
    誤マッチする可能性は既知の制約。
    """

    name = "token_containment"

    def matches(self, record: PaymentRecord, collection: ExpectedCollection) -> bool:
        if _lower(record.payment_type) != _lower(collection.payment_type):
            return False

        # データ欠損はエラーではなく不一致扱い
        if not record.payment_quarter:
            return False
        if not collection.quarter or not collection.financial_year:
            return False

        tag = _lower(record.payment_quarter)
        quarter = _lower(collection.quarter)
        year = normalize_financial_year(collection.financial_year)
        if not quarter or not year:
            return False
        return quarter in tag and year in tag


class CollectionMatcher:
    """マッチ戦略を順に試し、いずれかが一致すれば True"""

    def __init__(self, strategies: Optional[Sequence] = None):
        if strategies is None:
            strategies = (ExplicitLinkStrategy(), TokenContainmentStrategy())
        self.strategies = tuple(strategies)

    def matches(self, record: PaymentRecord, collection: ExpectedCollection) -> bool:
        return self.matched_by(record, collection) is not None

    def matched_by(self, record: PaymentRecord, collection: ExpectedCollection) -> Optional[str]:
        for strategy in self.strategies:
            if strategy.matches(record, collection):
                return strategy.name
        return None


DEFAULT_MATCHER = CollectionMatcher()


def matches(record: PaymentRecord, collection: ExpectedCollection) -> bool:
    return DEFAULT_MATCHER.matches(record, collection)


def select_matching_records(
    flat_id: str,
    collection: ExpectedCollection,
    records: Iterable[PaymentRecord],
    matcher: Optional[CollectionMatcher] = None,
) -> List[PaymentRecord]:
    """対象フラット・コレクションに一致する入金レコードを抽出"""
    m = matcher or DEFAULT_MATCHER
    return [r for r in records if r.flat_id == flat_id and m.matches(r, collection)]
