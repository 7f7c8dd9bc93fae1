from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass(frozen=True)
class FineResult:
    is_on_time: bool
    is_late: bool
    amount: float
    days_late: int = 0
    fine: float = 0.0


def days_between(due_date: date, payment_date: date) -> int:
    """期日からの経過日数（日単位、期日前は負）"""
    return (payment_date - due_date).days


def expected_amount(
    base: float,
    daily_fine: float,
    due_date: Optional[date],
    payment_date: Optional[date],
) -> FineResult:
    """支払日時点の請求額（基本額 + 延滞罰金）を計算

    支払日が無い場合は期日内/延滞を判定できず、基本額を返す。
    期日の翌日から1日分の罰金が発生する（線形）。
    """
    if payment_date is None or due_date is None:
        return FineResult(is_on_time=False, is_late=False, amount=base)

    days_late = days_between(due_date, payment_date)
    if days_late <= 0:
        return FineResult(is_on_time=True, is_late=False, amount=base, days_late=days_late)

    fine = days_late * (daily_fine or 0.0)
    return FineResult(is_on_time=False, is_late=True, amount=base + fine, days_late=days_late, fine=fine)
