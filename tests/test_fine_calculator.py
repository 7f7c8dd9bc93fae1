from datetime import date

from fine_calculator import expected_amount


DUE = date(2025, 4, 10)


def test_no_payment_date_defaults_to_base():
    r = expected_amount(5000, 50, DUE, None)
    assert not r.is_on_time and not r.is_late
    assert r.amount == 5000


def test_on_or_before_due_date_is_on_time():
    for d in (date(2025, 4, 5), DUE):
        r = expected_amount(5000, 50, DUE, d)
        assert r.is_on_time and not r.is_late
        assert r.amount == 5000
        assert r.fine == 0


def test_one_day_late_accrues_one_day_fine():
    r = expected_amount(5000, 50, DUE, date(2025, 4, 11))
    assert r.is_late
    assert r.days_late == 1
    assert r.amount == 5050


def test_five_days_late():
    r = expected_amount(5000, 50, DUE, date(2025, 4, 15))
    assert r.fine == 250
    assert r.amount == 5250


def test_amount_is_monotonic_in_lateness():
    amounts = [expected_amount(5000, 50, DUE, date(2025, 4, d)).amount for d in range(1, 31)]
    assert amounts == sorted(amounts)


def test_zero_fine_rate_keeps_base():
    r = expected_amount(4000, 0, DUE, date(2025, 5, 30))
    assert r.is_late
    assert r.amount == 4000
