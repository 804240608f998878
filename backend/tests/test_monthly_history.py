# backend/tests/test_monthly_history.py
from __future__ import annotations

from datetime import date
from types import SimpleNamespace

from rentledger.domain.history import build_monthly_history
from rentledger.domain.ledger import MonthSnapshot


def _tenant(entry: date, rent: float = 1200.0):
    return SimpleNamespace(id=1, entry_date=entry, monthly_rent=rent)


def _rec(month: str, year: int, **kw) -> MonthSnapshot:
    return MonthSnapshot(tenant_id=1, month=month, year=year, monthly_rent=kw.pop("monthly_rent", 1000.0), **kw)


def test_history_fills_missing_months_with_current_rent():
    hist = build_monthly_history(
        _tenant(date(2026, 8, 5)),
        [_rec("October", 2026, rent_paid=1000.0)],
        today=date(2026, 10, 18),
    )
    assert [h.month for h in hist] == ["October 2026", "September 2026", "August 2026"]

    assert hist[0].has_record is True
    assert hist[0].status == "paid"
    assert hist[0].expected_rent == 1000.0

    for gap in hist[1:]:
        assert gap.has_record is False
        assert gap.status == "unpaid"
        assert gap.expected_rent == 1200.0
        assert gap.total_paid == 0.0


def test_history_crosses_year_boundary():
    hist = build_monthly_history(_tenant(date(2025, 11, 20)), [], today=date(2026, 2, 1))
    assert [h.month_key for h in hist] == ["2026-02", "2026-01", "2025-12", "2025-11"]


def test_history_statuses():
    recs = [
        _rec("July", 2026, rent_paid=1000.0, deposit_paid=2000.0),
        _rec("August", 2026, rent_paid=400.0),
        _rec("September", 2026, rent_paid=1000.0, water_paid=300.0),
        _rec("October", 2026, water_paid=300.0),
    ]
    hist = build_monthly_history(_tenant(date(2026, 7, 1)), recs, today=date(2026, 10, 1))
    by_key = {h.month_key: h for h in hist}
    assert by_key["2026-07"].status == "deposit"
    assert by_key["2026-08"].status == "partial"
    assert by_key["2026-09"].status == "paid"
    assert by_key["2026-09"].total_paid == 1300.0
    assert by_key["2026-10"].status == "unpaid"


def test_history_empty_when_entry_in_future_or_missing():
    assert build_monthly_history(_tenant(date(2027, 1, 1)), [], today=date(2026, 10, 18)) == []
    assert build_monthly_history(SimpleNamespace(entry_date=None, monthly_rent=0), [], today=date(2026, 10, 18)) == []


def test_history_respects_month_cap():
    hist = build_monthly_history(_tenant(date(2020, 1, 1)), [], today=date(2026, 10, 18), max_months=6)
    assert len(hist) == 6
    assert hist[0].month_key == "2026-10"
