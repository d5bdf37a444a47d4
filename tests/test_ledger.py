from datetime import date

import pytest

from errors import BadRequestError, NotFoundError
from models import LedgerType
from schemas import BudgetIn, LedgerEntryIn, PageParams
from services import BudgetService, LedgerService


def entry(
    type: LedgerType, cost: int, on: date, content: str = "entry"
) -> LedgerEntryIn:
    return LedgerEntryIn(
        type=type,
        content=content,
        cost=cost,
        date=on,
        category_name="General",
        payment_method="CARD",
    )


def test_summary_totals_and_overspent_budget(session) -> None:
    ledger = LedgerService(session, user_id=1)
    BudgetService(session, user_id=1).upsert(BudgetIn(amount=400))
    ledger.create(entry(LedgerType.revenue, 1_000, date(2024, 3, 1)))
    ledger.create(entry(LedgerType.expenditure, 300, date(2024, 3, 10)))
    ledger.create(entry(LedgerType.expenditure, 200, date(2024, 3, 31)))
    # outside the month or owned by someone else
    ledger.create(entry(LedgerType.expenditure, 9_999, date(2024, 4, 1)))
    ledger.create(entry(LedgerType.expenditure, 9_999, date(2024, 2, 29)))
    LedgerService(session, user_id=2).create(
        entry(LedgerType.expenditure, 9_999, date(2024, 3, 15))
    )

    summary = ledger.monthly_summary("2024-03")

    assert summary.month == "2024-03"
    assert summary.revenue_total == 1_000
    assert summary.expenditure_total == 500
    assert summary.remaining_budget == -100
    assert summary.entries.total == 3


def test_summary_for_empty_month_returns_full_budget(session) -> None:
    BudgetService(session, user_id=1).upsert(BudgetIn(amount=400))

    summary = LedgerService(session, user_id=1).monthly_summary("2024-03")

    assert summary.revenue_total == 0
    assert summary.expenditure_total == 0
    assert summary.remaining_budget == 400
    assert summary.entries.items == []
    assert summary.entries.total == 0
    assert summary.entries.has_more is False


def test_summary_without_budget_is_not_found(session) -> None:
    ledger = LedgerService(session, user_id=1)
    ledger.create(entry(LedgerType.revenue, 1_000, date(2024, 3, 1)))

    with pytest.raises(NotFoundError):
        ledger.monthly_summary("2024-03")


@pytest.mark.parametrize("month", ["2024-13", "2024-00", "2024/03", "March", "24-3", ""])
def test_summary_rejects_malformed_month(session, month: str) -> None:
    BudgetService(session, user_id=1).upsert(BudgetIn(amount=400))

    with pytest.raises(BadRequestError):
        LedgerService(session, user_id=1).monthly_summary(month)


def test_totals_cover_whole_month_not_only_the_page(session) -> None:
    ledger = LedgerService(session, user_id=1)
    BudgetService(session, user_id=1).upsert(BudgetIn(amount=1_000))
    for day in range(1, 6):
        ledger.create(
            entry(LedgerType.expenditure, 100, date(2024, 3, day), f"day {day}")
        )

    first = ledger.monthly_summary("2024-03", PageParams(page=1, limit=2))
    last = ledger.monthly_summary("2024-03", PageParams(page=3, limit=2))

    assert [e.content for e in first.entries.items] == ["day 5", "day 4"]
    assert first.entries.has_more is True
    assert first.expenditure_total == 500
    assert first.remaining_budget == 500

    assert [e.content for e in last.entries.items] == ["day 1"]
    assert last.entries.has_more is False
    assert last.expenditure_total == 500


def test_page_can_be_sorted_oldest_first(session) -> None:
    ledger = LedgerService(session, user_id=1)
    BudgetService(session, user_id=1).upsert(BudgetIn(amount=0))
    ledger.create(entry(LedgerType.revenue, 10, date(2024, 3, 20), "late"))
    ledger.create(entry(LedgerType.revenue, 10, date(2024, 3, 2), "early"))

    summary = ledger.monthly_summary(
        "2024-03", PageParams(page=1, limit=10, sort="oldest")
    )

    assert [e.content for e in summary.entries.items] == ["early", "late"]
    assert summary.entries.sort == "oldest"


def test_entries_accept_any_cost_and_free_text_category(session) -> None:
    ledger = LedgerService(session, user_id=1)
    BudgetService(session, user_id=1).upsert(BudgetIn(amount=100))

    refund = ledger.create(
        LedgerEntryIn(
            type=LedgerType.expenditure,
            content="Refund",
            cost=-50,
            date=date(2024, 3, 3),
            category_name="Not a registered category",
            payment_method="CASH",
        )
    )

    summary = ledger.monthly_summary("2024-03")
    assert refund.category_name == "Not a registered category"
    assert summary.expenditure_total == -50
    assert summary.remaining_budget == 150
