"""AnalyticsSelector -- income/expense summary and category breakdown."""

from datetime import date

from tracker_kernel.selectors.analytics_selector import AnalyticsSelector


def test_summary_and_savings(db, user, make_income, make_expense):
    make_income(user.id, 3000, on=date(2025, 6, 1))
    make_expense(user.id, 1200, "rent", date(2025, 6, 2))
    make_expense(user.id, 300, "food", date(2025, 6, 3))
    make_expense(user.id, 999, "food", date(2025, 7, 3))

    with db.session_scope() as session:
        summary = AnalyticsSelector(session).summary(
            user.id, date(2025, 6, 1), date(2025, 6, 30)
        )

    assert summary.income == 3000
    assert summary.expenses == 1500
    assert summary.savings == 1500


def test_summary_empty(db, user):
    with db.session_scope() as session:
        summary = AnalyticsSelector(session).summary(user.id)
    assert (summary.income, summary.expenses, summary.savings) == (0, 0, 0)


def test_category_breakdown_largest_first(db, user, other_user, make_expense, make_income):
    make_expense(user.id, 100, "food")
    make_expense(user.id, 50, "food")
    make_expense(user.id, 400, "rent")
    make_expense(user.id, 150, "fun")
    make_income(user.id, 5000)
    make_expense(other_user.id, 10_000, "rent")

    with db.session_scope() as session:
        rows = AnalyticsSelector(session).category_breakdown(user.id)

    assert [(r.category, r.total) for r in rows] == [("rent", 400), ("food", 150), ("fun", 150)]
