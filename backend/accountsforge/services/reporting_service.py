# Overview: Service-layer operations for reporting; profit & loss, monthly and performance figures.

"""
Reports count approved expenses and revenues only. Claims are summarized
separately by status.

net_profit is revenue minus expenses. Commissions on the approved revenue
are reported on their own line and are not deducted.

Scope: admins get company-wide figures, everyone else their own rows.
Amounts are summed as Decimal in Python so SQLite and Postgres agree to the
cent; monthly buckets use time_utils.month_key.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from decimal import Decimal

from ..errors import ValidationError
from ..extensions import db
from ..models import Claim, ClaimStatus, Commission, Expense, ReviewStatus, Revenue
from ..policy import Principal
from ..time_utils import month_key, parse_iso_date
from . import settings_service

ZERO = Decimal("0.00")


def _parse_range(start: str | None, end: str | None) -> tuple[date | None, date | None]:
    try:
        start_d = parse_iso_date(start) if start else None
        end_d = parse_iso_date(end) if end else None
    except ValueError:
        raise ValidationError("start and end must be ISO-8601 dates (YYYY-MM-DD)")
    if start_d and end_d and start_d > end_d:
        raise ValidationError("start must be on or before end")
    return start_d, end_d


def _approved(principal: Principal, model, date_col, start_d, end_d, user_id=None):
    query = db.session.query(model).filter(model.status == ReviewStatus.APPROVED)
    if not principal.is_admin:
        query = query.filter(model.user_id == principal.user_id)
    elif user_id:
        query = query.filter(model.user_id == user_id)
    if start_d:
        query = query.filter(date_col >= start_d)
    if end_d:
        query = query.filter(date_col <= end_d)
    return query.all()


def _load(principal: Principal, start: str | None, end: str | None, user_id: str | None = None):
    start_d, end_d = _parse_range(start, end)
    revenues = _approved(principal, Revenue, Revenue.revenue_date, start_d, end_d, user_id)
    expenses = _approved(principal, Expense, Expense.expense_date, start_d, end_d, user_id)

    revenue_ids = [r.id for r in revenues]
    commissions = []
    if revenue_ids:
        commissions = db.session.query(Commission).filter(Commission.revenue_id.in_(revenue_ids)).all()
    return revenues, expenses, commissions


def _totals(revenues, expenses, commissions) -> dict:
    total_revenue = sum((r.amount for r in revenues), ZERO)
    total_expenses = sum((e.amount for e in expenses), ZERO)
    total_commissions = sum((c.commission_amount for c in commissions), ZERO)
    return {
        "total_revenue": str(total_revenue),
        "total_expenses": str(total_expenses),
        "total_commissions": str(total_commissions),
        "net_profit": str(total_revenue - total_expenses),
        "revenue_count": len(revenues),
        "expense_count": len(expenses),
    }


def _scope(principal: Principal, user_id: str | None) -> str:
    if not principal.is_admin:
        return "self"
    return "user" if user_id else "company"


def profit_loss(
    principal: Principal,
    *,
    start: str | None = None,
    end: str | None = None,
    user_id: str | None = None,
) -> dict:
    """user_id narrows an admin report to one person; ignored for non-admins."""
    revenues, expenses, commissions = _load(principal, start, end, user_id)
    report = _totals(revenues, expenses, commissions)
    report.update({
        "start": start,
        "end": end,
        "currency": settings_service.get_currency(),
        "scope": _scope(principal, user_id),
    })
    return report


def monthly_breakdown(
    principal: Principal,
    *,
    start: str | None = None,
    end: str | None = None,
    user_id: str | None = None,
) -> list[dict]:
    """One row per YYYY-MM that has any approved revenue or expense, oldest first."""
    revenues, expenses, commissions = _load(principal, start, end, user_id)
    revenue_month = {r.id: month_key(r.revenue_date) for r in revenues}

    buckets: dict[str, dict[str, list]] = defaultdict(lambda: {"r": [], "e": [], "c": []})
    for r in revenues:
        buckets[revenue_month[r.id]]["r"].append(r)
    for e in expenses:
        buckets[month_key(e.expense_date)]["e"].append(e)
    for c in commissions:
        buckets[revenue_month[c.revenue_id]]["c"].append(c)

    rows = []
    for month in sorted(buckets):
        b = buckets[month]
        row = {"month": month}
        row.update(_totals(b["r"], b["e"], b["c"]))
        rows.append(row)
    return rows


def salesman_performance(
    principal: Principal,
    *,
    start: str | None = None,
    end: str | None = None,
    user_id: str | None = None,
) -> list[dict]:
    """
    Per salesman per month: sales amount/count, approved expenses and
    commission earned. Non-admins only ever see their own rows.
    """
    revenues, expenses, commissions = _load(principal, start, end, user_id)
    revenue_by_id = {r.id: r for r in revenues}

    rows: dict[tuple[str, str], dict] = {}

    def _row(uid: str, month: str) -> dict:
        key = (uid, month)
        if key not in rows:
            rows[key] = {
                "user_id": uid,
                "month": month,
                "total_sales": ZERO,
                "sales_count": 0,
                "total_expenses": ZERO,
                "commission_earned": ZERO,
            }
        return rows[key]

    for r in revenues:
        row = _row(r.user_id, month_key(r.revenue_date))
        row["total_sales"] += r.amount
        row["sales_count"] += 1
    for e in expenses:
        _row(e.user_id, month_key(e.expense_date))["total_expenses"] += e.amount
    for c in commissions:
        revenue = revenue_by_id[c.revenue_id]
        _row(c.salesman_id, month_key(revenue.revenue_date))["commission_earned"] += c.commission_amount

    result = []
    for key in sorted(rows, key=lambda k: (k[1], k[0])):
        row = rows[key]
        for money_key in ("total_sales", "total_expenses", "commission_earned"):
            row[money_key] = str(row[money_key])
        result.append(row)
    return result


def claims_summary(principal: Principal) -> dict:
    """Count and amount per claim status, every status present (zeros included)."""
    query = db.session.query(Claim)
    if not principal.is_admin:
        query = query.filter(Claim.user_id == principal.user_id)

    summary = {s.value: {"count": 0, "amount": ZERO} for s in ClaimStatus}
    for claim in query.all():
        bucket = summary[claim.status.value]
        bucket["count"] += 1
        bucket["amount"] += claim.amount

    return {
        status: {"count": v["count"], "amount": str(v["amount"])}
        for status, v in summary.items()
    }
