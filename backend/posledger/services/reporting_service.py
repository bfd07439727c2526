# Overview: Financial statements aggregated from the chart of accounts.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..models import Account
from ..time_utils import to_utc_z, utcnow
from .ledger_service import derived_balances, list_accounts


def _section(accounts: list[Account], balances: Optional[dict[str, int]]) -> dict:
    items = []
    total_cents = 0
    for account in accounts:
        row = account.to_dict()
        if balances is not None:
            cents = balances.get(account.code, 0)
            row["balance"] = cents / 100
        else:
            cents = account.balance_cents or 0
        total_cents += cents
        items.append(row)
    return {"items": items, "total": total_cents / 100, "total_cents": total_cents}


def _by_type(accounts: list[Account], account_type: str) -> list[Account]:
    return [a for a in accounts if a.type == account_type]


def balance_sheet(as_of: Optional[datetime] = None) -> dict:
    """
    Assets, liabilities and equity.

    Without as_of the running balances are reported. With as_of, balances are
    recomputed from transactions dated on or before it.
    """
    accounts = list_accounts()
    balances = derived_balances(end=as_of) if as_of is not None else None

    assets = _section(_by_type(accounts, "asset"), balances)
    liabilities = _section(_by_type(accounts, "liability"), balances)
    equity = _section(_by_type(accounts, "equity"), balances)

    for section in (assets, liabilities, equity):
        section.pop("total_cents")

    return {
        "assets": assets,
        "liabilities": liabilities,
        "equity": equity,
        "total": assets["total"],
        "date": to_utc_z(as_of or utcnow()),
    }


def profit_and_loss(start: Optional[datetime] = None, end: Optional[datetime] = None) -> dict:
    """
    Revenue, expenses and net income.

    Without a range the running balances are reported. With start and/or end,
    amounts are recomputed from transactions inside the range.
    """
    accounts = list_accounts()
    ranged = start is not None or end is not None
    balances = derived_balances(start=start, end=end) if ranged else None

    revenue = _section(_by_type(accounts, "revenue"), balances)
    expenses = _section(_by_type(accounts, "expense"), balances)
    net_income_cents = revenue.pop("total_cents") - expenses.pop("total_cents")

    now = utcnow()
    return {
        "revenue": revenue,
        "expenses": expenses,
        "netIncome": net_income_cents / 100,
        "startDate": to_utc_z(start or now),
        "endDate": to_utc_z(end or now),
    }
