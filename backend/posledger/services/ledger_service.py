# Overview: Service-layer operations for the double-entry ledger; owns every balance mutation.

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Account, Journal, LedgerTransaction, Order, Cancellation
from ..models.accounting import ACCOUNT_TYPES, ENTRY_TYPES
from ..time_utils import utcnow
from ..validation import (
    BALANCE_TOLERANCE_CENTS,
    BalanceMismatchError,
    ConflictError,
    NotFoundError,
    ValidationError,
    optional_text,
    parse_positive_cents,
    require_text,
)
from .concurrency import begin_write, lock_for_update, run_with_retry
"""
Ledger Invariants (authoritative)

- Account.balance_cents is changed ONLY through _apply_line(), which reads the
  BALANCE_EFFECTS table. Sale postings, cancellation reversals, manual
  transactions and journal entries all go through it.
- Every Journal is balanced: |sum(debits) - sum(credits)| <= 1 cent.
  An unbalanced batch is rejected before any row is written.
- Ledger transactions are append-only.
- A running balance always equals the signed sum of the account's
  transactions, so balances are independent of posting order.
"""


# account type -> signed effect of each entry type on the running balance
BALANCE_EFFECTS: dict[str, dict[str, int]] = {
    "asset": {"debit": 1, "credit": -1},
    "expense": {"debit": 1, "credit": -1},
    "liability": {"debit": -1, "credit": 1},
    "equity": {"debit": -1, "credit": 1},
    "revenue": {"debit": -1, "credit": 1},
}

# (code, name, type, category)
DEFAULT_CHART: tuple[tuple[str, str, str, str], ...] = (
    ("11000", "Cash", "asset", "current_asset"),
    ("12000", "Accounts Receivable", "asset", "current_asset"),
    ("13000", "Inventory", "asset", "current_asset"),
    ("21000", "Accounts Payable", "liability", "current_liability"),
    ("31000", "Owner's Equity", "equity", "equity"),
    ("41000", "Sales Revenue", "revenue", "operating_revenue"),
    ("51000", "Cost of Goods Sold", "expense", "cost_of_sales"),
    ("61000", "Operating Expenses", "expense", "operating_expense"),
)


@dataclass(frozen=True)
class LedgerLine:
    account_code: str
    type: str
    amount_cents: int
    description: Optional[str] = None


def balance_delta(account_type: str, entry_type: str, amount_cents: int) -> int:
    """Signed change to an account's running balance for one ledger line."""
    return BALANCE_EFFECTS[account_type][entry_type] * amount_cents


def _apply_line(account: Account, line: LedgerLine) -> None:
    account.balance_cents = (account.balance_cents or 0) + balance_delta(
        account.type, line.type, line.amount_cents
    )


def _check_balanced(lines: Iterable[LedgerLine]) -> None:
    lines = list(lines)
    debits = sum(l.amount_cents for l in lines if l.type == "debit")
    credits = sum(l.amount_cents for l in lines if l.type == "credit")
    if abs(debits - credits) > BALANCE_TOLERANCE_CENTS:
        raise BalanceMismatchError(
            "Debits and credits must be equal",
            details={"total_debits": debits / 100, "total_credits": credits / 100},
        )


def _load_accounts(codes: Iterable[str]) -> dict[str, Account]:
    codes = sorted(set(codes))
    rows = lock_for_update(db.session.query(Account).filter(Account.code.in_(codes))).all()
    accounts = {a.code: a for a in rows}
    missing = [c for c in codes if c not in accounts]
    if missing:
        raise ValidationError(
            f"Account not found: {', '.join(missing)}",
            details={"account_codes": missing},
        )
    return accounts


def _write_journal(
    *,
    lines: list[LedgerLine],
    source: str,
    reference: Optional[str],
    reference_type: str,
    description: Optional[str],
    date: Optional[datetime] = None,
    idempotency_key: Optional[str] = None,
    journal_id: Optional[str] = None,
) -> Journal:
    """
    Write a balanced journal inside the caller's transaction (no commit).

    Raises BalanceMismatchError / ValidationError before anything is added
    to the session.
    """
    _check_balanced(lines)
    accounts = _load_accounts(l.account_code for l in lines)

    occurred_at = date or utcnow()
    journal = Journal(
        id=journal_id or str(uuid.uuid4()),
        date=occurred_at,
        description=description,
        source=source,
        reference=reference,
        idempotency_key=idempotency_key,
    )
    db.session.add(journal)

    for line in lines:
        db.session.add(LedgerTransaction(
            journal=journal,
            date=occurred_at,
            account_code=line.account_code,
            type=line.type,
            amount_cents=line.amount_cents,
            description=line.description or description or "",
            reference=reference,
            reference_type=reference_type,
        ))
        _apply_line(accounts[line.account_code], line)

    db.session.flush()
    return journal


# =============================================================================
# CHART OF ACCOUNTS
# =============================================================================

def list_accounts() -> list[Account]:
    return db.session.query(Account).order_by(Account.code.asc()).all()


def get_account(code: str) -> Account:
    account = db.session.query(Account).filter_by(code=code).first()
    if account is None:
        raise NotFoundError("Account not found")
    return account


def create_account(*, code, name, type, category=None) -> Account:
    code = require_text(code, "code", max_length=16)
    name = require_text(name, "name", max_length=255)
    if type not in ACCOUNT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(ACCOUNT_TYPES)}")
    category = optional_text(category, "category", max_length=64) or "general"

    def _op():
        if db.session.query(Account.id).filter_by(code=code).first():
            raise ConflictError("Account code already exists")
        account = Account(code=code, name=name, type=type, category=category, balance_cents=0)
        db.session.add(account)
        db.session.commit()
        return account

    return run_with_retry(_op)


def ensure_default_accounts(codes: Optional[Iterable[str]] = None) -> list[Account]:
    """
    Create any missing accounts of the default chart (inside the caller's
    transaction). Restricted to `codes` when given. Safe to call repeatedly.
    """
    wanted = set(codes) if codes is not None else None
    existing = {code for (code,) in db.session.query(Account.code).all()}
    created = []
    for code, name, type_, category in DEFAULT_CHART:
        if wanted is not None and code not in wanted:
            continue
        if code in existing:
            continue
        account = Account(code=code, name=name, type=type_, category=category, balance_cents=0)
        db.session.add(account)
        created.append(account)
    if created:
        db.session.flush()
    return created


def _sale_accounts() -> dict[str, str]:
    cfg = current_app.config
    return {
        "cash": cfg["SALE_CASH_ACCOUNT"],
        "revenue": cfg["SALE_REVENUE_ACCOUNT"],
        "cogs": cfg["SALE_COGS_ACCOUNT"],
        "inventory": cfg["SALE_INVENTORY_ACCOUNT"],
    }


# =============================================================================
# POSTING PATHS
# =============================================================================

def post_sale(order: Order) -> Optional[Journal]:
    """
    Post a completed order (inside the caller's transaction).

    - Debit cash / credit revenue for order.total.
    - Debit COGS / credit inventory for sum(unit cost x quantity) when > 0.
    Zero-amount pairs are omitted. Returns None if nothing was posted.
    """
    codes = _sale_accounts()
    ensure_default_accounts(codes.values())

    label = f"Order #{order.order_number}"
    lines: list[LedgerLine] = []
    if order.total_cents > 0:
        lines.append(LedgerLine(codes["cash"], "debit", order.total_cents, f"Sale {label}"))
        lines.append(LedgerLine(codes["revenue"], "credit", order.total_cents, f"Sale {label}"))

    total_cost = order.total_cost_cents
    if total_cost > 0:
        lines.append(LedgerLine(codes["cogs"], "debit", total_cost, f"COGS {label}"))
        lines.append(LedgerLine(codes["inventory"], "credit", total_cost, f"COGS {label}"))

    if not lines:
        return None

    return _write_journal(
        lines=lines,
        source="sale",
        reference=str(order.id),
        reference_type="sale",
        description=f"Sale {label}",
        date=order.date,
    )


def post_cancellation_reversal(cancellation: Cancellation) -> Optional[Journal]:
    """
    Reverse the ledger effect of one cancelled order line (inside the
    caller's transaction): the line amount out of cash and revenue, the line's
    snapshotted cost back from COGS into inventory.
    """
    codes = _sale_accounts()
    ensure_default_accounts(codes.values())

    label = f"Order #{cancellation.order_number} item {cancellation.order_item_id}"
    lines: list[LedgerLine] = []
    if cancellation.amount_cents > 0:
        lines.append(LedgerLine(codes["revenue"], "debit", cancellation.amount_cents, f"Cancel {label}"))
        lines.append(LedgerLine(codes["cash"], "credit", cancellation.amount_cents, f"Cancel {label}"))

    cost = (cancellation.unit_cost_cents or 0) * cancellation.quantity
    if cost > 0:
        lines.append(LedgerLine(codes["inventory"], "debit", cost, f"COGS reversal {label}"))
        lines.append(LedgerLine(codes["cogs"], "credit", cost, f"COGS reversal {label}"))

    if not lines:
        return None

    return _write_journal(
        lines=lines,
        source="cancellation",
        reference=str(cancellation.id),
        reference_type="cancellation",
        description=f"Cancel {label}",
    )


def record_transaction(
    *,
    account_code,
    type,
    amount,
    date: Optional[datetime] = None,
    description=None,
    reference=None,
    reference_type=None,
    idempotency_key=None,
) -> tuple[LedgerTransaction, bool]:
    """
    Post one manual ledger line and update its account balance.

    Returns (transaction, created). A reused idempotency_key returns the
    original transaction with created=False and posts nothing.
    """
    if not account_code or not type or amount in (None, ""):
        raise ValidationError("Account code, type, and amount are required")
    if type not in ENTRY_TYPES:
        raise ValidationError("type must be 'debit' or 'credit'")
    line = LedgerLine(
        account_code=str(account_code),
        type=type,
        amount_cents=parse_positive_cents(amount, "amount", exact=True),
    )
    description = optional_text(description, "description", max_length=255) or ""
    reference = optional_text(reference, "reference", max_length=64)
    reference_type = optional_text(reference_type, "referenceType", max_length=16) or "manual"
    idempotency_key = optional_text(idempotency_key, "idempotencyKey", max_length=128)

    def _op():
        begin_write()
        if idempotency_key:
            existing = db.session.query(LedgerTransaction).filter_by(idempotency_key=idempotency_key).first()
            if existing:
                db.session.commit()
                return existing, False

        account = _load_accounts([line.account_code])[line.account_code]
        txn = LedgerTransaction(
            date=date or utcnow(),
            account_code=line.account_code,
            type=line.type,
            amount_cents=line.amount_cents,
            description=description,
            reference=reference,
            reference_type=reference_type,
            idempotency_key=idempotency_key,
        )
        db.session.add(txn)
        _apply_line(account, line)
        db.session.commit()

        current_app.logger.info(
            "Manual %s of %s posted to account %s", line.type, line.amount_cents, line.account_code
        )
        return txn, True

    return run_with_retry(_op)


def _parse_journal_lines(entries) -> list[LedgerLine]:
    if not isinstance(entries, list) or len(entries) < 2:
        raise ValidationError("At least 2 entries required for journal entry")

    lines = []
    for i, entry in enumerate(entries, start=1):
        if not isinstance(entry, dict):
            raise ValidationError(f"Entry {i} must be an object")
        code = entry.get("accountCode")
        if not code:
            raise ValidationError(f"Entry {i}: accountCode is required")
        entry_type = entry.get("type")
        if entry_type not in ENTRY_TYPES:
            raise ValidationError(f"Entry {i}: type must be 'debit' or 'credit'")
        lines.append(LedgerLine(
            account_code=str(code),
            type=entry_type,
            amount_cents=parse_positive_cents(entry.get("amount"), f"entries[{i}].amount", exact=True),
            description=optional_text(entry.get("description"), "description", max_length=255),
        ))
    return lines


def post_journal_entry(
    *,
    entries,
    date: Optional[datetime] = None,
    description=None,
    idempotency_key=None,
) -> tuple[Journal, bool]:
    """
    Post a caller-supplied, pre-balanced batch of ledger lines atomically.

    Rejects the whole batch (nothing written, no balance changed) when there
    are fewer than two lines, a line is malformed or names an unknown account,
    or debits and credits differ by more than one cent.
    """
    lines = _parse_journal_lines(entries)
    _check_balanced(lines)
    description = optional_text(description, "description", max_length=255) or "Journal Entry"
    idempotency_key = optional_text(idempotency_key, "idempotencyKey", max_length=128)

    def _op():
        begin_write()
        if idempotency_key:
            existing = db.session.query(Journal).filter_by(idempotency_key=idempotency_key).first()
            if existing:
                db.session.commit()
                return existing, False

        journal_id = str(uuid.uuid4())
        journal = _write_journal(
            lines=lines,
            source="journal",
            reference=journal_id,
            reference_type="journal",
            description=description,
            date=date,
            idempotency_key=idempotency_key,
            journal_id=journal_id,
        )
        db.session.commit()

        current_app.logger.info("Journal %s posted with %d lines", journal.id, len(lines))
        return journal, True

    return run_with_retry(_op)


# =============================================================================
# QUERIES
# =============================================================================

def list_transactions(
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    account_code: Optional[str] = None,
) -> list[LedgerTransaction]:
    q = db.session.query(LedgerTransaction)
    if start is not None:
        q = q.filter(LedgerTransaction.date >= start)
    if end is not None:
        q = q.filter(LedgerTransaction.date <= end)
    if account_code:
        q = q.filter(LedgerTransaction.account_code == account_code)
    return q.order_by(LedgerTransaction.date.asc(), LedgerTransaction.id.asc()).all()


def derived_balances(
    *,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
) -> dict[str, int]:
    """
    Per-account balance recomputed from transactions in [start, end], using
    the same BALANCE_EFFECTS table as the running balances.
    """
    q = (
        db.session.query(
            Account.code,
            Account.type,
            LedgerTransaction.type,
            func.coalesce(func.sum(LedgerTransaction.amount_cents), 0),
        )
        .join(LedgerTransaction, LedgerTransaction.account_code == Account.code)
    )
    if start is not None:
        q = q.filter(LedgerTransaction.date >= start)
    if end is not None:
        q = q.filter(LedgerTransaction.date <= end)
    q = q.group_by(Account.code, Account.type, LedgerTransaction.type)

    balances: dict[str, int] = {}
    for code, account_type, entry_type, total in q.all():
        balances[code] = balances.get(code, 0) + balance_delta(account_type, entry_type, int(total))
    return balances
