from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow
from ..validation import cents_to_amount


ACCOUNT_TYPES = ("asset", "liability", "equity", "revenue", "expense")
ENTRY_TYPES = ("debit", "credit")


class Account(db.Model):
    """
    Chart-of-accounts entry.

    balance_cents is a running balance maintained only by the ledger
    service's posting routine. Direct edits through the accounts API are not
    possible.
    """
    __tablename__ = "accounts"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(16), nullable=False, unique=True)
    name = db.Column(db.String(255), nullable=False)
    type = db.Column(db.String(16), nullable=False, index=True)
    category = db.Column(db.String(64), nullable=False, default="general")

    balance_cents = db.Column(db.Integer, nullable=False, default=0)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<Account code={self.code!r} type={self.type} balance_cents={self.balance_cents}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "type": self.type,
            "category": self.category,
            "balance": cents_to_amount(self.balance_cents),
        }


class Journal(db.Model):
    """
    Header for a balanced group of ledger transactions.

    Every sale posting, cancellation reversal and journal entry creates one.
    The lines of a journal always satisfy sum(debits) == sum(credits) within
    one cent. idempotency_key lets callers retry a submission safely.
    """
    __tablename__ = "journals"

    id = db.Column(db.String(36), primary_key=True)
    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    description = db.Column(db.String(255), nullable=True)
    source = db.Column(db.String(16), nullable=False, index=True)  # sale, cancellation, journal
    reference = db.Column(db.String(64), nullable=True, index=True)
    idempotency_key = db.Column(db.String(128), nullable=True, unique=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    transactions = db.relationship("LedgerTransaction", back_populates="journal", order_by="LedgerTransaction.id")

    def to_dict(self) -> dict:
        return {
            "journalId": self.id,
            "date": to_utc_z(self.date),
            "description": self.description,
            "source": self.source,
            "reference": self.reference,
            "transactions": [t.to_dict() for t in self.transactions],
        }


class LedgerTransaction(db.Model):
    """
    Append-only ledger line. IMMUTABLE: rows are never updated or deleted.

    Manual single-sided transactions have no journal; every other line
    belongs to exactly one journal.
    """
    __tablename__ = "ledger_transactions"
    __table_args__ = (
        db.Index("ix_ledger_transactions_account_date", "account_code", "date"),
        db.CheckConstraint("amount_cents > 0", name="ck_ledger_transactions_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    journal_id = db.Column(db.String(36), db.ForeignKey("journals.id"), nullable=True, index=True)

    date = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)
    account_code = db.Column(db.String(16), db.ForeignKey("accounts.code"), nullable=False)
    type = db.Column(db.String(8), nullable=False)  # debit, credit
    amount_cents = db.Column(db.Integer, nullable=False)

    description = db.Column(db.String(255), nullable=False, default="")
    reference = db.Column(db.String(64), nullable=True, index=True)
    reference_type = db.Column(db.String(16), nullable=False, default="manual")

    # Only used by manual transactions; journals carry their own key
    idempotency_key = db.Column(db.String(128), nullable=True, unique=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow)

    journal = db.relationship("Journal", back_populates="transactions")
    account = db.relationship("Account", foreign_keys=[account_code])

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "journalId": self.journal_id,
            "date": to_utc_z(self.date),
            "accountCode": self.account_code,
            "type": self.type,
            "amount": cents_to_amount(self.amount_cents),
            "description": self.description,
            "reference": self.reference,
            "referenceType": self.reference_type,
        }
