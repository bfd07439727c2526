# Overview: Pytest coverage for ledger posting rules and balance arithmetic.

import itertools

import pytest

from posledger.models import Account, Journal, LedgerTransaction
from posledger.services import ledger_service
from posledger.validation import BalanceMismatchError, ConflictError, NotFoundError, ValidationError


class TestBalanceEffects:

    @pytest.mark.parametrize("account_type, entry_type, expected", [
        ("asset", "debit", 500),
        ("asset", "credit", -500),
        ("expense", "debit", 500),
        ("expense", "credit", -500),
        ("liability", "debit", -500),
        ("liability", "credit", 500),
        ("equity", "debit", -500),
        ("equity", "credit", 500),
        ("revenue", "debit", -500),
        ("revenue", "credit", 500),
    ])
    def test_balance_delta_table(self, account_type, entry_type, expected):
        assert ledger_service.balance_delta(account_type, entry_type, 500) == expected

    def test_posting_order_does_not_change_final_balance(self):
        lines = [("debit", 700), ("credit", 250), ("debit", 30), ("credit", 1)]
        finals = set()
        for ordering in itertools.permutations(lines):
            balance = 0
            for entry_type, cents in ordering:
                balance += ledger_service.balance_delta("asset", entry_type, cents)
            finals.add(balance)
        assert finals == {479}


class TestChartOfAccounts:

    def test_default_chart_is_idempotent(self, db_session):
        created = ledger_service.ensure_default_accounts()
        db_session.commit()
        assert [a.code for a in created] == [
            "11000", "12000", "13000", "21000", "31000", "41000", "51000", "61000",
        ]
        assert ledger_service.ensure_default_accounts() == []
        assert db_session.query(Account).count() == 8

    def test_ensure_subset_of_default_chart(self, db_session):
        created = ledger_service.ensure_default_accounts(["11000", "41000"])
        db_session.commit()
        assert sorted(a.code for a in created) == ["11000", "41000"]

    def test_create_account_starts_at_zero(self, db_session):
        account = ledger_service.create_account(code="11100", name="Petty Cash", type="asset")
        assert account.balance_cents == 0
        assert account.category == "general"

    def test_create_account_rejects_duplicate_code(self, default_accounts):
        with pytest.raises(ConflictError):
            ledger_service.create_account(code="11000", name="Cash again", type="asset")

    def test_create_account_rejects_unknown_type(self, db_session):
        with pytest.raises(ValidationError):
            ledger_service.create_account(code="99000", name="Mystery", type="suspense")

    def test_get_unknown_account(self, db_session):
        with pytest.raises(NotFoundError):
            ledger_service.get_account("00000")


class TestManualTransactions:

    def test_debit_to_expense_increases_balance(self, default_accounts, balance_of):
        txn, created = ledger_service.record_transaction(
            account_code="61000", type="debit", amount="25.50", description="Stationery",
        )
        assert created is True
        assert txn.amount_cents == 2550
        assert txn.reference_type == "manual"
        assert txn.journal_id is None
        assert balance_of("61000") == 2550

    def test_credit_to_liability_increases_balance(self, default_accounts, balance_of):
        ledger_service.record_transaction(account_code="21000", type="credit", amount=100)
        assert balance_of("21000") == 10000

    def test_missing_fields_rejected(self, default_accounts):
        with pytest.raises(ValidationError, match="Account code, type, and amount are required"):
            ledger_service.record_transaction(account_code="11000", type=None, amount=5)

    @pytest.mark.parametrize("amount", ["1.234", 0.001, "10.005"])
    def test_sub_cent_amount_rejected(self, default_accounts, db_session, amount):
        with pytest.raises(ValidationError, match="more than 2 decimal places"):
            ledger_service.record_transaction(account_code="11000", type="debit", amount=amount)
        assert db_session.query(LedgerTransaction).count() == 0

    @pytest.mark.parametrize("amount", [0, -3, "abc"])
    def test_non_positive_amount_rejected(self, default_accounts, amount):
        with pytest.raises(ValidationError):
            ledger_service.record_transaction(account_code="11000", type="debit", amount=amount)

    def test_unknown_account_rejected_without_writes(self, default_accounts, db_session):
        with pytest.raises(ValidationError, match="Account not found"):
            ledger_service.record_transaction(account_code="99999", type="debit", amount=5)
        assert db_session.query(LedgerTransaction).count() == 0

    def test_idempotency_key_replays_original(self, default_accounts, balance_of):
        first, created = ledger_service.record_transaction(
            account_code="11000", type="debit", amount=10, idempotency_key="till-42",
        )
        again, created_again = ledger_service.record_transaction(
            account_code="11000", type="debit", amount=10, idempotency_key="till-42",
        )
        assert created is True
        assert created_again is False
        assert again.id == first.id
        assert balance_of("11000") == 1000


class TestJournalEntries:

    def test_balanced_entry_posts_every_line(self, default_accounts, balance_of, db_session):
        journal, created = ledger_service.post_journal_entry(
            entries=[
                {"accountCode": "11000", "type": "debit", "amount": 500},
                {"accountCode": "31000", "type": "credit", "amount": 500},
            ],
            description="Owner investment",
        )
        assert created is True
        assert len(journal.transactions) == 2
        assert {t.reference for t in journal.transactions} == {journal.id}
        assert {t.reference_type for t in journal.transactions} == {"journal"}
        assert balance_of("11000") == 50000
        assert balance_of("31000") == 50000

    def test_one_cent_tolerance_accepted(self, default_accounts):
        journal, _ = ledger_service.post_journal_entry(entries=[
            {"accountCode": "11000", "type": "debit", "amount": "10.01"},
            {"accountCode": "41000", "type": "credit", "amount": "10.00"},
        ])
        assert len(journal.transactions) == 2

    def test_sub_cent_amounts_rejected_before_tolerance(self, default_accounts, balance_of, db_session):
        # 100.0149 vs 99.995 would round to a one-cent difference
        with pytest.raises(ValidationError, match="more than 2 decimal places"):
            ledger_service.post_journal_entry(entries=[
                {"accountCode": "11000", "type": "debit", "amount": "100.0149"},
                {"accountCode": "41000", "type": "credit", "amount": "99.995"},
            ])
        assert balance_of("11000") == 0
        assert db_session.query(Journal).count() == 0

    def test_unbalanced_entry_rejected_without_writes(self, default_accounts, balance_of, db_session):
        with pytest.raises(BalanceMismatchError) as excinfo:
            ledger_service.post_journal_entry(entries=[
                {"accountCode": "11000", "type": "debit", "amount": 100},
                {"accountCode": "41000", "type": "credit", "amount": 90},
            ])
        assert excinfo.value.details == {"total_debits": 100, "total_credits": 90}
        assert balance_of("11000") == 0
        assert db_session.query(Journal).count() == 0

    def test_single_entry_rejected(self, default_accounts):
        with pytest.raises(ValidationError, match="At least 2 entries required"):
            ledger_service.post_journal_entry(entries=[
                {"accountCode": "11000", "type": "debit", "amount": 100},
            ])

    def test_unknown_account_rejects_whole_batch(self, default_accounts, balance_of, db_session):
        with pytest.raises(ValidationError):
            ledger_service.post_journal_entry(entries=[
                {"accountCode": "11000", "type": "debit", "amount": 100},
                {"accountCode": "99999", "type": "credit", "amount": 100},
            ])
        assert balance_of("11000") == 0
        assert db_session.query(LedgerTransaction).count() == 0

    def test_bad_entry_type_rejected(self, default_accounts):
        with pytest.raises(ValidationError, match="Entry 2"):
            ledger_service.post_journal_entry(entries=[
                {"accountCode": "11000", "type": "debit", "amount": 100},
                {"accountCode": "41000", "type": "refund", "amount": 100},
            ])

    def test_idempotent_journal(self, default_accounts, balance_of):
        entries = [
            {"accountCode": "61000", "type": "debit", "amount": 40},
            {"accountCode": "11000", "type": "credit", "amount": 40},
        ]
        first, _ = ledger_service.post_journal_entry(entries=entries, idempotency_key="rent-2026-10")
        second, created = ledger_service.post_journal_entry(entries=entries, idempotency_key="rent-2026-10")
        assert created is False
        assert second.id == first.id
        assert balance_of("61000") == 4000


class TestDerivedBalances:

    def test_derived_balances_match_running_balances(self, client, make_product, default_accounts, db_session):
        product = make_product(price_cents=1250, cost_cents=500, stock=10)
        client.post('/api/pos/order', json={"items": [{"productId": product.id, "quantity": 2}], "tax": 1})
        ledger_service.record_transaction(account_code="61000", type="debit", amount=12)
        ledger_service.post_journal_entry(entries=[
            {"accountCode": "11000", "type": "debit", "amount": 300},
            {"accountCode": "31000", "type": "credit", "amount": 300},
        ])

        db_session.expire_all()
        derived = ledger_service.derived_balances()
        for account in ledger_service.list_accounts():
            assert derived.get(account.code, 0) == account.balance_cents

    def test_every_journal_is_balanced(self, client, make_product, default_accounts, db_session):
        product = make_product(price_cents=999, cost_cents=333, stock=10)
        client.post('/api/pos/order', json={"items": [{"productId": product.id, "quantity": 3}]})

        db_session.expire_all()
        for journal in db_session.query(Journal).all():
            debits = sum(t.amount_cents for t in journal.transactions if t.type == "debit")
            credits = sum(t.amount_cents for t in journal.transactions if t.type == "credit")
            assert debits == credits
