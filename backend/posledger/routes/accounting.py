# Overview: Flask API routes for the chart of accounts, ledger postings and statements.

"""
Time semantics:
- API accepts ISO-8601 dates/datetimes with Z/offsets; backend normalizes to UTC-naive internally.
- Range filters are inclusive. A bare end date covers the whole day.
"""

from flask import Blueprint, request, jsonify, current_app

from ..services import ledger_service, reporting_service
from ..time_utils import parse_iso_datetime, parse_range_end
from ..validation import PosError


accounting_bp = Blueprint("accounting", __name__, url_prefix="/api/accounting")


def _error(e: PosError):
    return jsonify({"error": str(e), "details": e.details}), e.status_code


def _bad_date():
    return jsonify({"error": "Dates must be ISO-8601"}), 400


# =============================================================================
# ACCOUNTS
# =============================================================================

@accounting_bp.get("/accounts")
def list_accounts_route():
    return jsonify([a.to_dict() for a in ledger_service.list_accounts()]), 200


@accounting_bp.get("/accounts/<code>")
def get_account_route(code: str):
    try:
        account = ledger_service.get_account(code)
    except PosError as e:
        return _error(e)
    return jsonify(account.to_dict()), 200


@accounting_bp.post("/accounts")
def create_account_route():
    """
    Create a chart-of-accounts entry. The balance always starts at zero.

    Request body: {"code": "11100", "name": "Petty Cash", "type": "asset", "category": "current_asset"}
    """
    try:
        data = request.get_json(silent=True) or {}
        account = ledger_service.create_account(
            code=data.get("code"),
            name=data.get("name"),
            type=data.get("type"),
            category=data.get("category"),
        )
        return jsonify(account.to_dict()), 201

    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to create account")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# TRANSACTIONS
# =============================================================================

@accounting_bp.get("/transactions")
def list_transactions_route():
    try:
        start = parse_iso_datetime(request.args.get("startDate"))
        end = parse_range_end(request.args.get("endDate"))
    except ValueError:
        return _bad_date()

    rows = ledger_service.list_transactions(
        start=start, end=end, account_code=request.args.get("accountCode")
    )
    return jsonify([t.to_dict() for t in rows]), 200


@accounting_bp.post("/transactions")
def create_transaction_route():
    """
    Post a single manual ledger line.

    Request body:
    {
        "accountCode": "61000", "type": "debit", "amount": 25.5,
        "date": null, "description": "", "reference": null,
        "referenceType": "manual", "idempotencyKey": null
    }

    Returns:
        201: transaction
        200: transaction previously created with the same idempotencyKey
        400: missing fields, bad type/amount, unknown account
    """
    try:
        data = request.get_json(silent=True) or {}
        try:
            date = parse_iso_datetime(data.get("date"))
        except (AttributeError, TypeError, ValueError):
            return _bad_date()

        txn, created = ledger_service.record_transaction(
            account_code=data.get("accountCode"),
            type=data.get("type"),
            amount=data.get("amount"),
            date=date,
            description=data.get("description"),
            reference=data.get("reference"),
            reference_type=data.get("referenceType"),
            idempotency_key=data.get("idempotencyKey"),
        )
        return jsonify(txn.to_dict()), 201 if created else 200

    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to create transaction")
        return jsonify({"error": "Internal server error"}), 500


@accounting_bp.post("/journal-entry")
def create_journal_entry_route():
    """
    Post a balanced multi-line journal entry atomically.

    Request body:
    {
        "date": null, "description": "Owner investment", "idempotencyKey": null,
        "entries": [
            {"accountCode": "11000", "type": "debit", "amount": 500},
            {"accountCode": "31000", "type": "credit", "amount": 500}
        ]
    }

    Returns:
        201: {journalId, transactions}
        200: journal previously created with the same idempotencyKey
        400: fewer than 2 entries, malformed entry, unknown account, debits != credits
    """
    try:
        data = request.get_json(silent=True) or {}
        try:
            date = parse_iso_datetime(data.get("date"))
        except (AttributeError, TypeError, ValueError):
            return _bad_date()

        journal, created = ledger_service.post_journal_entry(
            entries=data.get("entries"),
            date=date,
            description=data.get("description"),
            idempotency_key=data.get("idempotencyKey"),
        )
        return jsonify({
            "journalId": journal.id,
            "transactions": [t.to_dict() for t in journal.transactions],
        }), 201 if created else 200

    except PosError as e:
        return _error(e)
    except Exception:
        current_app.logger.exception("Failed to post journal entry")
        return jsonify({"error": "Internal server error"}), 500


# =============================================================================
# STATEMENTS
# =============================================================================

@accounting_bp.get("/balance-sheet")
def balance_sheet_route():
    try:
        as_of = parse_range_end(request.args.get("date"))
    except ValueError:
        return _bad_date()
    return jsonify(reporting_service.balance_sheet(as_of)), 200


@accounting_bp.get("/profit-loss")
def profit_loss_route():
    try:
        start = parse_iso_datetime(request.args.get("startDate"))
        end = parse_range_end(request.args.get("endDate"))
    except ValueError:
        return _bad_date()
    return jsonify(reporting_service.profit_and_loss(start, end)), 200
