from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable


# Maximum money amount: 9,999,999.99 (999,999,999 cents)
MAX_AMOUNT_CENTS = 999_999_999

# Journal entries may be off by at most one cent between debits and credits
BALANCE_TOLERANCE_CENTS = 1


class PosError(Exception):
    """Base class for domain errors surfaced at the request boundary."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}


class ValidationError(PosError):
    """400-level input problem."""


class NotFoundError(PosError):
    """Unknown id or code."""

    status_code = 404


class ConflictError(PosError):
    """Business rule conflict (e.g., duplicate SKU)."""


class InsufficientStockError(ConflictError):
    """Requested quantity exceeds stock on hand."""


class AlreadyProcessedError(ConflictError):
    """Cancellation request is no longer pending."""


class BalanceMismatchError(PosError):
    """Journal entry debits and credits do not agree."""


# =============================================================================
# SCALAR COERCION
# =============================================================================

def parse_money_cents(value: Any, field: str, *, exact: bool = False) -> int:
    """
    Convert a currency-unit amount ("12.50", 12.5, 12) to integer cents.

    Rounds half-up to the cent, or with exact=True rejects amounts with more
    than two decimal places. Rejects booleans, blanks, NaN/Infinity and
    amounts beyond MAX_AMOUNT_CENTS.
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, str):
        value = value.strip()
        if not value:
            raise ValidationError(f"{field} must be a number")
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number")
    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    if abs(amount * 100) > MAX_AMOUNT_CENTS:
        raise ValidationError(f"{field} cannot exceed {MAX_AMOUNT_CENTS / 100:,.2f}")
    if exact and amount != amount.quantize(Decimal("0.01")):
        raise ValidationError(f"{field} cannot have more than 2 decimal places")

    return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def parse_non_negative_cents(value: Any, field: str) -> int:
    cents = parse_money_cents(value, field)
    if cents < 0:
        raise ValidationError(f"{field} must be >= 0")
    return cents


def parse_positive_cents(value: Any, field: str, *, exact: bool = False) -> int:
    cents = parse_money_cents(value, field, exact=exact)
    if cents <= 0:
        raise ValidationError(f"{field} must be > 0")
    return cents


def parse_int(value: Any, field: str) -> int:
    """Strict integer parsing: rejects floats, decimals and scientific notation."""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def parse_non_negative_int(value: Any, field: str) -> int:
    number = parse_int(value, field)
    if number < 0:
        raise ValidationError(f"{field} must be >= 0")
    return number


def parse_positive_int(value: Any, field: str) -> int:
    number = parse_int(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be > 0")
    return number


def cents_to_amount(cents: int | None) -> float | None:
    """Serialize integer cents as a currency-unit number for JSON."""
    if cents is None:
        return None
    return cents / 100


def require_text(value: Any, field: str, *, max_length: int | None = None) -> str:
    if value is None or not str(value).strip():
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def optional_text(value: Any, field: str, *, max_length: int | None = None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if max_length and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


# =============================================================================
# PAYLOAD POLICIES
# =============================================================================

@dataclass(frozen=True)
class PayloadPolicy:
    """
    Central policy layer for JSON payloads:
    - fields: client key -> (model attribute, coercer)
    - required_on_create: client keys required for POST
    - nullable: client keys that may be explicitly set to null
    - read_only: client keys that are accepted but ignored (echoed back by UIs)
    - defaulted_on_create: client keys where a blank or null value on POST means
      "use the default" (forms send sku: "" for an auto-generated SKU)
    """
    fields: dict[str, tuple[str, Callable[[Any, str], Any]]]
    required_on_create: frozenset[str] = frozenset()
    nullable: frozenset[str] = frozenset()
    read_only: frozenset[str] = frozenset()
    defaulted_on_create: frozenset[str] = frozenset()


def _short_text(max_length: int) -> Callable[[Any, str], str | None]:
    def _coerce(value: Any, field: str) -> str | None:
        return optional_text(value, field, max_length=max_length)
    return _coerce


def _required_text(max_length: int) -> Callable[[Any, str], str]:
    def _coerce(value: Any, field: str) -> str:
        return require_text(value, field, max_length=max_length)
    return _coerce


PRODUCT_POLICY = PayloadPolicy(
    fields={
        "name": ("name", _required_text(255)),
        "sku": ("sku", _required_text(64)),
        "description": ("description", _short_text(2000)),
        "category": ("category", _short_text(64)),
        "price": ("price_cents", parse_non_negative_cents),
        "cost": ("cost_cents", parse_non_negative_cents),
        "stock": ("stock", parse_non_negative_int),
        "minStock": ("min_stock", parse_non_negative_int),
        "unit": ("unit", _short_text(16)),
        "barcode": ("barcode", _short_text(64)),
    },
    required_on_create=frozenset({"name"}),
    nullable=frozenset({"description", "barcode"}),
    read_only=frozenset({"id", "createdAt", "updatedAt", "isLowStock"}),
    defaulted_on_create=frozenset({"sku", "category", "unit"}),
)


def _tag_list(value: Any, field: str) -> list[str]:
    if not isinstance(value, list):
        raise ValidationError(f"{field} must be a list of strings")
    tags = []
    for tag in value:
        if not isinstance(tag, str):
            raise ValidationError(f"{field} must be a list of strings")
        tag = tag.strip()
        if len(tag) > 32:
            raise ValidationError(f"{field} entries exceed max length 32")
        if tag and tag not in tags:
            tags.append(tag)
    return tags


CUSTOMER_POLICY = PayloadPolicy(
    fields={
        "name": ("name", _required_text(255)),
        "email": ("email", _short_text(255)),
        "phone": ("phone", _short_text(32)),
        "whatsapp": ("whatsapp", _short_text(32)),
        "address": ("address", _short_text(500)),
        "city": ("city", _short_text(128)),
        "postalCode": ("postal_code", _short_text(16)),
        "country": ("country", _short_text(64)),
        "customerType": ("customer_type", _short_text(32)),
        "notes": ("notes", _short_text(2000)),
        "tags": ("tags", _tag_list),
    },
    required_on_create=frozenset({"name"}),
    read_only=frozenset({"id", "createdAt", "updatedAt", "totalOrders", "totalSpent", "lastOrderDate"}),
    defaulted_on_create=frozenset({"whatsapp", "country", "customerType"}),
)


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def validate_payload(*, payload: Any, policy: PayloadPolicy, partial: bool) -> dict:
    """
    Validates + normalizes incoming JSON against a PayloadPolicy.
    Returns a patch dict keyed by model attribute.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    patch: dict = {}
    for key, raw in payload.items():
        if key in policy.read_only:
            continue
        if key not in policy.fields:
            raise ValidationError(f"Field not allowed: {key}")
        attr, coerce = policy.fields[key]
        if not partial and key in policy.defaulted_on_create and _is_blank(raw):
            continue
        if raw is None:
            if key not in policy.nullable:
                raise ValidationError(f"{key} cannot be null")
            patch[attr] = None
            continue
        patch[attr] = coerce(raw, key)

    return patch
