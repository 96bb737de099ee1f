from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Callable


# Maximum price: $9,999,999.99 (999,999,999 cents)
MAX_PRICE_CENTS = 999_999_999

# Stock and quantities are fractional for weight-based units; three decimals
# (grams for kilogram products) is the storage precision in both backends.
QUANTITY_PLACES = 3

PRODUCT_UNITS = ("unit", "kilogram", "pound")
MOVEMENT_TYPES = ("inbound", "outbound")

DEFAULT_MOVEMENT_REASON = "inventory adjustment"

NAME_MAX_LENGTH = 255
CATEGORY_MAX_LENGTH = 120
REASON_MAX_LENGTH = 255


class VendixError(Exception):
    """Base class for every error raised by the persistence core."""


class ValidationError(VendixError, ValueError):
    """400-level input problem."""


class EmptyCartError(ValidationError):
    """A sale was submitted without line items."""


class NotFoundError(VendixError, LookupError):
    """The referenced row does not exist."""


class InsufficientStockError(VendixError):
    """A guarded stock decrement affected zero rows."""

    def __init__(self, product_id: int, requested: float | None = None):
        super().__init__(f"insufficient stock for product #{product_id}")
        self.product_id = product_id
        self.requested = requested


class ReferentialConflict(VendixError):
    """409-level conflict: a delete is blocked by dependent rows."""


class BackendUnavailableError(VendixError):
    """Schema/connection initialization failed."""


class TransactionAbortedError(VendixError):
    """Unexpected failure inside a transaction scope (rolled back)."""


# ---------------------------------------------------------------------------
# Scalar coercion
# ---------------------------------------------------------------------------

def _to_decimal(value: Any, key: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be a number")
    if isinstance(value, (int, Decimal)):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be a number")
        try:
            result = Decimal(stripped)
        except InvalidOperation:
            raise ValidationError(f"{key} must be a number")
        if not result.is_finite():
            raise ValidationError(f"{key} must be a finite number")
        return result
    raise ValidationError(f"{key} must be a number")


def to_cents(value: Any, key: str = "amount") -> int:
    """Convert a money amount (2.5, "2.50", Decimal) to integer cents, half-up."""
    amount = _to_decimal(value, key)
    if not amount.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    cents = int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if cents < 0:
        raise ValidationError(f"{key} must be >= 0")
    if cents > MAX_PRICE_CENTS:
        raise ValidationError(f"{key} cannot exceed {MAX_PRICE_CENTS / 100:,.2f}")
    return cents


def cents_to_amount(cents: int | None) -> float:
    return round((cents or 0) / 100, 2)


def normalize_quantity(value: Any, key: str = "quantity", *, allow_zero: bool = False) -> float:
    qty = _to_decimal(value, key)
    if not qty.is_finite():
        raise ValidationError(f"{key} must be a finite number")
    qty = qty.quantize(Decimal(1).scaleb(-QUANTITY_PLACES), rounding=ROUND_HALF_UP)
    if qty < 0 or (qty == 0 and not allow_zero):
        raise ValidationError(f"{key} must be > 0" if not allow_zero else f"{key} must be >= 0")
    return float(qty)


def round_quantity(value: float) -> float:
    return round(value, QUANTITY_PLACES)


def line_subtotal_cents(quantity: float, unit_price_cents: int) -> int:
    """quantity x unit price, rounded half-up to the cent."""
    amount = Decimal(str(quantity)) * unit_price_cents
    return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def _coerce_text(value: Any, key: str, max_length: int) -> str:
    if not isinstance(value, (str, int, float)) or isinstance(value, bool):
        raise ValidationError(f"{key} must be a string")
    text = str(value).strip()
    if len(text) > max_length:
        raise ValidationError(f"{key} exceeds max length {max_length}")
    return text


def coerce_product_id(value: Any, key: str = "product_id") -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    raise ValidationError(f"{key} must be an integer")


def normalize_category(value: Any) -> str | None:
    """Blank categories are stored as NULL."""
    if value is None:
        return None
    text = _coerce_text(value, "category", CATEGORY_MAX_LENGTH)
    return text or None


def normalize_movement_type(value: Any) -> str:
    if not isinstance(value, str) or value.strip().lower() not in MOVEMENT_TYPES:
        raise ValidationError(f"type must be one of: {', '.join(MOVEMENT_TYPES)}")
    return value.strip().lower()


def normalize_reason(value: Any) -> str:
    if value is None:
        return DEFAULT_MOVEMENT_REASON
    text = _coerce_text(value, "reason", REASON_MAX_LENGTH)
    return text or DEFAULT_MOVEMENT_REASON


# ---------------------------------------------------------------------------
# Payload policies
# ---------------------------------------------------------------------------

def _coerce_name(value: Any) -> str:
    name = _coerce_text(value, "name", NAME_MAX_LENGTH)
    if not name:
        raise ValidationError("name cannot be blank")
    return name


def _coerce_unit(value: Any) -> str:
    if not isinstance(value, str) or value.strip().lower() not in PRODUCT_UNITS:
        raise ValidationError(f"unit must be one of: {', '.join(PRODUCT_UNITS)}")
    return value.strip().lower()


@dataclass(frozen=True)
class FieldRule:
    """How one payload key is coerced and under which storage key it lands."""
    coerce: Callable[[Any], Any]
    storage_key: str
    nullable: bool = False


PRODUCT_FIELDS: dict[str, FieldRule] = {
    "name": FieldRule(_coerce_name, "name"),
    "category": FieldRule(normalize_category, "category", nullable=True),
    "cost_price": FieldRule(lambda v: to_cents(v, "cost_price"), "cost_price_cents"),
    "sale_price": FieldRule(lambda v: to_cents(v, "sale_price"), "sale_price_cents"),
    "unit": FieldRule(_coerce_unit, "unit"),
    "stock": FieldRule(lambda v: normalize_quantity(v, "stock", allow_zero=True), "stock"),
}


@dataclass(frozen=True)
class PayloadPolicy:
    """
    Central policy layer:
    - writable_fields: what callers are allowed to set
    - required_on_create: fields required when partial=False
    - forbidden: fields rejected with a dedicated message
    """
    writable_fields: set[str]
    required_on_create: set[str] = field(default_factory=set)
    forbidden: dict[str, str] = field(default_factory=dict)


PRODUCT_CREATE_POLICY = PayloadPolicy(
    writable_fields={"name", "category", "cost_price", "sale_price", "unit", "stock"},
    required_on_create={"name", "cost_price", "sale_price"},
)

PRODUCT_UPDATE_POLICY = PayloadPolicy(
    writable_fields={"name", "category", "cost_price", "sale_price", "unit"},
    forbidden={"stock": "stock cannot be edited directly; record an inventory movement"},
)


def validate_payload(
    payload: Any,
    *,
    policy: PayloadPolicy,
    fields: dict[str, FieldRule] = PRODUCT_FIELDS,
    partial: bool,
) -> dict:
    """
    Validates + normalizes an incoming mapping.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)

    Returns a patch keyed by storage column names.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) is None)
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    for k in payload.keys():
        if k in policy.forbidden:
            raise ValidationError(policy.forbidden[k])
        if k not in policy.writable_fields or k not in fields:
            raise ValidationError(f"Field not allowed: {k}")

    patch: dict = {}
    for k, raw in payload.items():
        rule = fields[k]
        if raw is None:
            if not rule.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[rule.storage_key] = None
            continue
        patch[rule.storage_key] = rule.coerce(raw)

    return patch


def normalize_limit(value: Any, key: str = "limit") -> int:
    if isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer")
    try:
        limit = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{key} must be an integer") from None
    if limit < 1:
        raise ValidationError(f"{key} must be >= 1")
    return limit
