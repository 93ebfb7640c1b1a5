"""
Value parsing at the kernel boundary.

Identifiers arrive as strings from request bodies and amounts arrive as
whatever the JSON decoder produced.  Both are normalized here, once, so the
rest of the kernel only ever sees ``UUID`` and two-place ``Decimal``.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from uuid import UUID

from savings_kernel.exceptions import InvalidAmountError, InvalidIdentifierError

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def parse_uuid(field: str, value: object) -> UUID:
    """Parse an identifier, raising InvalidIdentifierError when malformed."""
    if isinstance(value, UUID):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidIdentifierError(field, value)
    try:
        return UUID(value.strip())
    except ValueError:
        raise InvalidIdentifierError(field, value) from None


def parse_amount(value: object) -> Decimal:
    """
    Parse a deposit amount.

    Accepts int, Decimal, numeric strings and floats (via their repr, so
    ``0.1`` becomes ``Decimal("0.1")``).  Booleans, NaN, infinities,
    non-positive values and sub-cent precision are rejected.
    """
    if value is None or isinstance(value, bool):
        raise InvalidAmountError(value)
    try:
        if isinstance(value, float):
            amount = Decimal(repr(value))
        else:
            amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        raise InvalidAmountError(value, "Amount must be a number") from None

    if not amount.is_finite():
        raise InvalidAmountError(value, "Amount must be a number")
    if amount <= 0:
        raise InvalidAmountError(value)
    if amount != amount.quantize(CENT, rounding=ROUND_HALF_UP):
        raise InvalidAmountError(value, "Amount cannot have more than two decimal places")
    return amount.quantize(CENT)


def money(value: Decimal | int | str | None) -> Decimal:
    """Normalize a stored money value (None -> 0.00) to two places."""
    if value is None:
        return ZERO
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)
