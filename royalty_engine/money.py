"""
Decimal Arithmetic Kernel

Money is always Decimal, rounded to cents with ROUND_HALF_UP.
Rates carry up to 4 decimal places before being applied.
"""

from decimal import (
    ROUND_FLOOR,
    ROUND_HALF_UP,
    Context,
    Decimal,
    InvalidOperation,
    Overflow,
    localcontext,
)

from .errors import ConfigurationError, InputError

MONEY_PLACES = Decimal("0.01")
RATE_PLACES = Decimal("0.0001")
ZERO = Decimal("0")
HUNDRED = Decimal("100")

# Arithmetic context: plenty of precision, overflow and invalid ops raise
ARITHMETIC_CONTEXT = Context(prec=34, rounding=ROUND_HALF_UP, traps=[InvalidOperation, Overflow])


def to_decimal(value, field: str = "value") -> Decimal:
    """Parse a JSON-ish number into Decimal (floats go through str())."""
    if isinstance(value, bool) or value is None:
        raise InputError(f"{field} must be a number, got: {value!r}", field=field, value=value)
    try:
        result = value if isinstance(value, Decimal) else Decimal(str(value))
    except InvalidOperation:
        raise InputError(f"{field} is not a valid number: {value!r}", field=field, value=value)
    if not result.is_finite():
        raise InputError(f"{field} must be finite, got: {value!r}", field=field, value=value)
    return result


def quantize_money(value: Decimal) -> Decimal:
    """Round to 2 decimal places using ROUND_HALF_UP."""
    return _guarded(lambda: value.quantize(MONEY_PLACES, rounding=ROUND_HALF_UP))


def quantize_rate(value: Decimal) -> Decimal:
    """Round a rate to 4 decimal places using ROUND_HALF_UP."""
    return _guarded(lambda: value.quantize(RATE_PLACES, rounding=ROUND_HALF_UP))


def add_money(*values: Decimal) -> Decimal:
    return _guarded(lambda: quantize_money(sum(values, ZERO)))


def subtract_money(minuend: Decimal, subtrahend: Decimal) -> Decimal:
    return _guarded(lambda: quantize_money(minuend - subtrahend))


def apply_rate(amount: Decimal, rate: Decimal) -> Decimal:
    """Multiply an amount by a rate and round the product to currency."""
    return _guarded(lambda: quantize_money(amount * rate))


def prorate(amount: Decimal, part, whole) -> Decimal:
    """The share of amount that part/whole represents, unrounded."""
    return _guarded(lambda: amount * Decimal(part) / Decimal(whole))


def require_non_negative(value: Decimal, field: str, contract_id=None) -> Decimal:
    if value < 0:
        raise ConfigurationError(
            f"{field} cannot be negative, got: {value}",
            contract_id=contract_id,
            field=field,
            value=value,
        )
    return value


def to_cents(value: Decimal) -> int:
    return int(quantize_money(value) * 100)


def from_cents(cents: int) -> Decimal:
    return quantize_money(Decimal(cents) / 100)


def floor_integer(value: Decimal) -> int:
    return int(value.to_integral_value(rounding=ROUND_FLOOR))


def format_money(value: Decimal) -> str:
    """Serialize money as a fixed two-place string ("1234.50")."""
    return str(quantize_money(value))


def format_rate(value: Decimal) -> str:
    return str(quantize_rate(value))


def _guarded(operation):
    with localcontext(ARITHMETIC_CONTEXT):
        try:
            return operation()
        except Overflow as e:
            raise ConfigurationError(f"Arithmetic overflow: {e}")
        except InvalidOperation as e:
            raise ConfigurationError(f"Invalid decimal operation: {e}")
