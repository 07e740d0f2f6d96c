"""
Money helpers: step rounding and display formatting.

Amounts are persisted in KRW in steps of 10. The entry form rounds
free-typed input on blur, on arrow-key stepping and once more right
before submission, so every path into the store goes through
`round_to_step`.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Optional, Union

from ledger.models.transaction import AMOUNT_STEP, Currency

FALLBACK_USD_KRW_RATE = 1300.0

Number = Union[int, float, str, Decimal]

_CENT = Decimal("0.01")


def to_decimal(value: Number) -> Decimal:
    """Convert user or store input to Decimal, going through str for floats."""
    if isinstance(value, Decimal):
        return value
    try:
        return Decimal(str(value).strip())
    except (InvalidOperation, ValueError) as e:
        raise ValueError(f"Not a number: {value!r}") from e


def _step_precision(amount: Decimal) -> int:
    """Digits needed to hold `amount` and its step neighbours exactly."""
    if not amount.is_finite():
        return 28
    _, digits, exponent = amount.as_tuple()
    return max(28, len(digits) + max(exponent, 0) + 2)


def round_to_step(value: Number) -> Decimal:
    """
    Round to the nearest multiple of 10, halves away from zero.

    >>> round_to_step(123)
    Decimal('120')
    >>> round_to_step(125)
    Decimal('130')
    """
    amount = to_decimal(value)
    with localcontext() as ctx:
        ctx.prec = _step_precision(amount)
        steps = (amount / AMOUNT_STEP).quantize(Decimal("1"), rounding=ROUND_HALF_UP)
        return steps * AMOUNT_STEP


def _parse_input(raw: str) -> Optional[Decimal]:
    if raw is None or not str(raw).strip():
        return None
    try:
        parsed = to_decimal(raw)
    except ValueError:
        return None
    if not parsed.is_finite():
        return None
    return parsed


def _as_input_text(value: Decimal) -> str:
    return str(int(value))


def normalize_amount_input(raw: str) -> str:
    """
    Blur handler for the amount field.

    Blank or non-numeric text is left alone so the user can keep editing.
    """
    parsed = _parse_input(raw)
    if parsed is None:
        return raw
    return _as_input_text(round_to_step(parsed))


def step_amount_input(raw: str, direction: int) -> str:
    """
    Arrow-key handler: +10 for up (direction > 0), -10 for down, never below 0.
    """
    current = _parse_input(raw) or Decimal("0")
    step = AMOUNT_STEP if direction > 0 else -AMOUNT_STEP
    with localcontext() as ctx:
        ctx.prec = _step_precision(current)
        stepped = max(Decimal("0"), current + step)
    return _as_input_text(round_to_step(stepped))


def format_currency(
    base_amount: Number,
    display_currency: Currency,
    rate: Optional[float] = None,
) -> str:
    """
    Render a base-currency (KRW) amount in the selected display currency.

    USD divides by `rate`; a missing or non-positive rate falls back to
    FALLBACK_USD_KRW_RATE. The converted value is only rounded to cents
    for display.
    """
    amount = to_decimal(base_amount)

    if Currency(display_currency) == Currency.USD:
        effective_rate = rate if rate and rate > 0 else FALLBACK_USD_KRW_RATE
        usd = (amount / to_decimal(effective_rate)).quantize(_CENT, rounding=ROUND_HALF_UP)
        return f"${usd:,.2f}"

    if amount == amount.to_integral_value():
        return f"₩{amount:,.0f}"
    return f"₩{amount.normalize():,f}"
