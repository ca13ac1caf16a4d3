"""Money helpers shared by the pricing services.

Every numeric field that reaches the engine passes through ``to_amount``:
strings from form inputs, ``None`` from unset columns, ``Decimal`` values from
the database driver.  Anything unparseable degrades to 0.0 instead of raising.
"""
import logging
import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation, localcontext
from typing import Any, Optional

logger = logging.getLogger("contract-pricing.money")


def is_present(value: Any) -> bool:
    """True when a nullable form field actually carries a value."""
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


def to_amount(value: Any, default: float = 0.0) -> float:
    """Coerce an arbitrary input to a finite float, falling back to ``default``."""
    if not is_present(value):
        return default
    if isinstance(value, bool):
        return default
    try:
        if isinstance(value, str):
            amount = float(Decimal(value.strip().replace(",", "").replace("$", "")))
        else:
            amount = float(value)
    except (TypeError, ValueError, InvalidOperation):
        logger.debug(f"Non-numeric amount {value!r} coerced to {default}")
        return default
    if math.isnan(amount) or math.isinf(amount):
        logger.debug(f"Non-finite amount {value!r} coerced to {default}")
        return default
    return amount


def to_optional_amount(value: Any) -> Optional[float]:
    """Like ``to_amount`` but keeps "unset" distinguishable from zero."""
    if not is_present(value):
        return None
    return to_amount(value)


def non_negative(value: Any) -> float:
    return max(0.0, to_amount(value))


def round_money(amount: float) -> float:
    if not math.isfinite(amount):
        return amount
    # Half-up on the decimal representation so 0.125 -> 0.13 like a cash register.
    # Precision covers every finite float (max ~1.8e308) plus two decimals.
    with localcontext() as ctx:
        ctx.prec = 400
        return float(Decimal(str(amount)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def format_currency(value: Any) -> str:
    """'$1,234.50' style label used on payment schedules; invalid input shows $0.00."""
    amount = to_amount(value)
    sign = "-" if amount < 0 else ""
    return f"{sign}${abs(round_money(amount)):,.2f}"
