from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional, Union

Price = Optional[Union[int, float, str]]


def _as_decimal(price: Price) -> Optional[Decimal]:
    if isinstance(price, bool):
        return None
    try:
        return Decimal(str(price).strip())
    except (InvalidOperation, ValueError):
        return None


def is_free(price: Price) -> bool:
    """Absent, zero, or the literal "free" (any case)"""
    if price is None:
        return True
    if isinstance(price, str):
        text = price.strip()
        if not text or text.lower() == "free":
            return True
    value = _as_decimal(price)
    return value is not None and value.is_finite() and value == 0


def price_to_paise(price: Price) -> int:
    """
    Convert a rupee price to paise, rounding halves up.
    Raises ValueError unless the price is a positive number.
    """
    value = _as_decimal(price)
    if value is None or not value.is_finite() or value <= 0:
        raise ValueError(f"Invalid price: {price!r}")
    paise = int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))
    if paise <= 0:
        raise ValueError(f"Invalid price: {price!r}")
    return paise
