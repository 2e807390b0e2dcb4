from decimal import Decimal, InvalidOperation

from splitledger.errors import InvalidAmount

CENT = Decimal('0.01')
ZERO = Decimal('0.00')
# Numeric(12, 2) holds ten integer digits
MAX_AMOUNT = Decimal(10) ** 10


def to_money(value):
    """Parse a positive amount with at most two decimals, or raise InvalidAmount."""
    if value is None or isinstance(value, bool):
        raise InvalidAmount()
    try:
        amount = Decimal(str(value).strip())
        if not amount.is_finite() or amount <= 0 or amount >= MAX_AMOUNT:
            raise InvalidAmount()
        quantized = amount.quantize(CENT)
    except (InvalidOperation, ValueError):
        raise InvalidAmount()
    if amount != quantized:
        raise InvalidAmount()
    return quantized


def format_money(value):
    if value is None:
        return None
    return str(Decimal(value).quantize(CENT))
