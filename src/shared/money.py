"""Money arithmetic on Decimal.

Amounts are persisted as floats and converted through ``str`` on the way in,
so ``180.1`` becomes ``Decimal("180.10")`` rather than its binary expansion.
"""

from decimal import ROUND_HALF_UP, Decimal

CENT = Decimal("0.01")


def as_decimal(amount):
    if amount is None:
        return None
    if isinstance(amount, Decimal):
        return amount
    return Decimal(str(amount))


def round_money(amount):
    if amount is None:
        return None
    return as_decimal(amount).quantize(CENT, rounding=ROUND_HALF_UP)
