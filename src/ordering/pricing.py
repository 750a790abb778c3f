"""Money arithmetic shared by cart summaries and order placement."""

from dataclasses import dataclass
from decimal import Decimal

from shared.money import as_decimal, round_money


@dataclass(frozen=True)
class Totals:
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def compute_totals(subtotal, tax_rate):
    """``tax = subtotal × tax_rate`` rounded to cents half-up; ``total = subtotal + tax``."""
    subtotal = round_money(subtotal)
    tax = round_money(subtotal * as_decimal(tax_rate))
    return Totals(subtotal=subtotal, tax=tax, total=subtotal + tax)
