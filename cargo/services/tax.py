"""PPN (value-added tax) arithmetic.

Two conventions are supported:

* exclusive: tax is added on top of a subtotal (regular pricing at creation)
* inclusive: tax is backed out of a known total (borongan pricing, edits)

Amounts are whole rupiah. Rounding is half-up so that ``x.5`` always rounds
away from zero for the non-negative amounts handled here.
"""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional, Union

Number = Union[int, float, Decimal]


@dataclass(frozen=True)
class TaxBreakdown:
    subtotal: int
    tax: int
    total: int


def _decimal(value: Number) -> Decimal:
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_currency(value: Number) -> int:
    return int(_decimal(value).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def exclusive(subtotal: Number, is_taxable: bool, rate: float) -> TaxBreakdown:
    base = _decimal(subtotal)
    tax = round_currency(base * _decimal(rate)) if is_taxable else 0
    rounded = round_currency(base)
    return TaxBreakdown(subtotal=rounded, tax=tax, total=rounded + tax)


def inclusive(total: Number, is_taxable: bool, rate: float) -> TaxBreakdown:
    gross = _decimal(total)
    tax = 0
    if is_taxable:
        tax = round_currency(gross - gross / (Decimal(1) + _decimal(rate)))
    rounded = round_currency(gross)
    return TaxBreakdown(subtotal=rounded - tax, tax=tax, total=rounded)


def regular_subtotal(unit_price: Number, weight: Number) -> Decimal:
    """Unit price times weight, kept exact until the final rounding."""
    return _decimal(unit_price) * _decimal(weight)


def resolve_rate(explicit: Optional[float], record_rate: Optional[float], default_rate: float) -> float:
    """Explicit rate wins, then the record's frozen rate, then the configured default."""
    if explicit is not None:
        return explicit
    if record_rate is not None and record_rate > 0:
        return record_rate
    return default_rate
