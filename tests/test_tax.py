"""
PPN Calculation Tests
=====================

Exclusive (tax on top) and inclusive (tax backed out of a total) conventions,
half-up rounding to whole rupiah and rate precedence.
"""
from decimal import Decimal

import pytest

from cargo.services import tax


class TestExclusive:
    def test_reference_example(self) -> None:
        breakdown = tax.exclusive(100000, True, 0.11)
        assert (breakdown.subtotal, breakdown.tax, breakdown.total) == (100000, 11000, 111000)

    def test_not_taxable(self) -> None:
        breakdown = tax.exclusive(500000, False, 0.11)
        assert breakdown.tax == 0
        assert breakdown.total == 500000

    def test_rounds_half_up(self) -> None:
        # 150 * 0.11 = 16.5
        assert tax.exclusive(150, True, 0.11).tax == 17

    def test_fractional_weight_subtotal(self) -> None:
        subtotal = tax.regular_subtotal(12500, 2.5)
        assert subtotal == Decimal("31250.0")
        assert tax.exclusive(subtotal, True, 0.11).total == 31250 + 3438


class TestInclusive:
    def test_reference_example(self) -> None:
        breakdown = tax.inclusive(111000, True, 0.11)
        assert breakdown.tax == 11000
        assert breakdown.subtotal == 100000
        assert breakdown.total == 111000

    def test_not_taxable(self) -> None:
        assert tax.inclusive(111000, False, 0.11).tax == 0

    def test_zero_total(self) -> None:
        assert tax.inclusive(0, True, 0.11).tax == 0

    @pytest.mark.parametrize("subtotal", [1, 999, 50000, 123457, 555555, 9876543])
    @pytest.mark.parametrize("rate", [0.01, 0.1, 0.11, 0.12])
    def test_round_trip_within_one_rupiah(self, subtotal, rate) -> None:
        """Backing tax out of an exclusive total recovers the subtotal within 1."""
        forward = tax.exclusive(subtotal, True, rate)
        back = tax.inclusive(forward.total, True, rate)
        assert abs(back.subtotal - subtotal) <= 1
        assert abs(back.tax - forward.tax) <= 1


class TestResolveRate:
    def test_explicit_rate_wins(self) -> None:
        assert tax.resolve_rate(0.12, 0.11, 0.1) == 0.12

    def test_explicit_zero_is_respected(self) -> None:
        assert tax.resolve_rate(0.0, 0.11, 0.1) == 0.0

    def test_record_rate_before_default(self) -> None:
        assert tax.resolve_rate(None, 0.11, 0.12) == 0.11

    def test_default_when_record_has_no_rate(self) -> None:
        assert tax.resolve_rate(None, 0, 0.12) == 0.12
        assert tax.resolve_rate(None, None, 0.12) == 0.12
