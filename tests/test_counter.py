"""
Sequence Counter Tests
======================

- Concurrent issues never share a number and leave no gaps
- Legacy floors are respected on fresh counters
- Previews never move the counter
- Resets, formatting per family, degraded fallback ids
"""
import asyncio
import logging
from datetime import datetime

import pytest

from cargo.core.db import build_engine, build_session_factory
from cargo.core.errors import ConcurrencyConflict, ValidationFailure
from cargo.models.counter import SequenceCounter
from cargo.services import counter as counter_module
from cargo.services.counter import (
    BILLING_INVOICE,
    EMPLOYEE,
    INVOICE,
    PKP_KEY,
    STT,
    VOYAGE,
    SequenceCounterService,
    billing_key,
    resolve_counter,
)


async def stored_number(session_factory, family: str, key: str = "global"):
    async with session_factory() as session:
        row = await session.get(SequenceCounter, (family, key))
        return None if row is None else row.current_number


class TestFormatting:
    """Formatted identifiers per counter family."""

    @pytest.mark.parametrize(
        "family,key,number,expected",
        [
            (STT, "global", 17642, "STT017642"),
            (INVOICE, "global", 12366, "INV012366"),
            (INVOICE, PKP_KEY, 5177, "INV-PKP05177"),
            (VOYAGE, "global", 1, "VOY001"),
            (EMPLOYEE, "global", 1, "EMP-001"),
            (BILLING_INVOICE, "global_202610", 7, "INV/2026/10/0007"),
        ],
    )
    def test_format(self, family, key, number, expected) -> None:
        assert resolve_counter(family, key).format(number) == expected

    def test_width_overflow_is_not_truncated(self) -> None:
        assert resolve_counter(VOYAGE).format(1234) == "VOY1234"

    def test_billing_key_is_per_month(self) -> None:
        assert billing_key(datetime(2026, 3, 31)) == "global_202603"

    def test_unknown_counter_rejected(self) -> None:
        with pytest.raises(ValidationFailure):
            resolve_counter("parcel")
        with pytest.raises(ValidationFailure):
            resolve_counter(BILLING_INVOICE, "global")


class TestIssueNext:
    """Atomic issuance."""

    @pytest.mark.asyncio
    async def test_fresh_counter_starts_above_floor(self, counters) -> None:
        """A fresh counter issues floor + 1, never 1."""
        assert await counters.issue_next(STT) == "STT017642"
        assert await counters.issue_next(INVOICE) == "INV012366"
        assert await counters.issue_next(INVOICE, PKP_KEY) == "INV-PKP05177"
        assert await counters.issue_next(VOYAGE) == "VOY001"
        assert await counters.issue_next(EMPLOYEE) == "EMP-001"

    @pytest.mark.asyncio
    async def test_sequential_issues_increment(self, counters, session_factory) -> None:
        issued = [await counters.issue_stt() for _ in range(3)]
        assert issued == ["STT017642", "STT017643", "STT017644"]
        assert await stored_number(session_factory, STT) == 17644

    @pytest.mark.asyncio
    async def test_stored_value_below_floor_jumps_to_floor(self, counters) -> None:
        await counters.reset_to(STT, "global", 5)
        assert await counters.issue_stt() == "STT017642"

    @pytest.mark.asyncio
    async def test_regular_and_pkp_invoice_keys_are_independent(self, counters) -> None:
        assert await counters.issue_invoice(is_pkp=False) == "INV012366"
        assert await counters.issue_invoice(is_pkp=True) == "INV-PKP05177"
        assert await counters.issue_invoice(is_pkp=False) == "INV012367"

    @pytest.mark.asyncio
    async def test_billing_counter_restarts_each_month(self, counters) -> None:
        assert await counters.issue_billing_invoice(datetime(2026, 10, 2)) == "INV/2026/10/0001"
        assert await counters.issue_billing_invoice(datetime(2026, 10, 20)) == "INV/2026/10/0002"
        assert await counters.issue_billing_invoice(datetime(2026, 11, 1)) == "INV/2026/11/0001"

    @pytest.mark.asyncio
    async def test_concurrent_issues_are_unique_and_gapless(self, counters, session_factory) -> None:
        """N concurrent issues return exactly floor+1 .. floor+N."""
        n = 20
        issued = await asyncio.gather(*(counters.issue_stt() for _ in range(n)))

        expected = {f"STT{number:06d}" for number in range(17642, 17642 + n)}
        assert len(set(issued)) == n
        assert set(issued) == expected
        assert await stored_number(session_factory, STT) == 17641 + n

    @pytest.mark.asyncio
    async def test_concurrent_issues_on_existing_row(self, counters) -> None:
        await counters.reset_to(VOYAGE, "global", 10)
        issued = await asyncio.gather(*(counters.issue_voyage() for _ in range(8)))
        assert sorted(issued) == [f"VOY{number:03d}" for number in range(11, 19)]


class TestPeekNext:
    """Previews are read-only."""

    @pytest.mark.asyncio
    async def test_peek_on_empty_counter(self, counters, session_factory) -> None:
        assert await counters.peek_next(STT) == "STT017642"
        assert await stored_number(session_factory, STT) is None

    @pytest.mark.asyncio
    async def test_peek_is_stable_and_non_mutating(self, counters, session_factory) -> None:
        await counters.issue_stt()
        previews = [await counters.peek_next(STT) for _ in range(5)]
        assert previews == ["STT017643"] * 5
        assert await stored_number(session_factory, STT) == 17642

    @pytest.mark.asyncio
    async def test_peek_then_issue_then_peek(self, counters) -> None:
        """Empty counter previews STT017642; after one issue it previews STT017643."""
        assert await counters.peek_next(STT) == "STT017642"
        await counters.issue_stt()
        assert await counters.peek_next(STT) == "STT017643"


class TestResetTo:
    """Administrative overrides."""

    @pytest.mark.asyncio
    async def test_reset_sets_next_issue(self, counters) -> None:
        result = await counters.reset_to(STT, "global", 17667)
        assert result.next_number == "STT017668"
        assert await counters.issue_stt() == "STT017668"

    @pytest.mark.asyncio
    async def test_reset_can_move_backwards(self, counters, session_factory) -> None:
        await counters.reset_to(VOYAGE, "global", 40)
        await counters.reset_to(VOYAGE, "global", 3)
        assert await stored_number(session_factory, VOYAGE) == 3
        assert await counters.issue_voyage() == "VOY004"

    @pytest.mark.asyncio
    async def test_reset_rejects_negative(self, counters) -> None:
        with pytest.raises(ValidationFailure):
            await counters.reset_to(STT, "global", -1)

    @pytest.mark.asyncio
    async def test_reset_is_logged(self, counters, caplog) -> None:
        with caplog.at_level(logging.INFO, logger="cargo.services.counter"):
            await counters.reset_to(EMPLOYEE, "global", 9)
        assert "EMP-010" in caplog.text

    @pytest.mark.asyncio
    async def test_snapshot_lists_stored_counters(self, counters) -> None:
        await counters.issue_stt()
        await counters.issue_invoice(is_pkp=True)
        states = {(s.family, s.key): s for s in await counters.snapshot()}
        assert states[(STT, "global")].next_number == "STT017643"
        assert states[(INVOICE, PKP_KEY)].current_number == 5177
        assert states[(INVOICE, PKP_KEY)].next_number == "INV-PKP05178"


class TestDegradedFallback:
    """Timestamp ids when the counter cannot be advanced."""

    @pytest.mark.asyncio
    async def test_database_error_falls_back(self, tmp_path, monkeypatch, caplog) -> None:
        # No tables were created in this database
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'empty.db'}")
        service = SequenceCounterService(build_session_factory(engine), max_retries=3)
        monkeypatch.setattr(counter_module.time, "time", lambda: 1700000123.5)
        try:
            with caplog.at_level(logging.WARNING, logger="cargo.services.counter"):
                issued = await service.issue_stt()
                preview = await service.peek_next(STT)
        finally:
            await engine.dispose()

        assert issued == "STT123500"
        assert preview == "STT123500"
        assert "degraded" in caplog.text

    @pytest.mark.asyncio
    async def test_exhausted_retries_fall_back(self, session_factory, monkeypatch, caplog) -> None:
        service = SequenceCounterService(session_factory, max_retries=3)
        attempts = []

        async def always_conflicts(definition):
            attempts.append(definition.key)
            raise ConcurrencyConflict("lost race")

        monkeypatch.setattr(service, "_try_increment", always_conflicts)
        monkeypatch.setattr(counter_module.time, "time", lambda: 1700000987.25)

        with caplog.at_level(logging.WARNING, logger="cargo.services.counter"):
            issued = await service.issue_next(INVOICE, PKP_KEY)

        assert issued == "INV-PKP987250"
        assert len(attempts) == 3
        assert "exhausted" in caplog.text
