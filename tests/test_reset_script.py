"""Command-line counter reset."""
import pytest

from scripts import reset_counter as script


class TestResetCounter:
    @pytest.mark.asyncio
    async def test_reset_returns_next_number(self, session_factory, counters) -> None:
        assert await script.reset_counter("stt", 17667, session_factory=session_factory) == "STT017668"
        assert await counters.issue_stt() == "STT017668"

    @pytest.mark.asyncio
    async def test_pkp_alias(self, session_factory) -> None:
        assert await script.reset_counter("invoice-pkp", 5200, session_factory=session_factory) == "INV-PKP05201"

    @pytest.mark.asyncio
    async def test_billing_with_key(self, session_factory) -> None:
        next_number = await script.reset_counter("billing", 3, key="global_202610", session_factory=session_factory)
        assert next_number == "INV/2026/10/0004"


class TestMain:
    def test_billing_requires_key(self, capsys) -> None:
        assert script.main(["billing", "3"]) == 1
        assert "needs --key" in capsys.readouterr().err

    def test_unknown_alias_exits(self) -> None:
        with pytest.raises(SystemExit):
            script.main(["parcel", "1"])
