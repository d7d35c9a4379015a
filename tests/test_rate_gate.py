"""
Unit tests for the rate gate.

Tests cover:
- Minimum spacing between calls
- Escalation past the busy and burst thresholds
- Window reset after a minute
"""

import pytest

from fullcontext_mcp.config import EngineConfig
from fullcontext_mcp.rate_gate import RateGate


def make_gate(clock, min_delay: float = 0.0) -> RateGate:
    config = EngineConfig(rate_min_delay_seconds=min_delay, count_tokens=False)
    return RateGate(config, clock=clock, sleep=clock.sleep)


class TestRateGate:
    """Tests for RateGate.wait()."""

    @pytest.mark.asyncio
    async def test_first_call_is_free(self, clock):
        gate = make_gate(clock, min_delay=1.0)

        assert await gate.wait() == 0.0
        assert clock.sleeps == []

    @pytest.mark.asyncio
    async def test_minimum_spacing_enforced(self, clock):
        """A call 0.25s after the previous one waits the remaining 0.75s."""
        gate = make_gate(clock, min_delay=1.0)
        await gate.wait()

        clock.advance(0.25)
        delay = await gate.wait()

        assert delay == pytest.approx(0.75)

    @pytest.mark.asyncio
    async def test_busy_then_burst_escalation(self, clock):
        """Calls 6-10 wait at least 1.5s; the 11th waits at least 2s."""
        gate = make_gate(clock)

        delays = [await gate.wait() for _ in range(11)]

        assert delays[:5] == [0.0] * 5
        assert delays[5:10] == [1.5] * 5
        assert delays[10] >= 2.0

    @pytest.mark.asyncio
    async def test_window_resets_after_a_minute(self, clock):
        gate = make_gate(clock)
        for _ in range(11):
            await gate.wait()

        clock.advance(61)
        delay = await gate.wait()

        assert delay == 0.0
        assert gate.state.request_count == 1

    @pytest.mark.asyncio
    async def test_stats(self, clock):
        gate = make_gate(clock)
        for _ in range(6):
            await gate.wait()

        stats = gate.get_stats()

        assert stats["total_requests"] == 6
        assert stats["requests_in_window"] == 6
        assert stats["total_delay_seconds"] == 1.5
