import pytest

from campusjam.infra.rate_limit import allow


@pytest.mark.asyncio
async def test_rate_limit_allows_within_budget():
    assert await allow("follow", "u5", limit=2, window_seconds=60)
    assert await allow("follow", "u5", limit=2, window_seconds=60)


@pytest.mark.asyncio
async def test_rate_limit_blocks_when_budget_exhausted():
    await allow("block", "u6", limit=1, window_seconds=60)
    assert not await allow("block", "u6", limit=1, window_seconds=60)


@pytest.mark.asyncio
async def test_rate_limit_windows_are_independent():
    assert await allow("follow", "u7", limit=1, window_seconds=60, now=1_000.0)
    assert not await allow("follow", "u7", limit=1, window_seconds=60, now=1_010.0)
    assert await allow("follow", "u7", limit=1, window_seconds=60, now=1_080.0)
