import pytest

from app.infra.rate_limit import allow


@pytest.mark.asyncio
async def test_rate_limit_allows_within_budget():
    assert await allow("chat_send", "u5", limit=2, window_seconds=60)
    assert await allow("chat_send", "u5", limit=2, window_seconds=60)


@pytest.mark.asyncio
async def test_rate_limit_blocks_when_budget_exhausted():
    await allow("queue_create", "u6", limit=1, window_seconds=60)
    assert not await allow("queue_create", "u6", limit=1, window_seconds=60)


@pytest.mark.asyncio
async def test_rate_limit_resets_in_next_window():
    assert await allow("chat_send", "u7", limit=1, window_seconds=60, now=120.0)
    assert not await allow("chat_send", "u7", limit=1, window_seconds=60, now=150.0)
    assert await allow("chat_send", "u7", limit=1, window_seconds=60, now=181.0)


@pytest.mark.asyncio
async def test_rate_limit_zero_budget_denies():
    assert not await allow("chat_send", "u8", limit=0)
