"""
Tests for the cancellation token.
"""

import asyncio
import time

import pytest

from kbsync.utils.cancellation import CancellationToken, is_cancelled


def test_token_starts_uncancelled():
    token = CancellationToken()
    assert not token.cancelled
    assert token.remaining is None


def test_cancel_marks_token():
    token = CancellationToken()
    token.cancel()
    assert token.cancelled
    assert is_cancelled(token)


def test_none_token_is_never_cancelled():
    assert not is_cancelled(None)


def test_deadline_expires():
    token = CancellationToken(timeout=0)
    assert token.cancelled
    assert token.remaining == 0.0


@pytest.mark.asyncio
async def test_sleep_returns_false_when_not_cancelled():
    token = CancellationToken()
    assert await token.sleep(0.01) is False


@pytest.mark.asyncio
async def test_sleep_wakes_early_on_cancel():
    token = CancellationToken()

    async def cancel_soon():
        await asyncio.sleep(0.01)
        token.cancel()

    started = time.monotonic()
    canceller = asyncio.create_task(cancel_soon())
    assert await token.sleep(5) is True
    await canceller
    assert time.monotonic() - started < 1
