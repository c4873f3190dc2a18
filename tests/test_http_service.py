"""Tests for HTTP retry helper."""

import httpx
import pytest

from funeral_core.services.http_service import backoff_delay, request_with_retries


def _sequence(*outcomes):
    """request_fn yielding the given responses/exceptions in order, counting calls."""
    req = httpx.Request("GET", "https://erp.test/v1/contracts/1")
    remaining = list(outcomes)
    calls = {"count": 0}

    async def request_fn():
        calls["count"] += 1
        outcome = remaining.pop(0)
        if isinstance(outcome, type) and issubclass(outcome, httpx.RequestError):
            raise outcome("boom", request=req)
        return httpx.Response(outcome, request=req)

    return request_fn, calls


@pytest.mark.asyncio
async def test_retries_on_retryable_status():
    request_fn, calls = _sequence(502, 200)

    response = await request_with_retries(request_fn, max_attempts=3, base_delay=0)

    assert calls["count"] == 2
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_retries_on_transport_error():
    request_fn, calls = _sequence(httpx.ConnectError, 200)

    response = await request_with_retries(request_fn, max_attempts=2, base_delay=0)

    assert calls["count"] == 2
    assert response.status_code == 200


@pytest.mark.asyncio
async def test_client_errors_are_returned_immediately():
    request_fn, calls = _sequence(422, 200)

    response = await request_with_retries(request_fn, max_attempts=3, base_delay=0)

    assert calls["count"] == 1
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_last_retryable_response_is_returned():
    request_fn, calls = _sequence(503, 503)

    response = await request_with_retries(request_fn, max_attempts=2, base_delay=0)

    assert calls["count"] == 2
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_transport_error_raised_after_max_attempts():
    request_fn, calls = _sequence(httpx.ReadTimeout, httpx.ConnectError)

    with pytest.raises(httpx.RequestError):
        await request_with_retries(request_fn, max_attempts=2, base_delay=0)

    assert calls["count"] == 2


@pytest.mark.asyncio
async def test_custom_retry_statuses():
    request_fn, calls = _sequence(409, 200)

    response = await request_with_retries(
        request_fn, max_attempts=2, base_delay=0, retry_statuses={409}
    )

    assert calls["count"] == 2
    assert response.status_code == 200


def test_backoff_delay_is_capped_with_jitter():
    for attempt in range(6):
        delay = backoff_delay(attempt, base_delay=0.5, max_delay=4.0)
        floor = min(4.0, 0.5 * 2**attempt)
        assert floor <= delay <= floor * 1.5

    assert backoff_delay(3, base_delay=0, max_delay=4.0) == 0
