"""Tests for the shared provider transport."""

import asyncio

import httpx
import pytest

from record_ai.common.config import HttpConfig, OpenAIConfig
from record_ai.common.errors import ErrorKind
from record_ai.providers.base import ProviderResult, RetryPolicy, _ErrorDetail, is_permanent_rejection
from record_ai.providers.chat import CHAT_POLICY, ChatClient
from record_ai.providers.image import IMAGE_POLICY
from record_ai.providers.transcription import TRANSCRIPTION_POLICY
from record_ai.tests.mocks import chat_reply, error_reply


class TestRetryPolicies:
    """Fixed per-provider policies."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("policy", "timeout", "backoff", "retry_client_errors"),
        [
            (TRANSCRIPTION_POLICY, 120.0, 0.5, False),
            (CHAT_POLICY, 60.0, 2.0, True),
            (IMAGE_POLICY, 60.0, 1.0, False),
        ],
    )
    def test_policy_values(self, policy, timeout, backoff, retry_client_errors):
        assert policy.timeout_seconds == timeout
        assert policy.max_retries == 2
        assert policy.max_attempts == 3
        assert policy.initial_backoff_seconds == backoff
        assert policy.retry_client_errors is retry_client_errors


class TestPermanentRejection:
    """Body inspection for non-retryable reasons."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        ("detail", "expected"),
        [
            (None, False),
            (_ErrorDetail(code="rate_limit_exceeded", type="requests"), False),
            (_ErrorDetail(code="invalid_api_key"), True),
            (_ErrorDetail(type="insufficient_quota"), True),
            (_ErrorDetail(type="invalid_request_error"), True),
            (_ErrorDetail(message="no code at all"), False),
        ],
    )
    def test_markers(self, detail, expected):
        assert is_permanent_rejection(detail) is expected


class TestProviderResult:
    """Result helpers."""

    @pytest.mark.unit
    def test_success(self):
        result = ProviderResult.success("text")

        assert result.ok
        assert result.value == "text"
        assert result.failure is None


class TestAuthorization:
    """Bearer header."""

    @pytest.mark.asyncio
    @pytest.mark.component
    async def test_key_is_trimmed_in_header(self, stub, sleeps):
        provider = stub(chat_reply("ok"))
        client = ChatClient(
            OpenAIConfig(api_key="  sk-padded-key-123  "), client=provider.client(), sleep=sleeps
        )

        await client.complete("s", "u")

        assert provider.last_request.headers["Authorization"] == "Bearer sk-padded-key-123"


class TestRetryLoop:
    """Behaviour common to every client."""

    @pytest.mark.asyncio
    @pytest.mark.component
    async def test_retry_count_follows_policy(self, openai_config, stub, sleeps):
        provider = stub(error_reply(500))
        policy = RetryPolicy(timeout_seconds=1.0, max_retries=4, initial_backoff_seconds=0.1, max_backoff_seconds=0.5)
        client = ChatClient(openai_config, policy, client=provider.client(), sleep=sleeps)

        result = await client.complete("s", "u")

        assert result.failure.kind is ErrorKind.PERMANENT
        assert provider.calls == 5
        assert sleeps.delays == pytest.approx([0.1, 0.2, 0.4, 0.5])

    @pytest.mark.asyncio
    @pytest.mark.component
    async def test_zero_retries(self, openai_config, stub, sleeps):
        provider = stub(httpx.ConnectError("down"))
        policy = RetryPolicy(timeout_seconds=1.0, max_retries=0, initial_backoff_seconds=1.0)
        client = ChatClient(openai_config, policy, client=provider.client(), sleep=sleeps)

        result = await client.complete("s", "u")

        assert result.failure.kind is ErrorKind.PERMANENT
        assert "1 attempts" in result.failure.detail
        assert provider.calls == 1

    @pytest.mark.asyncio
    @pytest.mark.component
    async def test_slow_response_is_bounded_by_policy_timeout(self, openai_config, sleeps):
        calls = 0

        async def slow(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            await asyncio.sleep(5)
            return httpx.Response(200, json={"choices": []})

        policy = RetryPolicy(timeout_seconds=0.05, max_retries=1, initial_backoff_seconds=0.1)
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(slow))
        client = ChatClient(openai_config, policy, client=http_client, sleep=sleeps)

        result = await client.complete("s", "u")
        await http_client.aclose()

        assert result.failure.kind is ErrorKind.PERMANENT
        assert "timed out after 0.05s" in result.failure.detail
        assert calls == 2
        assert sleeps.delays == pytest.approx([0.1])

    @pytest.mark.asyncio
    @pytest.mark.component
    async def test_concurrent_calls_share_one_client(self, openai_config, stub, sleeps):
        provider = stub(chat_reply("ok"))
        client = ChatClient(openai_config, client=provider.client(), sleep=sleeps)

        results = await asyncio.gather(*(client.complete("s", f"prompt {i}") for i in range(5)))

        assert all(r.ok for r in results)
        assert provider.calls == 5


class TestClientLifecycle:
    """Pooled client ownership."""

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_lazily_creates_and_closes_owned_client(self, openai_config):
        client = ChatClient(openai_config, http_config=HttpConfig(max_connections=3))

        http_client = await client._get_client()

        assert isinstance(http_client, httpx.AsyncClient)
        assert await client._get_client() is http_client
        await client.close()
        assert http_client.is_closed

    @pytest.mark.asyncio
    @pytest.mark.unit
    async def test_injected_client_is_not_closed(self, openai_config):
        injected = httpx.AsyncClient()
        async with ChatClient(openai_config, client=injected):
            pass

        assert not injected.is_closed
        await injected.aclose()
