"""Tests for the transcription client."""

import httpx
import pytest

from record_ai.common.errors import ConfigurationError, ErrorKind
from record_ai.providers.transcription import (
    DEFAULT_AUDIO_FILENAME,
    AudioPayload,
    TranscriptionClient,
)
from record_ai.tests.mocks import TEST_API_KEY, error_reply, json_reply


def _client(config, stub, sleeps) -> TranscriptionClient:
    return TranscriptionClient(config, client=stub.client(), sleep=sleeps)


class TestAudioPayload:
    """Upload filename defaults."""

    @pytest.mark.unit
    @pytest.mark.parametrize("filename", [None, "", "   "])
    def test_blank_filename_gets_synthetic_name(self, filename):
        assert AudioPayload(b"abc", filename=filename).upload_filename == DEFAULT_AUDIO_FILENAME

    @pytest.mark.unit
    def test_filename_kept(self):
        assert AudioPayload(b"abc", filename="review.m4a").upload_filename == "review.m4a"


class TestTranscriptionRequest:
    """Wire format."""

    @pytest.mark.asyncio
    @pytest.mark.component
    async def test_multipart_body_and_auth(self, openai_config, stub, sleeps):
        provider = stub(json_reply({"text": "좋은 공연이었어요"}))
        client = _client(openai_config, provider, sleeps)

        result = await client.transcribe(AudioPayload(b"RIFFDATA", "review.m4a", "ko"))

        assert result.ok
        assert result.value == "좋은 공연이었어요"
        request = provider.last_request
        assert request.method == "POST"
        assert str(request.url) == openai_config.transcription_url
        assert request.headers["Authorization"] == f"Bearer {TEST_API_KEY}"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        body = request.content
        assert b'name="file"; filename="review.m4a"' in body
        assert b"RIFFDATA" in body
        assert b'name="model"' in body
        assert b"whisper-1" in body
        assert b'name="language"' in body

    @pytest.mark.asyncio
    @pytest.mark.component
    async def test_blank_language_is_omitted(self, openai_config, stub, sleeps):
        provider = stub(json_reply({"text": "ok"}))
        client = _client(openai_config, provider, sleeps)

        await client.transcribe(AudioPayload(b"data", None, "  "))

        body = provider.last_request.content
        assert b'name="language"' not in body
        assert f'filename="{DEFAULT_AUDIO_FILENAME}"'.encode() in body


class TestTranscriptionRetries:
    """Retry policy: transport errors, timeouts and 5xx only."""

    @pytest.mark.asyncio
    @pytest.mark.component
    async def test_two_transport_errors_then_success(self, openai_config, stub, sleeps):
        provider = stub(
            httpx.ConnectError("connection refused"),
            httpx.ReadTimeout("read timed out"),
            json_reply({"text": "세 번째 시도"}),
        )
        client = _client(openai_config, provider, sleeps)

        result = await client.transcribe(AudioPayload(b"data", "a.m4a"))

        assert result.ok
        assert result.value == "세 번째 시도"
        assert provider.calls == 3
        assert sleeps.delays == [0.5, 1.0]

    @pytest.mark.asyncio
    @pytest.mark.component
    async def test_server_errors_exhaust_after_three_attempts(self, openai_config, stub, sleeps):
        provider = stub(error_reply(503))
        client = _client(openai_config, provider, sleeps)

        result = await client.transcribe(AudioPayload(b"data", "a.m4a"))

        assert not result.ok
        assert result.failure.kind is ErrorKind.PERMANENT
        assert "3 attempts" in result.failure.detail
        assert result.failure.status_code == 503
        assert result.failure.provider == "transcription"
        assert provider.calls == 3

    @pytest.mark.asyncio
    @pytest.mark.component
    @pytest.mark.parametrize("status", [400, 404, 413, 429])
    async def test_client_errors_not_retried(self, openai_config, stub, sleeps, status):
        provider = stub(error_reply(status))
        client = _client(openai_config, provider, sleeps)

        result = await client.transcribe(AudioPayload(b"data", "a.m4a"))

        assert result.failure.kind is ErrorKind.PERMANENT
        assert result.failure.status_code == status
        assert provider.calls == 1
        assert sleeps.delays == []

    @pytest.mark.asyncio
    @pytest.mark.component
    async def test_rejected_credential_is_configuration_error(self, openai_config, stub, sleeps):
        provider = stub(error_reply(401, code="invalid_api_key"))
        client = _client(openai_config, provider, sleeps)

        result = await client.transcribe(AudioPayload(b"data", "a.m4a"))

        assert result.failure.kind is ErrorKind.CONFIGURATION
        assert provider.calls == 1


class TestTranscriptionResponse:
    """Response normalization."""

    @pytest.mark.asyncio
    @pytest.mark.component
    @pytest.mark.parametrize("payload", [{}, {"text": ""}, {"text": "   "}, {"text": None}, []])
    async def test_missing_text_is_permanent_without_retry(
        self, openai_config, stub, sleeps, payload
    ):
        provider = stub(json_reply(payload))
        client = _client(openai_config, provider, sleeps)

        result = await client.transcribe(AudioPayload(b"data", "a.m4a"))

        assert result.failure.kind is ErrorKind.PERMANENT
        assert provider.calls == 1

    @pytest.mark.asyncio
    @pytest.mark.component
    async def test_non_json_body_is_permanent(self, openai_config, stub, sleeps):
        provider = stub(httpx.Response(200, text="<html>oops</html>"))
        client = _client(openai_config, provider, sleeps)

        result = await client.transcribe(AudioPayload(b"data", "a.m4a"))

        assert result.failure.kind is ErrorKind.PERMANENT
        assert provider.calls == 1


class TestTranscriptionCredential:
    """Credential check happens before any request."""

    @pytest.mark.asyncio
    @pytest.mark.component
    async def test_missing_key_raises_without_network(self, missing_key_config, stub, sleeps):
        provider = stub(json_reply({"text": "never"}))
        client = _client(missing_key_config, provider, sleeps)

        with pytest.raises(ConfigurationError):
            await client.transcribe(AudioPayload(b"data", "a.m4a"))

        assert provider.calls == 0
