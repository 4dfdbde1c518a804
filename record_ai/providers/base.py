"""Shared transport for provider clients: auth, timeout, retry and classification.

Each concrete client (transcription, chat, image) owns one pooled
``httpx.AsyncClient`` that is safe to reuse across concurrent requests, and one
fixed ``RetryPolicy``. A single call goes through:

    credential check -> POST (timeout) -> status classification
        -> transient? back off and retry : surface
    -> JSON body -> client-specific normalization -> ProviderResult

Classification:
    - timeout / transport error / 5xx   -> TransientProviderError (retried)
    - 401 / 403                         -> ConfigurationError (credential rejected)
    - other non-2xx                     -> PermanentProviderError, unless the
                                           policy retries client errors and the
                                           body does not declare a permanent
                                           rejection
    - retries exhausted                 -> PermanentProviderError

A missing or blank credential raises ``ConfigurationError`` before any network
I/O. Every other classified failure is returned as ``ProviderResult.failed``.
"""

from __future__ import annotations

import asyncio
import dataclasses
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass
from typing import Any, ClassVar, Generic, TypeVar

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from record_ai.common.config import HttpConfig, OpenAIConfig
from record_ai.common.errors import (
    ConfigurationError,
    NormalizationError,
    OrchestrationError,
    PermanentProviderError,
    ProviderFailure,
    TransientProviderError,
)
from record_ai.common.structured_logging import get_logger

T = TypeVar("T")

SleepFn = Callable[[float], Awaitable[None]]

# error.code / error.type values that mean "retrying cannot help".
PERMANENT_REJECTION_MARKERS = frozenset(
    {
        "invalid_api_key",
        "insufficient_quota",
        "invalid_request_error",
        "content_policy_violation",
        "model_not_found",
    }
)


@dataclass(frozen=True)
class RetryPolicy:
    """Timeout and bounded exponential backoff for one provider."""

    timeout_seconds: float
    max_retries: int
    initial_backoff_seconds: float
    max_backoff_seconds: float = 30.0
    retry_client_errors: bool = False

    @property
    def max_attempts(self) -> int:
        return self.max_retries + 1


@dataclass(frozen=True)
class ProviderResult(Generic[T]):
    """Tagged success/failure of one provider operation."""

    value: T | None = None
    failure: ProviderFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    @classmethod
    def success(cls, value: T) -> ProviderResult[T]:
        return cls(value=value)

    @classmethod
    def failed(cls, failure: ProviderFailure) -> ProviderResult[T]:
        return cls(failure=failure)


class _ErrorDetail(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: str | None = None
    type: str | None = None
    code: str | None = None


class _ErrorBody(BaseModel):
    model_config = ConfigDict(extra="ignore")

    error: _ErrorDetail | None = None


def _parse_error_body(response: httpx.Response) -> _ErrorDetail | None:
    try:
        return _ErrorBody.model_validate(response.json()).error
    except (ValueError, ValidationError):
        return None


def _describe_status(response: httpx.Response, detail: _ErrorDetail | None) -> str:
    text = f"HTTP {response.status_code}"
    if detail and detail.message:
        text = f"{text} - {detail.message}"
    return text


def is_permanent_rejection(detail: _ErrorDetail | None) -> bool:
    """True when the provider's error body names a non-retryable reason."""
    if detail is None:
        return False
    return bool(
        {detail.code, detail.type} & PERMANENT_REJECTION_MARKERS
    )


class BaseProviderClient:
    """Common machinery for the concrete provider clients."""

    provider_name: ClassVar[str] = "provider"

    def __init__(
        self,
        config: OpenAIConfig,
        policy: RetryPolicy,
        *,
        http_config: HttpConfig | None = None,
        client: httpx.AsyncClient | None = None,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self._config = config
        self._policy = policy
        self._http_config = http_config or HttpConfig()
        self._client = client
        self._owns_client = client is None
        self._sleep = sleep
        self._logger = get_logger(__name__).bind(provider=self.provider_name)

    @property
    def policy(self) -> RetryPolicy:
        return self._policy

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the pooled HTTP client."""
        if self._client is None:
            limits = httpx.Limits(
                max_connections=self._http_config.max_connections,
                max_keepalive_connections=self._http_config.max_keepalive_connections,
            )
            self._client = httpx.AsyncClient(
                timeout=self._policy.timeout_seconds,
                limits=limits,
            )
        return self._client

    def _auth_headers(self) -> dict[str, str]:
        if not self._config.has_credential:
            raise ConfigurationError(
                "OpenAI API key is not configured; set OPENAI_API_KEY",
                provider=self.provider_name,
            )
        return {"Authorization": f"Bearer {self._config.api_key.strip()}"}

    async def _execute(
        self,
        operation: str,
        call: Callable[[Mapping[str, str]], Awaitable[T]],
        **log_fields: Any,
    ) -> ProviderResult[T]:
        """Run one operation and fold classified failures into a result."""
        headers = self._auth_headers()
        start = time.perf_counter()
        self._logger.info(f"{self.provider_name}.request_started", operation=operation, **log_fields)
        try:
            value = await call(headers)
        except OrchestrationError as exc:
            failure = exc.to_failure()
            if failure.provider is None:
                failure = dataclasses.replace(failure, provider=self.provider_name)
            self._logger.warning(
                f"{self.provider_name}.request_failed",
                operation=operation,
                kind=failure.kind.value,
                detail=failure.detail,
                status_code=failure.status_code,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return ProviderResult.failed(failure)

        self._logger.info(
            f"{self.provider_name}.request_succeeded",
            operation=operation,
            duration_ms=round((time.perf_counter() - start) * 1000, 2),
        )
        return ProviderResult.success(value)

    def _log_retry(self, retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        self._logger.warning(
            "http.post_retry",
            attempt=retry_state.attempt_number,
            max_attempts=self._policy.max_attempts,
            backoff=retry_state.next_action.sleep if retry_state.next_action else None,
            error=str(exc) if exc else None,
            error_type=type(exc).__name__ if exc else None,
        )

    async def _post_json(
        self,
        url: str,
        headers: Mapping[str, str],
        *,
        json: Any | None = None,
        data: Mapping[str, Any] | None = None,
        files: Mapping[str, tuple[str, bytes, str]] | None = None,
    ) -> Any:
        """POST with the client's retry policy and return the decoded JSON body."""
        client = await self._get_client()
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._policy.max_attempts),
            wait=wait_exponential(
                multiplier=self._policy.initial_backoff_seconds,
                max=self._policy.max_backoff_seconds,
            ),
            retry=retry_if_exception_type(TransientProviderError),
            before_sleep=self._log_retry,
            sleep=self._sleep,
        )

        try:
            async for attempt in retrying:
                with attempt:
                    if attempt.retry_state.attempt_number == 1:
                        self._logger.debug(
                            "http.post_attempt",
                            url=url,
                            max_attempts=self._policy.max_attempts,
                            timeout=self._policy.timeout_seconds,
                        )
                    response = await self._send(
                        client, url, headers, json=json, data=data, files=files
                    )
        except RetryError as exc:
            last = exc.last_attempt.exception()
            attempts = exc.last_attempt.attempt_number
            self._logger.error(
                "http.post_failed",
                url=url,
                attempts=attempts,
                error=str(last),
                decision="max_retries_exceeded",
            )
            raise PermanentProviderError(
                f"{self.provider_name} request failed after {attempts} attempts: {last}",
                provider=self.provider_name,
                status_code=getattr(last, "status_code", None),
            ) from last

        try:
            return response.json()
        except ValueError as exc:
            raise NormalizationError(
                "provider returned a body that is not valid JSON",
                provider=self.provider_name,
                status_code=response.status_code,
            ) from exc

    async def _send(
        self,
        client: httpx.AsyncClient,
        url: str,
        headers: Mapping[str, str],
        *,
        json: Any | None,
        data: Mapping[str, Any] | None,
        files: Mapping[str, tuple[str, bytes, str]] | None,
    ) -> httpx.Response:
        try:
            # httpx applies its timeout per phase; this bounds the whole attempt.
            async with asyncio.timeout(self._policy.timeout_seconds):
                response = await client.post(
                    url,
                    headers=dict(headers),
                    json=json,
                    data=data,
                    files=files,
                    timeout=self._policy.timeout_seconds,
                )
        except (httpx.TimeoutException, TimeoutError) as exc:
            raise TransientProviderError(
                f"request timed out after {self._policy.timeout_seconds:g}s",
                provider=self.provider_name,
            ) from exc
        except httpx.TransportError as exc:
            raise TransientProviderError(
                f"transport error: {type(exc).__name__}: {exc}",
                provider=self.provider_name,
            ) from exc

        self._classify_status(response)
        return response

    def _classify_status(self, response: httpx.Response) -> None:
        status = response.status_code
        if 200 <= status < 300:
            return

        detail = _parse_error_body(response)
        description = _describe_status(response, detail)

        if status in (401, 403):
            raise ConfigurationError(
                f"provider rejected the credential ({description})",
                provider=self.provider_name,
                status_code=status,
            )
        if status >= 500:
            raise TransientProviderError(
                description, provider=self.provider_name, status_code=status
            )
        if self._policy.retry_client_errors and not is_permanent_rejection(detail):
            raise TransientProviderError(
                description, provider=self.provider_name, status_code=status
            )
        raise PermanentProviderError(
            description, provider=self.provider_name, status_code=status
        )

    async def close(self) -> None:
        """Close the HTTP client if this instance created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> BaseProviderClient:
        return self

    async def __aexit__(
        self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: Any
    ) -> None:
        await self.close()


__all__ = [
    "BaseProviderClient",
    "PERMANENT_REJECTION_MARKERS",
    "ProviderResult",
    "RetryPolicy",
    "SleepFn",
    "is_permanent_rejection",
]
