"""Shared fixtures for the record_ai test suites."""

from __future__ import annotations

from collections.abc import Callable

import pytest

from record_ai.common.config import AppConfig, HttpConfig, LimitsConfig, LoggingConfig, OpenAIConfig
from record_ai.tests.mocks import TEST_API_KEY, ProviderStub, SleepRecorder


@pytest.fixture
def openai_config() -> OpenAIConfig:
    return OpenAIConfig(api_key=TEST_API_KEY)


@pytest.fixture
def missing_key_config() -> OpenAIConfig:
    return OpenAIConfig(api_key=None)


@pytest.fixture
def app_config(openai_config: OpenAIConfig) -> AppConfig:
    return AppConfig(
        logging=LoggingConfig(json_logs=False),
        openai=openai_config,
        limits=LimitsConfig(),
        http=HttpConfig(),
    )


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def stub() -> Callable[..., ProviderStub]:
    """Factory: ``stub(reply, ...)`` builds a ``ProviderStub``."""
    return ProviderStub
