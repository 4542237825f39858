from __future__ import annotations

import pytest

from billingsync.adapters.google_play import GoogleAccessTokenProvider
from billingsync.config import GooglePlayConfig, ResilienceConfig
from tests.helpers.http import FAST_RETRY, FakeCredentials, no_request


@pytest.fixture
def fake_credentials() -> FakeCredentials:
    return FakeCredentials()


@pytest.fixture
def token_provider(fake_credentials: FakeCredentials) -> GoogleAccessTokenProvider:
    return GoogleAccessTokenProvider(credentials=fake_credentials, request_factory=no_request)


@pytest.fixture
def play_config() -> GooglePlayConfig:
    return GooglePlayConfig(
        service_account_info={},
        resilience=ResilienceConfig(
            name="google-play-test",
            base_url="https://play.test/androidpublisher/v3/",
            retry=FAST_RETRY,
        ),
    )
