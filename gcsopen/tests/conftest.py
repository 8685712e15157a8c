import pytest

from gcsopen.credentials import (
    AUTH_LOCATION_ENV,
    CREDENTIALS_ENV,
    OAUTH_TOKEN_ENV,
    TokenProvider,
)
from gcsopen.core import REQUESTER_PAYS_ENV

ENV_KEYS = [OAUTH_TOKEN_ENV, AUTH_LOCATION_ENV, CREDENTIALS_ENV, REQUESTER_PAYS_ENV]


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class CountingFetcher:
    """Stands in for the gcloud subprocess."""

    def __init__(self, *lines):
        self.lines = list(lines) or ["ya29.token-%d\n"]
        self.calls = 0

    def __call__(self):
        self.calls += 1
        line = self.lines[min(self.calls, len(self.lines)) - 1]
        if isinstance(line, Exception):
            raise line
        if line and "%d" in line:
            line = line % self.calls
        return line


class RecordingOpener:
    def __init__(self):
        self.calls = []

    def __call__(self, url, mode_or_options):
        self.calls.append((url, mode_or_options))
        return "handle"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    TokenProvider.clear_instance()
    yield
    TokenProvider.clear_instance()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def fetcher():
    return CountingFetcher()


@pytest.fixture
def opener():
    return RecordingOpener()


@pytest.fixture
def provider(fetcher, clock):
    return TokenProvider(fetcher=fetcher, environ={CREDENTIALS_ENV: "sa.json"}, clock=clock)
