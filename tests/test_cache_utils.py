"""Unit tests for docker_credential_env/cache_utils.py"""

from datetime import datetime, timezone

import pytest

from docker_credential_env.cache_utils import CredentialsCache
from docker_credential_env.credentials import ResolvedAWSCredentials

ACCOUNT_ID = "123456789012"
STATIC = ResolvedAWSCredentials("AKIASTATIC", "static-secret", source="Standard AWS Environment")


@pytest.fixture
def clock(monkeypatch):
    """Controllable time.time()"""
    now = [1000.0]
    monkeypatch.setattr("docker_credential_env.cache_utils.time.time", lambda: now[0])
    return now


def _temporary(expires_at: float) -> ResolvedAWSCredentials:
    return ResolvedAWSCredentials(
        "ASIATEMP",
        "temp-secret",
        session_token="tok",
        expiry=datetime.fromtimestamp(expires_at, tz=timezone.utc),
    )


class TestCredentialsCache:
    """Tests for CredentialsCache"""

    def test_get_and_set(self, clock):
        cache = CredentialsCache()
        cache.set(ACCOUNT_ID, "us-east-1", STATIC)

        assert cache.get(ACCOUNT_ID, "us-east-1") is STATIC
        assert cache.get(ACCOUNT_ID, "eu-west-1") is None
        assert cache.get("210987654321", "us-east-1") is None

    def test_static_credentials_expire_after_ttl(self, clock):
        cache = CredentialsCache(ttl_seconds=10)
        cache.set(ACCOUNT_ID, "us-east-1", STATIC)

        clock[0] += 9
        assert cache.get(ACCOUNT_ID, "us-east-1") is STATIC

        clock[0] += 1
        assert cache.get(ACCOUNT_ID, "us-east-1") is None
        assert len(cache) == 0

    def test_temporary_credentials_dropped_before_expiry(self, clock):
        cache = CredentialsCache(ttl_seconds=900, expiry_margin=60.0)
        credentials = _temporary(clock[0] + 100)
        cache.set(ACCOUNT_ID, "us-east-1", credentials)

        clock[0] += 39
        assert cache.get(ACCOUNT_ID, "us-east-1") is credentials

        clock[0] += 1
        assert cache.get(ACCOUNT_ID, "us-east-1") is None

    def test_already_expiring_credentials_are_not_served(self, clock):
        cache = CredentialsCache(expiry_margin=60.0)
        cache.set(ACCOUNT_ID, "us-east-1", _temporary(clock[0] + 30))

        assert cache.get(ACCOUNT_ID, "us-east-1") is None

    def test_clear(self, clock):
        cache = CredentialsCache()
        cache.set(ACCOUNT_ID, "us-east-1", STATIC)
        cache.set(ACCOUNT_ID, "eu-west-1", STATIC)
        assert len(cache) == 2

        cache.clear()
        assert len(cache) == 0
