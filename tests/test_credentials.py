"""Tests for the credential cache and the session whitelist."""
import pytest

from shellgate.commands.credentials import CredentialCache, Whitelist, contains_elevation_failure
from shellgate.constants import CREDENTIAL_TTL_SECONDS


class TestCredentialCache:
    def test_empty_cache(self, clock):
        cache = CredentialCache(clock=clock)
        assert cache.get() is None
        assert not cache.is_valid()

    def test_secret_valid_within_ttl(self, clock):
        cache = CredentialCache(clock=clock)
        cache.set("hunter2")
        clock.advance(CREDENTIAL_TTL_SECONDS - 1)
        assert cache.get() == "hunter2"
        assert cache.is_valid()

    def test_secret_expires_at_ttl(self, clock):
        cache = CredentialCache(clock=clock)
        cache.set("hunter2")
        clock.advance(CREDENTIAL_TTL_SECONDS)
        assert cache.get() is None
        # Stays gone once dropped
        clock.now -= CREDENTIAL_TTL_SECONDS
        assert cache.get() is None

    def test_set_refreshes_timestamp(self, clock):
        cache = CredentialCache(ttl=10, clock=clock)
        cache.set("old")
        clock.advance(8)
        cache.set("new")
        clock.advance(8)
        assert cache.get() == "new"

    def test_clear(self, clock):
        cache = CredentialCache(clock=clock)
        cache.set("hunter2")
        cache.clear()
        assert cache.get() is None

    @pytest.mark.parametrize(
        "text",
        [
            "sudo: a password is required\n",
            "Sorry.\nsudo: sorry, try again\n",
            "sudo: 3 incorrect password attempts\n",
        ],
    )
    def test_failure_phrases_clear_secret(self, clock, text):
        cache = CredentialCache(clock=clock)
        cache.set("wrong")
        assert cache.invalidate_on_failure(text)
        assert cache.get() is None

    def test_unrelated_output_keeps_secret(self, clock):
        cache = CredentialCache(clock=clock)
        cache.set("right")
        assert not cache.invalidate_on_failure("Reading package lists... Done\n")
        assert cache.get() == "right"


def test_contains_elevation_failure():
    assert contains_elevation_failure("sudo: 1 incorrect password attempt")
    assert not contains_elevation_failure("password updated successfully")


class TestWhitelist:
    def test_add_and_membership(self):
        whitelist = Whitelist()
        assert "git" not in whitelist
        whitelist.add("git")
        whitelist.add("git")
        assert "git" in whitelist
        assert len(whitelist) == 1

    def test_snapshot_is_a_copy(self):
        whitelist = Whitelist(["ls"])
        snapshot = whitelist.snapshot()
        snapshot.add("rm")
        assert "rm" not in whitelist


def test_repeated_failure_keeps_cache_clear(clock):
    cache = CredentialCache(clock=clock)
    cache.set("wrong")
    assert cache.invalidate_on_failure("sudo: a password is required")
    assert cache.invalidate_on_failure("sudo: a password is required")
    assert cache.get() is None
