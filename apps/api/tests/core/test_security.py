"""
Tests for password hashing and session tokens.

The validity window is 7 days: a token issued exactly 7 days ago is
rejected, one issued 7 days minus 1 second ago is accepted.
"""

from datetime import UTC, datetime, timedelta

from school_erp.core.security import (
    TOKEN_TYPE_ACCESS,
    create_access_token,
    decode_token,
    hash_password,
    is_token_expired,
    token_lifetime,
    verify_password,
)


def _now() -> datetime:
    return datetime.now(UTC).replace(microsecond=0)


class TestPasswords:
    def test_hash_and_verify(self):
        hashed = hash_password("correct horse")
        assert hashed != "correct horse"
        assert verify_password("correct horse", hashed)
        assert not verify_password("wrong horse", hashed)

    def test_malformed_hash_is_rejected(self):
        assert verify_password("anything", "not-a-bcrypt-hash") is False


class TestTokenWindow:
    def test_lifetime_is_seven_days(self):
        assert token_lifetime() == timedelta(days=7)

    def test_exactly_seven_days_is_expired(self):
        now = _now()
        assert is_token_expired(now - timedelta(days=7), now)

    def test_one_second_before_boundary_is_valid(self):
        now = _now()
        assert not is_token_expired(now - timedelta(days=7) + timedelta(seconds=1), now)


class TestTokens:
    def test_round_trip_claims(self):
        token = create_access_token("user-1", {"email": "a@b.test", "role": "school_admin"})
        payload = decode_token(token)

        assert payload is not None
        assert payload["sub"] == "user-1"
        assert payload["email"] == "a@b.test"
        assert payload["type"] == TOKEN_TYPE_ACCESS

    def test_token_issued_seven_days_ago_is_rejected(self):
        now = _now()
        token = create_access_token("user-1", issued_at=now - timedelta(days=7))
        assert decode_token(token, now=now) is None

    def test_token_issued_just_under_seven_days_ago_is_accepted(self):
        now = _now()
        token = create_access_token(
            "user-1", issued_at=now - timedelta(days=7) + timedelta(seconds=1)
        )
        payload = decode_token(token, now=now)
        assert payload is not None
        assert payload["sub"] == "user-1"

    def test_tampered_token_is_rejected(self):
        token = create_access_token("user-1")
        header, body, signature = token.split(".")
        tampered = ".".join([header, body, signature[::-1]])
        assert decode_token(tampered) is None

    def test_garbage_is_rejected(self):
        assert decode_token("not-a-token") is None
