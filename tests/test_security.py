from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from clinic.core.security import TokenAuthority, get_password_hash, verify_password

ISSUED_AT = datetime(2025, 5, 1, 8, 0, tzinfo=timezone.utc)


class MovableClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


def test_token_verifies_to_its_identifier():
    authority = TokenAuthority("k" * 32)
    token = authority.issue("alice@clinic.example.com")
    assert authority.verify(token) == "alice@clinic.example.com"


def test_token_claims():
    authority = TokenAuthority("k" * 32, clock=MovableClock(ISSUED_AT))
    claims = jwt.get_unverified_claims(authority.issue("root"))
    assert claims["sub"] == "root"
    assert claims["iat"] == int(ISSUED_AT.timestamp())
    assert claims["exp"] == int((ISSUED_AT + timedelta(days=7)).timestamp())


def test_token_expires_against_injected_clock():
    clock = MovableClock(ISSUED_AT)
    authority = TokenAuthority("k" * 32, clock=clock)
    token = authority.issue("paula@example.com")

    clock.now = ISSUED_AT + timedelta(days=6, hours=23)
    assert authority.verify(token) == "paula@example.com"

    clock.now = ISSUED_AT + timedelta(days=7)
    assert authority.verify(token) is None


def test_custom_ttl():
    clock = MovableClock(ISSUED_AT)
    authority = TokenAuthority("k" * 32, ttl=timedelta(minutes=5), clock=clock)
    token = authority.issue("root")
    clock.now = ISSUED_AT + timedelta(minutes=6)
    assert authority.verify(token) is None


def test_token_signed_with_another_key_is_rejected():
    token = TokenAuthority("a" * 32).issue("alice@clinic.example.com")
    assert TokenAuthority("b" * 32).verify(token) is None


def test_tampered_token_is_rejected():
    authority = TokenAuthority("k" * 32)
    header, payload, signature = authority.issue("alice@clinic.example.com").split(".")
    forged = jwt.encode({"sub": "mallory@example.com", "exp": 4102444800}, "other-key", algorithm="HS256")
    assert authority.verify(".".join([header, forged.split(".")[1], signature])) is None


@pytest.mark.parametrize("token", ["", None, "garbage", "a.b.c"])
def test_malformed_tokens_are_rejected(token):
    assert TokenAuthority("k" * 32).verify(token) is None


def test_token_without_subject_is_rejected():
    token = jwt.encode({"exp": 4102444800}, "k" * 32, algorithm="HS256")
    assert TokenAuthority("k" * 32).verify(token) is None


def test_empty_secret_is_refused():
    with pytest.raises(ValueError):
        TokenAuthority("")


def test_password_hashing():
    hashed = get_password_hash("s3cret!", rounds=4)
    assert hashed != "s3cret!"
    assert verify_password("s3cret!", hashed)
    assert not verify_password("wrong", hashed)


def test_verify_password_with_malformed_hash():
    assert not verify_password("s3cret!", "not-a-bcrypt-hash")
