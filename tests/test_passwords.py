"""Tests for salt generation, password hashing and token minting"""

import hashlib
import re

import pytest

from fintrack.auth import passwords
from fintrack.auth.passwords import (
    generate_salt,
    hash_password,
    mint_session_token,
    verify_password,
)
from fintrack.utils.exceptions import CryptoUnavailableError


class TestGenerateSalt:
    def test_salt_is_lowercase_hex_of_16_bytes(self):
        salt = generate_salt()
        assert re.fullmatch(r"[0-9a-f]{32}", salt)

    def test_salt_length_can_grow(self):
        assert len(generate_salt(32)) == 64

    def test_short_salt_rejected(self):
        with pytest.raises(ValueError):
            generate_salt(8)

    def test_salts_are_not_reused(self):
        salts = {generate_salt() for _ in range(200)}
        assert len(salts) == 200

    def test_missing_entropy_source_is_fatal(self, monkeypatch):
        def _no_entropy(n):
            raise NotImplementedError("no os.urandom")

        monkeypatch.setattr(passwords.secrets, "token_bytes", _no_entropy)
        with pytest.raises(CryptoUnavailableError):
            generate_salt()


class TestHashPassword:
    def test_digest_is_sha256_of_password_then_salt(self):
        salt = "00112233445566778899aabbccddeeff"
        expected = hashlib.sha256(("longenough1" + salt).encode("utf-8")).hexdigest()
        assert hash_password("longenough1", salt) == expected

    def test_deterministic(self):
        salt = generate_salt()
        assert hash_password("secret-pass", salt) == hash_password("secret-pass", salt)

    def test_same_password_different_salts_differ(self):
        assert hash_password("same-password", generate_salt()) != hash_password(
            "same-password", generate_salt()
        )

    def test_digest_does_not_contain_plaintext(self):
        digest = hash_password("plaintext-pw", generate_salt())
        assert "plaintext-pw" not in digest
        assert len(digest) == 64


class TestVerifyPassword:
    def test_correct_password(self):
        salt = generate_salt()
        digest = hash_password("longenough1", salt)
        assert verify_password("longenough1", salt, digest)

    def test_every_single_character_change_fails(self):
        salt = generate_salt()
        password = "longenough1"
        digest = hash_password(password, salt)
        for i in range(len(password)):
            altered = password[:i] + ("x" if password[i] != "x" else "y") + password[i + 1:]
            assert not verify_password(altered, salt, digest), altered

    def test_empty_inputs_fail(self):
        salt = generate_salt()
        digest = hash_password("longenough1", salt)
        assert not verify_password("", salt, digest)
        assert not verify_password("longenough1", "", digest)
        assert not verify_password("longenough1", salt, "")

    def test_uses_constant_time_comparison(self, monkeypatch):
        """Digests are compared with hmac.compare_digest, not ==."""
        calls = []
        real_compare = passwords.hmac.compare_digest

        def _spy(a, b):
            calls.append((a, b))
            return real_compare(a, b)

        monkeypatch.setattr(passwords.hmac, "compare_digest", _spy)
        salt = generate_salt()
        assert verify_password("longenough1", salt, hash_password("longenough1", salt))
        assert len(calls) == 1


class TestSessionToken:
    def test_tokens_are_unique_and_opaque(self):
        tokens = {mint_session_token() for _ in range(100)}
        assert len(tokens) == 100
        assert all(len(t) >= 43 for t in tokens)

    def test_missing_entropy_source_is_fatal(self, monkeypatch):
        def _no_entropy(n):
            raise OSError("entropy pool unavailable")

        monkeypatch.setattr(passwords.secrets, "token_urlsafe", _no_entropy)
        with pytest.raises(CryptoUnavailableError):
            mint_session_token()
