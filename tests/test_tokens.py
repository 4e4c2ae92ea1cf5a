"""Unit tests for auth/tokens.py -- bcrypt and JWT primitives.

Covers:
- Salting: same password hashes differently, both hashes verify
- Wrong password and malformed hash return False without raising
- Tampered, truncated, wrongly keyed and claim-less tokens raise InvalidTokenError
- decode_token() does not enforce expiry (the service does)
"""

import pytest
from jose import jwt

from auth import tokens
from auth.errors import InvalidTokenError
from auth.models import TokenPayload

KEY = b"primitive-test-key-0123456789abcdef"


class TestPasswordHashing:
    def test_hash_is_not_plaintext(self) -> None:
        hashed = tokens.hash_password("Secret123", rounds=4)
        assert "Secret123" not in hashed
        assert hashed.startswith("$2")

    def test_same_password_different_hashes_both_verify(self) -> None:
        h1 = tokens.hash_password("Secret123", rounds=4)
        h2 = tokens.hash_password("Secret123", rounds=4)
        assert h1 != h2
        assert tokens.verify_password("Secret123", h1)
        assert tokens.verify_password("Secret123", h2)

    @pytest.mark.parametrize("other", ["secret123", "Secret1234", "", " Secret123"])
    def test_other_password_rejected(self, other: str) -> None:
        hashed = tokens.hash_password("Secret123", rounds=4)
        assert tokens.verify_password(other, hashed) is False

    def test_cost_is_embedded(self) -> None:
        assert tokens.hash_password("pw", rounds=5).split("$")[2] == "05"

    def test_malformed_hash_returns_false(self) -> None:
        assert tokens.verify_password("Secret123", "not-a-bcrypt-hash") is False


class TestJwt:
    def _payload(self) -> TokenPayload:
        return TokenPayload(user_id="user-1", issued_at=1000, expires_at=2000)

    def test_encode_decode(self) -> None:
        token = tokens.encode_token(self._payload(), KEY)
        assert token.count(".") == 2
        assert tokens.decode_token(token, KEY) == self._payload()

    def test_claims_carry_subject(self) -> None:
        token = tokens.encode_token(self._payload(), KEY)
        claims = jwt.get_unverified_claims(token)
        assert claims == {"sub": "user-1", "iat": 1000, "exp": 2000}

    def test_expired_payload_still_decodes(self) -> None:
        # Expiry belongs to the service clock, not the primitive.
        token = tokens.encode_token(self._payload(), KEY)
        assert tokens.decode_token(token, KEY).expires_at == 2000

    def test_wrong_key_rejected(self) -> None:
        token = tokens.encode_token(self._payload(), KEY)
        with pytest.raises(InvalidTokenError):
            tokens.decode_token(token, b"another-key-0123456789abcdef012345")

    def test_tampered_payload_rejected(self) -> None:
        token = tokens.encode_token(self._payload(), KEY)
        forged = tokens.encode_token(TokenPayload("user-2", 1000, 2000), KEY)
        header, _, signature = token.split(".")
        mixed = ".".join([header, forged.split(".")[1], signature])
        with pytest.raises(InvalidTokenError):
            tokens.decode_token(mixed, KEY)

    @pytest.mark.parametrize("garbage", ["", "abc", "a.b.c", "a.b"])
    def test_malformed_rejected(self, garbage: str) -> None:
        with pytest.raises(InvalidTokenError):
            tokens.decode_token(garbage, KEY)

    def test_missing_subject_rejected(self) -> None:
        token = jwt.encode({"iat": 1000, "exp": 2000}, KEY, algorithm=tokens.ALGORITHM)
        with pytest.raises(InvalidTokenError):
            tokens.decode_token(token, KEY)

    def test_non_integer_expiry_rejected(self) -> None:
        token = jwt.encode({"sub": "u", "iat": 1000, "exp": "later"}, KEY, algorithm=tokens.ALGORITHM)
        with pytest.raises(InvalidTokenError):
            tokens.decode_token(token, KEY)

    def test_none_algorithm_rejected(self) -> None:
        header = "eyJhbGciOiJub25lIiwidHlwIjoiSldUIn0"  # {"alg":"none","typ":"JWT"}
        body = tokens.encode_token(self._payload(), KEY).split(".")[1]
        with pytest.raises(InvalidTokenError):
            tokens.decode_token(f"{header}.{body}.", KEY)
