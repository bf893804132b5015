"""Tests for user identity extraction from access tokens."""

from jose import jwt

from recordacl.services.identity import user_id_from_token

SECRET = "test-secret"


def _token(claims, secret=SECRET):
    return jwt.encode(claims, secret, algorithm="HS256")


class TestUserIdFromToken:
    """Test the sub claim extraction."""

    def test_unverified_claims(self):
        """Test reading sub without a configured secret."""
        assert user_id_from_token(_token({"sub": "u1"}, "any-secret")) == "u1"

    def test_verified_claims(self):
        """Test reading sub with signature verification."""
        assert user_id_from_token(_token({"sub": "u1"}), SECRET) == "u1"

    def test_wrong_secret(self):
        """Test that a bad signature is rejected when verifying."""
        assert user_id_from_token(_token({"sub": "u1"}, "other"), SECRET) is None

    def test_missing_sub(self):
        """Test tokens without a subject."""
        assert user_id_from_token(_token({"name": "x"})) is None
        assert user_id_from_token(_token({"sub": "  "})) is None

    def test_malformed_or_missing_token(self):
        """Test garbage and empty tokens."""
        assert user_id_from_token("not-a-token") is None
        assert user_id_from_token("") is None
        assert user_id_from_token(None) is None
