"""Tests for cancellation tokens."""

from recordacl.pipeline.cancellation import CancellationToken


class TestCancellationToken:
    """Test token behaviour."""

    def test_starts_active(self):
        """Test a fresh token."""
        token = CancellationToken()
        assert token.cancelled is False
        assert token.reason is None
        assert "active" in repr(token)

    def test_cancel_is_one_way(self):
        """Test that the first reason sticks."""
        token = CancellationToken()
        token.cancel("closed")
        token.cancel("again")

        assert token.cancelled is True
        assert token.reason == "closed"
        assert "cancelled" in repr(token)

    def test_unique_ids(self):
        """Test that every token gets its own id."""
        assert CancellationToken().token_id != CancellationToken().token_id
