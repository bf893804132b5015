"""Tests for the permission source cache."""

from recordacl.access.cache import PermissionCache
from recordacl.access.roles import Role
from recordacl.access.selector import PermissionSources


class FakeClock:
    """Manually advanced clock."""

    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _sources(name="sales", group_id="g1"):
    return PermissionSources(Role(role_name=name), Role(), group_id)


class TestPermissionCache:
    """Test cache storage and invalidation."""

    def test_set_and_get(self):
        """Test a cache hit."""
        cache = PermissionCache()
        sources = _sources()
        cache.set("u1", "Accounts", "g1", sources)

        assert cache.get("u1", "Accounts", "g1") is sources
        assert cache.get("u1", "Accounts", "g2") is None
        assert len(cache) == 1

    def test_expiry(self):
        """Test that expired entries are evicted on read."""
        clock = FakeClock()
        cache = PermissionCache(ttl_seconds=60, clock=clock)
        cache.set("u1", "Accounts", None, _sources(group_id=None))

        clock.now += 30
        assert cache.get("u1", "Accounts", None) is not None

        clock.now += 31
        assert cache.get("u1", "Accounts", None) is None
        assert len(cache) == 0

    def test_zero_ttl_never_expires(self):
        """Test that ttl 0 disables expiry."""
        clock = FakeClock()
        cache = PermissionCache(ttl_seconds=0, clock=clock)
        cache.set("u1", "Accounts", "g1", _sources())

        clock.now += 10 ** 6
        assert cache.get("u1", "Accounts", "g1") is not None

    def test_invalidate_by_parts(self):
        """Test partial-key invalidation."""
        cache = PermissionCache()
        cache.set("u1", "Accounts", "g1", _sources())
        cache.set("u1", "Contacts", "g1", _sources())
        cache.set("u2", "Accounts", "g2", _sources())

        assert cache.invalidate(user_id="u1", module_name="Accounts") == 1
        assert cache.invalidate(group_id="g1") == 1
        assert len(cache) == 1
        assert cache.get("u2", "Accounts", "g2") is not None

    def test_invalidate_all_and_clear(self):
        """Test full invalidation."""
        cache = PermissionCache()
        cache.set("u1", "Accounts", "g1", _sources())
        cache.set("u2", "Accounts", "g2", _sources())

        assert cache.invalidate() == 2
        cache.set("u1", "Accounts", "g1", _sources())
        cache.clear()
        assert len(cache) == 0


class TestCacheBounds:
    """Test that the cache does not grow without limit."""

    def test_expired_entries_purged_on_set(self):
        """Test that a write drops entries for keys never read again."""
        clock = FakeClock()
        cache = PermissionCache(ttl_seconds=60, clock=clock)
        cache.set("u1", "Accounts", "g1", _sources())
        cache.set("u2", "Accounts", "g2", _sources())

        clock.now += 61
        cache.set("u3", "Accounts", "g3", _sources())

        assert len(cache) == 1
        assert cache.get("u3", "Accounts", "g3") is not None

    def test_purge_expired_returns_count(self):
        """Test explicit purging."""
        clock = FakeClock()
        cache = PermissionCache(ttl_seconds=60, clock=clock)
        cache.set("u1", "Accounts", "g1", _sources())
        clock.now += 30
        cache.set("u2", "Accounts", "g2", _sources())

        clock.now += 31
        assert cache.purge_expired() == 1
        assert cache.get("u2", "Accounts", "g2") is not None

    def test_max_entries_evicts_oldest(self):
        """Test oldest-first eviction when the cache is full."""
        cache = PermissionCache(max_entries=2)
        cache.set("u1", "Accounts", "g1", _sources())
        cache.set("u2", "Accounts", "g2", _sources())
        cache.set("u3", "Accounts", "g3", _sources())

        assert len(cache) == 2
        assert cache.get("u1", "Accounts", "g1") is None
        assert cache.get("u2", "Accounts", "g2") is not None
        assert cache.get("u3", "Accounts", "g3") is not None

    def test_rewrite_refreshes_position(self):
        """Test that storing an existing key makes it the newest entry."""
        cache = PermissionCache(max_entries=2)
        cache.set("u1", "Accounts", "g1", _sources())
        cache.set("u2", "Accounts", "g2", _sources())
        cache.set("u1", "Accounts", "g1", _sources(name="support"))
        cache.set("u3", "Accounts", "g3", _sources())

        assert cache.get("u2", "Accounts", "g2") is None
        assert cache.get("u1", "Accounts", "g1").personal_role.role_name == "support"
