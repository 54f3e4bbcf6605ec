"""Tests for the in-memory and Redis ACL stores."""

from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
import redis

from accessroles import AccessControlList, InMemoryAclStore, InMemoryRepository, StoreError
from accessroles.redis_store import RedisAclStore


def _acl(**assignments: list[str]) -> AccessControlList:
    return AccessControlList.from_assignments(assignments)


class TestInMemoryAclStore:
    def test_get_missing(self, store: InMemoryAclStore) -> None:
        assert store.get("/a") is None

    def test_set_returns_previous(self, store: InMemoryAclStore) -> None:
        first = _acl(alice=["reader"])
        assert store.set("/a", first) is None
        assert store.set("a/", _acl(bob=["admin"])) == first

    def test_delete(self, store: InMemoryAclStore) -> None:
        store.set("/a", _acl(alice=["reader"]))
        assert store.delete("/a")
        assert not store.delete("/a")

    def test_purge_subtree_only(self, store: InMemoryAclStore) -> None:
        for path in ("/a", "/a/b", "/a/b/c", "/ab", "/x"):
            store.set(path, _acl(alice=["reader"]))
        assert store.purge("/a") == 3
        assert store.get("/ab") is not None
        assert store.get("/x") is not None
        assert len(store) == 2


class TestInMemoryRepository:
    def test_create_requires_parent(self, store: InMemoryAclStore) -> None:
        from accessroles import ResourceNotFoundError

        repo = InMemoryRepository(store)
        with pytest.raises(ResourceNotFoundError):
            repo.create("/a/b")
        repo.create("/a/b", parents=True)
        assert repo.exists("/a")

    def test_delete_tombstones_subtree(self, repo: InMemoryRepository) -> None:
        removed = repo.delete("/a/c")
        assert removed == ["/a/c/item", "/a/c"]
        assert not repo.exists("/a/c/item")
        assert repo.exists("/a/b")

    def test_recreate_tombstone(self, repo: InMemoryRepository) -> None:
        repo.delete("/a/d")
        repo.create("/a/d")
        assert repo.exists("/a/d")

    def test_root_cannot_be_deleted(self, repo: InMemoryRepository) -> None:
        from accessroles import ValidationError

        with pytest.raises(ValidationError):
            repo.delete("/")

    def test_parent_and_root(self, repo: InMemoryRepository) -> None:
        assert repo.parent_of("/a/b") == "/a"
        assert repo.parent_of("/") is None
        assert repo.is_root("/")
        assert not repo.is_root("/a")


class _FlakyStore(InMemoryAclStore):
    """Store whose first subtree purge fails."""

    def __init__(self) -> None:
        super().__init__()
        self.failures = 1

    def purge(self, path: str) -> int:
        if self.failures:
            self.failures -= 1
            raise StoreError(f"Failed to purge ACLs under {path}", path=path)
        return super().purge(path)


class TestFailedRemoval:
    """A node removal that cannot clear its ACLs changes nothing."""

    @pytest.fixture
    def flaky_store(self) -> _FlakyStore:
        return _FlakyStore()

    @pytest.fixture
    def failing_repo(self, flaky_store: _FlakyStore) -> InMemoryRepository:
        store = flaky_store
        repo = InMemoryRepository(store)
        repo.create("/a/c/item", parents=True)
        store.set("/a/c", _acl(mallory=["admin"]))
        return repo

    def test_delete_leaves_subtree_live(self, failing_repo: InMemoryRepository) -> None:
        with pytest.raises(StoreError):
            failing_repo.delete("/a/c")
        assert failing_repo.exists("/a/c")
        assert failing_repo.exists("/a/c/item")

    def test_stale_acl_does_not_survive_recreate(
        self, failing_repo: InMemoryRepository, flaky_store: _FlakyStore
    ) -> None:
        with pytest.raises(StoreError):
            failing_repo.delete("/a/c")
        assert flaky_store.get("/a/c") is not None

        failing_repo.delete("/a/c")
        failing_repo.create("/a/c")
        assert flaky_store.get("/a/c") is None

    def test_purge_leaves_nodes(self, failing_repo: InMemoryRepository) -> None:
        with pytest.raises(StoreError):
            failing_repo.purge("/a/c")
        assert failing_repo.exists("/a/c")


@pytest.fixture
def client() -> MagicMock:
    return MagicMock(spec=redis.Redis)


@pytest.fixture
def redis_store(client: MagicMock) -> RedisAclStore:
    return RedisAclStore(client, prefix="test:acl")


class TestRedisAclStore:
    def test_get(self, redis_store: RedisAclStore, client: MagicMock) -> None:
        client.get.return_value = '{"alice": ["reader"]}'
        assert redis_store.get("a/b") == _acl(alice=["reader"])
        client.get.assert_called_once_with("test:acl:/a/b")

    def test_get_missing(self, redis_store: RedisAclStore, client: MagicMock) -> None:
        client.get.return_value = None
        assert redis_store.get("/a") is None

    def test_corrupt_record(self, redis_store: RedisAclStore, client: MagicMock) -> None:
        client.get.return_value = '{"alice": []}'
        with pytest.raises(StoreError, match="Corrupt"):
            redis_store.get("/a")

    def test_set_is_single_atomic_swap(self, redis_store: RedisAclStore, client: MagicMock) -> None:
        client.set.return_value = '{"bob": ["admin"]}'
        previous = redis_store.set("/a", _acl(alice=["writer", "reader"]))
        assert previous == _acl(bob=["admin"])
        key, value = client.set.call_args.args
        assert key == "test:acl:/a"
        assert json.loads(value) == {"alice": ["reader", "writer"]}
        assert client.set.call_args.kwargs == {"get": True}

    def test_delete(self, redis_store: RedisAclStore, client: MagicMock) -> None:
        client.delete.return_value = 0
        assert redis_store.delete("/a") is False

    def test_purge_subtree(self, redis_store: RedisAclStore, client: MagicMock) -> None:
        client.scan_iter.return_value = iter(["test:acl:/a/b", "test:acl:/a/b/c"])
        pipe = client.pipeline.return_value
        pipe.execute.return_value = [1, 1, 1]

        assert redis_store.purge("/a") == 3
        client.scan_iter.assert_called_once_with(match="test:acl:/a/*")
        client.pipeline.assert_called_once_with(transaction=True)
        deleted = [c.args[0] for c in pipe.delete.call_args_list]
        assert deleted == ["test:acl:/a/b", "test:acl:/a/b/c", "test:acl:/a"]

    def test_purge_escapes_glob(self, redis_store: RedisAclStore, client: MagicMock) -> None:
        client.scan_iter.return_value = iter([])
        client.pipeline.return_value.execute.return_value = [0]
        redis_store.purge("/a*")
        client.scan_iter.assert_called_once_with(match="test:acl:/a\\*/*")

    def test_purge_deletes_scanned_keys_in_one_transaction(
        self, redis_store: RedisAclStore, client: MagicMock
    ) -> None:
        """Every scanned key is queued before a single EXEC."""
        client.scan_iter.return_value = iter(["test:acl:/a/b"])
        pipe = client.pipeline.return_value
        pipe.execute.side_effect = redis.WatchError("aborted")

        with pytest.raises(StoreError, match="Failed to purge"):
            redis_store.purge("/a")
        assert pipe.delete.call_count == 2
        pipe.execute.assert_called_once_with()
        client.delete.assert_not_called()

    def test_connection_error_wrapped(self, redis_store: RedisAclStore, client: MagicMock) -> None:
        client.get.side_effect = redis.ConnectionError("refused")
        with pytest.raises(StoreError, match="refused"):
            redis_store.get("/a")
