"""Redis-backed ACL store.

Each direct ACL is one string key ``{prefix}:{path}`` holding the JSON
interchange form. Single-key writes are atomic in Redis. A subtree purge
collects the keys with ``SCAN`` and deletes them in one ``MULTI``/``EXEC``
pipeline: the keys it found are removed all together or not at all, but a key
written under the subtree after the scan is not covered.
"""

from __future__ import annotations

import logging
import re

import redis

from .exceptions import StoreError, ValidationError
from .model import AccessControlList
from .paths import ROOT_PATH, normalize_path
from .store import AclStore

logger = logging.getLogger(__name__)

DEFAULT_PREFIX = "accessroles:acl"

_GLOB_SPECIAL = re.compile(r"([*?\[\]\\])")


def _escape_glob(value: str) -> str:
    return _GLOB_SPECIAL.sub(r"\\\1", value)


class RedisAclStore(AclStore):
    """ACL store over a synchronous redis-py client.

    Args:
        client: A ``redis.Redis`` created with ``decode_responses=True``.
        prefix: Key namespace for ACL records.
    """

    def __init__(self, client: redis.Redis, *, prefix: str = DEFAULT_PREFIX) -> None:
        self._client = client
        self._prefix = prefix

    @classmethod
    def from_url(cls, url: str, *, prefix: str = DEFAULT_PREFIX) -> RedisAclStore:
        return cls(redis.from_url(url, decode_responses=True), prefix=prefix)

    def _key(self, path: str) -> str:
        return f"{self._prefix}:{normalize_path(path)}"

    def _decode(self, path: str, raw: str | bytes | None) -> AccessControlList | None:
        if raw is None:
            return None
        try:
            return AccessControlList.from_json(raw)
        except ValidationError as e:
            raise StoreError(f"Corrupt ACL record for {path}: {e.message}", path=path) from e

    def get(self, path: str) -> AccessControlList | None:
        try:
            raw = self._client.get(self._key(path))
        except redis.RedisError as e:
            raise StoreError(f"Failed to read ACL for {path}: {e}", path=path) from e
        return self._decode(path, raw)

    def set(self, path: str, acl: AccessControlList) -> AccessControlList | None:
        try:
            previous = self._client.set(self._key(path), acl.to_json(), get=True)
        except redis.RedisError as e:
            raise StoreError(f"Failed to write ACL for {path}: {e}", path=path) from e
        logger.debug("Stored ACL for %s", path)
        return self._decode(path, previous)

    def delete(self, path: str) -> bool:
        try:
            return bool(self._client.delete(self._key(path)))
        except redis.RedisError as e:
            raise StoreError(f"Failed to delete ACL for {path}: {e}", path=path) from e

    def purge(self, path: str) -> int:
        """Delete every ACL at or below ``path``.

        The delete is transactional over the keys seen by the scan. Callers
        that need the subtree empty must stop writes to it first; the gateway
        refuses writes on tombstoned nodes.
        """
        path = normalize_path(path)
        if path == ROOT_PATH:
            pattern = f"{_escape_glob(self._prefix)}:*"
        else:
            pattern = f"{_escape_glob(self._key(path))}/*"

        try:
            keys = list(self._client.scan_iter(match=pattern))
            if path != ROOT_PATH:
                keys.append(self._key(path))

            pipe = self._client.pipeline(transaction=True)
            for key in keys:
                pipe.delete(key)
            removed = sum(pipe.execute())
        except redis.RedisError as e:
            raise StoreError(f"Failed to purge ACLs under {path}: {e}", path=path) from e

        if removed:
            logger.debug("Purged %d ACLs under %s", removed, path)
        return removed


__all__ = ["DEFAULT_PREFIX", "RedisAclStore"]
