"""ACL store contract and in-memory implementation.

The store maps a resource path to its directly attached ACL (zero or one
per node). Every write replaces a whole immutable ``AccessControlList``,
so readers see either the complete old value or the complete new one.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod

from .model import AccessControlList
from .paths import is_within, normalize_path

logger = logging.getLogger(__name__)


class AclStore(ABC):
    """Direct-ACL persistence.

    Implementations must make ``set``, ``delete`` and ``purge`` atomic with
    respect to concurrent ``get`` calls.
    """

    @abstractmethod
    def get(self, path: str) -> AccessControlList | None:
        """Return the ACL attached directly to ``path``, if any."""
        raise NotImplementedError

    @abstractmethod
    def set(self, path: str, acl: AccessControlList) -> AccessControlList | None:
        """Replace the ACL at ``path``; return the one it replaced."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, path: str) -> bool:
        """Remove the ACL at ``path``; return False if there was none."""
        raise NotImplementedError

    @abstractmethod
    def purge(self, path: str) -> int:
        """Remove every ACL at or below ``path``; return how many were removed."""
        raise NotImplementedError


class InMemoryAclStore(AclStore):
    """Process-local store guarded by a re-entrant lock."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._acls: dict[str, AccessControlList] = {}

    def get(self, path: str) -> AccessControlList | None:
        with self._lock:
            return self._acls.get(normalize_path(path))

    def set(self, path: str, acl: AccessControlList) -> AccessControlList | None:
        path = normalize_path(path)
        with self._lock:
            previous = self._acls.get(path)
            self._acls[path] = acl
        return previous

    def delete(self, path: str) -> bool:
        with self._lock:
            return self._acls.pop(normalize_path(path), None) is not None

    def purge(self, path: str) -> int:
        with self._lock:
            doomed = [p for p in self._acls if is_within(p, path)]
            for p in doomed:
                del self._acls[p]
        if doomed:
            logger.debug("Purged %d ACLs under %s", len(doomed), path)
        return len(doomed)

    def __len__(self) -> int:
        with self._lock:
            return len(self._acls)


__all__ = ["AclStore", "InMemoryAclStore"]
