"""Effective ACL resolution.

The nearest node at or above a resource that carries a direct ACL governs
that resource, in full. ACLs further up are never consulted or merged, even
when the nearer ACL grants the caller nothing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from .hierarchy import HierarchyView
from .model import AccessControlList
from .paths import normalize_path
from .store import AclStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Resolution:
    """The governing ACL for a resource.

    Attributes:
        path: Node the ACL is attached to.
        acl: The governing ACL.
        distance: Number of parent steps walked from the resource (0 = own ACL).
    """

    path: str
    acl: AccessControlList
    distance: int = 0

    @property
    def inherited(self) -> bool:
        return self.distance > 0


class AclResolver:
    """Walks ``parent_of`` from a resource to the root looking for a direct ACL.

    Args:
        hierarchy: Parent lookup capability.
        store: Direct ACL lookup.
    """

    def __init__(self, hierarchy: HierarchyView, store: AclStore) -> None:
        self._hierarchy = hierarchy
        self._store = store

    def resolve(self, resource: str) -> Resolution | None:
        """Return the governing ACL for ``resource``, or None if no node up to
        and including the root has one."""
        current: str | None = normalize_path(resource)
        distance = 0
        while current is not None:
            acl = self._store.get(current)
            if acl is not None:
                logger.debug("ACL for %s found at %s (distance=%d)", resource, current, distance)
                return Resolution(path=current, acl=acl, distance=distance)
            current = self._hierarchy.parent_of(current)
            distance += 1

        logger.debug("No governing ACL for %s", resource)
        return None


__all__ = ["AclResolver", "Resolution"]
