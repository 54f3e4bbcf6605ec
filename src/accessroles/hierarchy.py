"""Resource hierarchy view.

The resolver and engine only ever ask three questions of the repository:
what is the parent of a node, what existence state is a node in, and is a
node the root. ``HierarchyView`` is that contract; ``InMemoryRepository`` is
a reference implementation used by tests and embedded deployments.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from .exceptions import ResourceNotFoundError, ValidationError
from .model import ExistenceState
from .paths import ROOT_PATH, is_within, normalize_path, parent_path

if TYPE_CHECKING:
    from .store import AclStore

logger = logging.getLogger(__name__)


class HierarchyView(ABC):
    """Read-only traversal primitive over the resource tree."""

    @abstractmethod
    def state_of(self, path: str) -> ExistenceState:
        raise NotImplementedError

    def parent_of(self, path: str) -> str | None:
        """Return the parent path, or None at the root.

        Path-addressed stores can rely on the default, which derives the
        parent from the path itself.
        """
        return parent_path(path)

    def is_root(self, path: str) -> bool:
        return normalize_path(path) == ROOT_PATH

    def exists(self, path: str) -> bool:
        return self.state_of(path) is ExistenceState.LIVE


class InMemoryRepository(HierarchyView):
    """Thread-safe in-memory node tree with tombstones.

    Deleting a node tombstones it and everything below it and removes
    their ACLs from the bound store. Purging drops the tombstones, leaving
    the paths absent.

    Args:
        store: ACL store whose entries must follow node removal.
    """

    def __init__(self, store: AclStore | None = None) -> None:
        self._store = store
        self._lock = threading.RLock()
        self._states: dict[str, ExistenceState] = {ROOT_PATH: ExistenceState.LIVE}

    def bind_store(self, store: AclStore) -> None:
        self._store = store

    def state_of(self, path: str) -> ExistenceState:
        with self._lock:
            return self._states.get(normalize_path(path), ExistenceState.ABSENT)

    def create(self, path: str, *, parents: bool = False) -> str:
        """Create a live node. A tombstoned path may be re-created.

        Args:
            path: Node path.
            parents: Also create missing ancestors.

        Raises:
            ResourceNotFoundError: If the parent is not live and ``parents`` is False.
        """
        path = normalize_path(path)
        with self._lock:
            parent = parent_path(path)
            if parent is not None and self.state_of(parent) is not ExistenceState.LIVE:
                if not parents:
                    raise ResourceNotFoundError(f"Parent of {path} does not exist", path=path)
                self.create(parent, parents=True)
            self._states[path] = ExistenceState.LIVE
        logger.debug("Created node %s", path)
        return path

    def delete(self, path: str) -> list[str]:
        """Tombstone ``path`` and its live descendants.

        Returns:
            The tombstoned paths, deepest first.
        """
        path = normalize_path(path)
        if path == ROOT_PATH:
            raise ValidationError("The repository root cannot be deleted")
        with self._lock:
            if self._states.get(path) is not ExistenceState.LIVE:
                raise ResourceNotFoundError(f"No live resource at {path}", path=path)
            removed = sorted(
                (p for p, state in self._states.items() if is_within(p, path) and state is ExistenceState.LIVE),
                key=lambda p: p.count("/"),
                reverse=True,
            )
            # ACLs go first; a store failure leaves the subtree live and untouched
            if self._store is not None:
                self._store.purge(path)
            for p in removed:
                self._states[p] = ExistenceState.TOMBSTONED
        logger.info("Deleted %s (%d nodes tombstoned)", path, len(removed))
        return removed

    def purge(self, path: str) -> None:
        """Forget ``path`` and everything below it entirely."""
        path = normalize_path(path)
        if path == ROOT_PATH:
            raise ValidationError("The repository root cannot be purged")
        with self._lock:
            if self._store is not None:
                self._store.purge(path)
            for p in [p for p in self._states if is_within(p, path)]:
                del self._states[p]
        logger.info("Purged %s", path)


__all__ = ["HierarchyView", "InMemoryRepository"]
