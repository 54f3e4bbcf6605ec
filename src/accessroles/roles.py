"""Role matrix: static role → action grants.

Provides:
- ``RoleMatrix`` — immutable role → frozenset(Action) mapping.
- ``DEFAULT_ROLE_MATRIX`` — the basic reader / writer / admin profile.
- ``init_role_matrix()`` / ``get_role_matrix()`` / ``reset_role_matrix()`` —
  process-wide matrix, installed once at startup.

The matrix never varies per resource. Replacing the process-wide matrix is a
single reference swap, so a decision in flight keeps the matrix it started with.
"""

from __future__ import annotations

import logging
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ConfigurationError
from .model import Action

logger = logging.getLogger(__name__)

_MATRIX_FORMAT = TypeAdapter(dict[str, list[Action]])


class RoleMatrix:
    """Immutable mapping of role name to authorized actions.

    Roles absent from the matrix authorize nothing.

    Example::

        matrix = RoleMatrix({"reader": {Action.READ}})
        matrix.actions_for({"reader", "unknown"})  # frozenset({Action.READ})
    """

    __slots__ = ("_grants",)

    def __init__(self, grants: Mapping[str, Iterable[Action | str]]) -> None:
        try:
            frozen = {role: frozenset(Action(a) for a in actions) for role, actions in grants.items()}
        except ValueError as e:
            raise ConfigurationError(f"Invalid role matrix: {e}") from e
        for role in frozen:
            if not isinstance(role, str) or not role.strip():
                raise ConfigurationError(f"Invalid role name in role matrix: {role!r}")
        self._grants = MappingProxyType(frozen)

    @classmethod
    def from_json(cls, raw: str | bytes) -> RoleMatrix:
        """Parse ``{"role": ["ACTION", ...]}``."""
        try:
            return cls(_MATRIX_FORMAT.validate_json(raw))
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid role matrix document: {e.errors()[0]['msg']}") from e

    @classmethod
    def from_file(cls, path: str | Path) -> RoleMatrix:
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigurationError(f"Cannot read role matrix file {path}: {e}") from e
        return cls.from_json(raw)

    @property
    def roles(self) -> frozenset[str]:
        return frozenset(self._grants)

    def actions_for(self, roles: Iterable[str]) -> frozenset[Action]:
        """Union of actions authorized by ``roles``."""
        actions: set[Action] = set()
        for role in roles:
            actions.update(self._grants.get(role, ()))
        return frozenset(actions)

    def grants(self, role: str, action: Action) -> bool:
        return action in self._grants.get(role, ())

    def to_dict(self) -> dict[str, list[str]]:
        return {role: sorted(a.value for a in actions) for role, actions in self._grants.items()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RoleMatrix):
            return NotImplemented
        return dict(self._grants) == dict(other._grants)

    def __hash__(self) -> int:
        return hash(frozenset(self._grants.items()))

    def __repr__(self) -> str:
        return f"RoleMatrix({self.to_dict()!r})"


# ── Default Profile ─────────────────────────────────────
# reader ⊂ writer ⊂ admin; only admin may manage ACLs.

DEFAULT_ROLE_MATRIX = RoleMatrix(
    {
        "reader": (Action.READ,),
        "writer": (
            Action.READ,
            Action.ADD_CHILD_CONTENT,
            Action.UPDATE_CONTENT,
            Action.DELETE_RESOURCE,
        ),
        "admin": tuple(Action),
    }
)


# ── Process-wide matrix ─────────────────────────────────

_matrix: RoleMatrix | None = None


def init_role_matrix(matrix: RoleMatrix | Mapping[str, Iterable[Action | str]] | None = None) -> RoleMatrix:
    """Install the process-wide role matrix.

    Args:
        matrix: A RoleMatrix or a plain mapping. None installs the default profile.

    Returns:
        The installed matrix.
    """
    global _matrix
    if matrix is None:
        matrix = DEFAULT_ROLE_MATRIX
    elif not isinstance(matrix, RoleMatrix):
        matrix = RoleMatrix(matrix)
    _matrix = matrix
    logger.info("Role matrix installed: roles=%s", sorted(matrix.roles))
    return matrix


def get_role_matrix() -> RoleMatrix:
    """Return the installed matrix, or the default profile if none was installed."""
    return _matrix if _matrix is not None else DEFAULT_ROLE_MATRIX


def reset_role_matrix() -> None:
    """Drop the installed matrix (for testing)."""
    global _matrix
    _matrix = None


__all__ = [
    "DEFAULT_ROLE_MATRIX",
    "RoleMatrix",
    "get_role_matrix",
    "init_role_matrix",
    "reset_role_matrix",
]
