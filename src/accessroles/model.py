"""Core data model for access role resolution.

Defines:
- ``Action`` — the closed set of actions the engine decides on.
- ``PrincipalClass`` — superuser / ordinary, supplied by authentication.
- ``ExistenceState`` — live / tombstoned / absent resource states.
- ``Decision`` — allow / deny verdict.
- ``AccessControlList`` — validated principal → roles assignments (pydantic).
- ``AccessRequest`` — one (principal set, resource, action) question.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from pydantic import BaseModel, TypeAdapter, field_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ValidationError
from .paths import normalize_path

EVERYONE = "EVERYONE"


class Action(str, Enum):
    """Actions a principal may attempt on a resource."""

    READ = "READ"
    ADD_CHILD_CONTENT = "ADD_CHILD_CONTENT"  # create a child or attach content
    UPDATE_CONTENT = "UPDATE_CONTENT"
    MANAGE_ACL = "MANAGE_ACL"  # create/replace/delete the ACL at that node
    DELETE_RESOURCE = "DELETE_RESOURCE"


class PrincipalClass(str, Enum):
    """Caller classification established by the authentication layer."""

    SUPERUSER = "superuser"
    ORDINARY = "ordinary"


class ExistenceState(str, Enum):
    LIVE = "live"
    TOMBSTONED = "tombstoned"
    ABSENT = "absent"


class Decision(str, Enum):
    ALLOW = "allow"
    DENY = "deny"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOW


# Wire shape: {"principal": ["role", ...]}
_WIRE_FORMAT = TypeAdapter(dict[str, list[str]])


class AccessControlList(BaseModel):
    """Principal → role-set assignments attached directly to one node.

    Instances are immutable; a mutation replaces the whole list.

    Example::

        acl = AccessControlList.from_assignments({
            "EVERYONE": ["reader"],
            "alice": ["admin"],
        })
        acl.roles_for({"alice", "EVERYONE"})  # frozenset({"reader", "admin"})
    """

    model_config = {"frozen": True, "extra": "forbid"}

    assignments: Mapping[str, frozenset[str]]

    @field_validator("assignments")
    @classmethod
    def validate_assignments(cls, v: Mapping[str, frozenset[str]]) -> Mapping[str, frozenset[str]]:
        """Reject empty maps, blank principals, empty role sets and blank roles."""
        if not v:
            raise ValueError("Posted access roles must include role assignments")
        for principal, roles in v.items():
            if not roles:
                raise ValueError("Assignments must include principal name and one or more roles")
            if not principal.strip():
                raise ValueError("Principal names cannot be empty strings or whitespace")
            for role in roles:
                if not role.strip():
                    raise ValueError("Role names cannot be empty strings or whitespace")
        return MappingProxyType(dict(v))

    @classmethod
    def from_assignments(cls, data: Mapping[str, Iterable[str]]) -> AccessControlList:
        """Build an ACL from a principal → roles mapping.

        Raises:
            ValidationError: If the mapping violates any ACL invariant.
        """
        if isinstance(data, AccessControlList):
            return data
        if not isinstance(data, Mapping):
            raise ValidationError("Access roles must be a mapping of principal to roles")
        try:
            return cls(assignments={k: _as_role_set(v) for k, v in data.items()})
        except PydanticValidationError as e:
            raise ValidationError(_first_error(e)) from e

    @classmethod
    def from_json(cls, raw: str | bytes) -> AccessControlList:
        """Parse the JSON interchange form ``{"principal": ["role", ...]}``.

        Raises:
            ValidationError: On malformed JSON, wrong shape, or invalid content.
        """
        try:
            data = _WIRE_FORMAT.validate_json(raw)
        except PydanticValidationError as e:
            raise ValidationError(f"Malformed access roles document: {_first_error(e)}") from e
        return cls.from_assignments(data)

    def to_dict(self) -> dict[str, list[str]]:
        return {principal: sorted(roles) for principal, roles in self.assignments.items()}

    def to_json(self) -> str:
        return _WIRE_FORMAT.dump_json(self.to_dict()).decode()

    @property
    def principals(self) -> frozenset[str]:
        return frozenset(self.assignments)

    def roles_for(self, principals: Iterable[str]) -> frozenset[str]:
        """Union of roles assigned to any of ``principals``."""
        roles: set[str] = set()
        for principal in principals:
            roles.update(self.assignments.get(principal, ()))
        return frozenset(roles)

    def __len__(self) -> int:
        return len(self.assignments)


def _as_role_set(roles: Any) -> Any:
    # A bare string would otherwise be split into characters
    if isinstance(roles, str):
        return [roles]
    return roles


def _first_error(error: PydanticValidationError) -> str:
    first = error.errors()[0]
    return first["msg"].removeprefix("Value error, ")


@dataclass(frozen=True)
class AccessRequest:
    """A single authorization question posed by a transport adapter.

    The principal set holds the caller identity and group memberships;
    ``EVERYONE`` is added implicitly by the engine.
    """

    principals: frozenset[str]
    resource: str
    action: Action = Action.READ
    principal_class: PrincipalClass = PrincipalClass.ORDINARY
    request_id: str = field(default="", compare=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "principals", frozenset(self.principals))
        object.__setattr__(self, "resource", normalize_path(self.resource))
        object.__setattr__(self, "action", Action(self.action))
        object.__setattr__(self, "principal_class", PrincipalClass(self.principal_class))

    @classmethod
    def for_principal(
        cls,
        principal: str,
        resource: str,
        action: Action = Action.READ,
        *,
        groups: Iterable[str] = (),
        superuser: bool = False,
        request_id: str = "",
    ) -> AccessRequest:
        """Convenience builder for a single caller plus its groups."""
        return cls(
            principals=frozenset((principal, *groups)),
            resource=resource,
            action=action,
            principal_class=PrincipalClass.SUPERUSER if superuser else PrincipalClass.ORDINARY,
            request_id=request_id,
        )

    @property
    def is_superuser(self) -> bool:
        return self.principal_class is PrincipalClass.SUPERUSER

    def with_action(self, action: Action) -> AccessRequest:
        return AccessRequest(
            principals=self.principals,
            resource=self.resource,
            action=action,
            principal_class=self.principal_class,
            request_id=self.request_id,
        )


__all__ = [
    "EVERYONE",
    "Action",
    "PrincipalClass",
    "ExistenceState",
    "Decision",
    "AccessControlList",
    "AccessRequest",
]
