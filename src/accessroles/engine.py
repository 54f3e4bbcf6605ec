"""Decision engine — single entry point for allow/deny verdicts.

Provides:
- ``DecisionReason`` — why a verdict was reached.
- ``AccessDecision`` — verdict plus the data it was derived from.
- ``DecisionEngine`` — evaluates an ``AccessRequest``.

Exactly two shortcuts skip ACL resolution, and both run first:

1. Superuser callers are allowed unconditionally.
2. Ordinary callers are denied every action on tombstoned or absent
   resources, so removed resources are indistinguishable from forbidden ones.

Everything else goes through the resolver and the role matrix.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable

from .hierarchy import HierarchyView
from .model import (
    EVERYONE,
    AccessRequest,
    Action,
    Decision,
    ExistenceState,
    PrincipalClass,
)
from .resolver import AclResolver, Resolution
from .roles import RoleMatrix, get_role_matrix
from .store import AclStore

logger = logging.getLogger(__name__)


class DecisionReason(str, Enum):
    SUPERUSER = "superuser"
    HIDDEN = "hidden"  # tombstoned or absent, ordinary caller
    NO_ACL = "no_acl"
    GRANTED = "granted"
    NOT_GRANTED = "not_granted"


@dataclass(frozen=True)
class AccessDecision:
    """Result of evaluating one access request."""

    decision: Decision
    reason: DecisionReason
    state: ExistenceState = ExistenceState.LIVE
    resolution: Resolution | None = None
    roles: frozenset[str] = field(default_factory=frozenset)
    actions: frozenset[Action] = field(default_factory=frozenset)

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.ALLOW

    @property
    def governing_path(self) -> str | None:
        return self.resolution.path if self.resolution else None


class DecisionEngine:
    """Stateless evaluator of (principals, class, resource, action).

    Args:
        hierarchy: Hierarchy view for existence state and parent lookup.
        store: Direct ACL store.
        role_matrix: Explicit matrix. If None, the process-wide matrix from
            :func:`accessroles.roles.get_role_matrix` is read on each decision.
        everyone: Wildcard principal implicitly held by every caller.
    """

    def __init__(
        self,
        hierarchy: HierarchyView,
        store: AclStore,
        role_matrix: RoleMatrix | None = None,
        *,
        everyone: str = EVERYONE,
    ) -> None:
        self._hierarchy = hierarchy
        self._resolver = AclResolver(hierarchy, store)
        self._role_matrix = role_matrix
        self._everyone = everyone

    @property
    def resolver(self) -> AclResolver:
        return self._resolver

    @property
    def role_matrix(self) -> RoleMatrix:
        return self._role_matrix if self._role_matrix is not None else get_role_matrix()

    def evaluate(self, request: AccessRequest) -> AccessDecision:
        """Evaluate ``request`` and explain the verdict."""
        # Shortcut 1: superuser bypass
        if request.principal_class is PrincipalClass.SUPERUSER:
            return self._log(request, AccessDecision(Decision.ALLOW, DecisionReason.SUPERUSER))

        # Shortcut 2: removed resources are hidden from ordinary callers
        state = self._hierarchy.state_of(request.resource)
        if state is not ExistenceState.LIVE:
            return self._log(request, AccessDecision(Decision.DENY, DecisionReason.HIDDEN, state=state))

        resolution = self._resolver.resolve(request.resource)
        if resolution is None:
            return self._log(request, AccessDecision(Decision.DENY, DecisionReason.NO_ACL))

        # Snapshot so a concurrent matrix swap cannot tear this decision
        matrix = self.role_matrix
        roles = resolution.acl.roles_for(self._principal_set(request.principals))
        actions = matrix.actions_for(roles)

        if request.action in actions:
            verdict, reason = Decision.ALLOW, DecisionReason.GRANTED
        else:
            verdict, reason = Decision.DENY, DecisionReason.NOT_GRANTED
        return self._log(
            request,
            AccessDecision(verdict, reason, resolution=resolution, roles=roles, actions=actions),
        )

    def decide(
        self,
        principals: Iterable[str],
        principal_class: PrincipalClass,
        resource: str,
        action: Action,
    ) -> Decision:
        """Verdict-only form of :meth:`evaluate`."""
        request = AccessRequest(
            principals=frozenset(principals),
            resource=resource,
            action=action,
            principal_class=principal_class,
        )
        return self.evaluate(request).decision

    def is_allowed(self, request: AccessRequest) -> bool:
        return self.evaluate(request).allowed

    def effective_roles(self, principals: Iterable[str], resource: str) -> frozenset[str]:
        """Roles the governing ACL of ``resource`` assigns to ``principals``.

        Ignores superuser status and existence state.
        """
        resolution = self._resolver.resolve(resource)
        if resolution is None:
            return frozenset()
        return resolution.acl.roles_for(self._principal_set(principals))

    def _principal_set(self, principals: Iterable[str]) -> frozenset[str]:
        return frozenset(principals) | {self._everyone}

    def _log(self, request: AccessRequest, result: AccessDecision) -> AccessDecision:
        logger.debug(
            "%s %s on %s: %s (%s)",
            request.principal_class.value,
            request.action.value,
            request.resource,
            result.decision.value,
            result.reason.value,
            extra={
                "request_id": request.request_id,
                "resource": request.resource,
                "governing_path": result.governing_path,
            },
        )
        return result


__all__ = ["AccessDecision", "DecisionEngine", "DecisionReason"]
