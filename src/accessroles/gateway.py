"""Mutation gateway for direct ACLs.

Every operation is authorized through the decision engine (``MANAGE_ACL``
for writes, ``READ`` for reads). Two checks run before the engine: the root
prohibition (the repository root can never carry its own ACL, whoever asks)
and, for writes, payload validation.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, Mapping

from .engine import AccessDecision, DecisionEngine
from .exceptions import AccessDeniedError, NotFoundError, ResourceNotFoundError, RootAclError
from .hierarchy import HierarchyView
from .logging import safe_preview
from .model import AccessControlList, AccessRequest, Action, ExistenceState
from .store import AclStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AclUpdate:
    """Outcome of a successful ``set_acl``."""

    path: str
    acl: AccessControlList
    created: bool


class AccessRolesGateway:
    """Validated create / replace / delete / read of a node's direct ACL.

    Args:
        hierarchy: Hierarchy view (root detection, existence state).
        store: Direct ACL store.
        engine: Decision engine consulted for every operation.
        idempotent_delete: Treat deleting a missing ACL as success.
    """

    def __init__(
        self,
        hierarchy: HierarchyView,
        store: AclStore,
        engine: DecisionEngine,
        *,
        idempotent_delete: bool = False,
    ) -> None:
        self._hierarchy = hierarchy
        self._store = store
        self._engine = engine
        self._idempotent_delete = idempotent_delete

    # ── Mutations ───────────────────────────────────────

    def set_acl(
        self,
        request: AccessRequest,
        assignments: Mapping[str, Iterable[str]] | AccessControlList | str | bytes,
    ) -> AclUpdate:
        """Attach ``assignments`` to ``request.resource``, replacing any prior ACL.

        Raises:
            RootAclError: The resource is the repository root.
            ValidationError: The assignments (or their JSON form) are malformed.
            AccessDeniedError: The caller may not manage this ACL.
            ResourceNotFoundError: Superuser addressed a removed resource.
        """
        self._reject_root(request)
        acl = _parse_assignments(assignments)
        self._authorize(request, Action.MANAGE_ACL)

        previous = self._store.set(request.resource, acl)
        logger.info(
            "%s access roles on %s: %s",
            "Created" if previous is None else "Replaced",
            request.resource,
            safe_preview(acl.to_dict()),
            extra={"request_id": request.request_id, "resource": request.resource},
        )
        return AclUpdate(path=request.resource, acl=acl, created=previous is None)

    def delete_acl(self, request: AccessRequest) -> bool:
        """Remove the direct ACL on ``request.resource``.

        Returns:
            True if an ACL was removed, False if none existed and deletes are
            idempotent.

        Raises:
            RootAclError: The resource is the repository root.
            AccessDeniedError: The caller may not manage this ACL.
            NotFoundError: No direct ACL exists (non-idempotent mode).
        """
        self._reject_root(request)
        self._authorize(request, Action.MANAGE_ACL)

        removed = self._store.delete(request.resource)
        if not removed:
            if not self._idempotent_delete:
                raise NotFoundError(path=request.resource)
            logger.debug("No access roles to delete on %s", request.resource)
            return False

        logger.info(
            "Deleted access roles on %s",
            request.resource,
            extra={"request_id": request.request_id, "resource": request.resource},
        )
        return True

    # ── Reads ───────────────────────────────────────────

    def get_acl(self, request: AccessRequest, *, effective: bool = False) -> dict[str, list[str]] | None:
        """Return the direct ACL, or the governing one when ``effective``.

        Returns None when there is nothing to report.
        """
        self._authorize(request, Action.READ)

        if effective:
            resolution = self._engine.resolver.resolve(request.resource)
            acl = resolution.acl if resolution else None
        else:
            acl = self._store.get(request.resource)
        return acl.to_dict() if acl is not None else None

    # ── Internals ───────────────────────────────────────

    def _reject_root(self, request: AccessRequest) -> None:
        if self._hierarchy.is_root(request.resource):
            logger.warning(
                "Rejected access role change on repository root",
                extra={"request_id": request.request_id, "resource": request.resource},
            )
            raise RootAclError(path=request.resource)

    def _authorize(self, request: AccessRequest, action: Action) -> AccessDecision:
        result = self._engine.evaluate(request.with_action(action))

        if result.allowed:
            # Superusers see removed resources for what they are
            if request.is_superuser and self._hierarchy.state_of(request.resource) is not ExistenceState.LIVE:
                raise ResourceNotFoundError(f"Resource not found: {request.resource}", path=request.resource)
            return result

        raise AccessDeniedError(
            f"{action.value} denied on {request.resource}",
            path=request.resource,
            reason=result.reason.value,
        )


def _parse_assignments(
    assignments: Mapping[str, Iterable[str]] | AccessControlList | str | bytes,
) -> AccessControlList:
    if isinstance(assignments, (str, bytes)):
        return AccessControlList.from_json(assignments)
    return AccessControlList.from_assignments(assignments)


__all__ = ["AccessRolesGateway", "AclUpdate"]
