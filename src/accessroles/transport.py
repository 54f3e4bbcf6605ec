"""Protocol adapter: requests in, status codes out.

Provides:
- ``Response`` — status, optional JSON body and headers.
- ``AccessRolesEndpoint`` — the ``<path>/fcr:accessroles`` sub-resource plus
  a generic ``authorize`` for ordinary resource actions.
- ``request_from_metadata`` / ``request_from_grpc_context`` — build an
  ``AccessRequest`` from identity headers forwarded by the authenticating
  front end.

Status mapping:
    ordinary caller, removed resource  → 403 (existence is not disclosed)
    superuser, removed resource        → 404
    any other deny                     → 403
    malformed ACL payload              → 400
    ACL created or replaced            → 201 + Location
    ACL deleted                        → 204
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from http import HTTPStatus
from typing import Any, Iterable, Mapping

import grpc
from pydantic import TypeAdapter

from .engine import DecisionEngine
from .exceptions import AccessRolesError, get_http_status
from .gateway import AccessRolesGateway
from .hierarchy import HierarchyView
from .logging import get_request_logger
from .model import AccessRequest, Action, ExistenceState, PrincipalClass

logger = logging.getLogger(__name__)

# Forwarded identity headers (set by the authenticating front end)
PRINCIPAL_HEADER = "x-principal"
GROUPS_HEADER = "x-principal-groups"
SUPERUSER_HEADER = "x-superuser"
REQUEST_ID_HEADER = "x-request-id"

_TRUTHY = {"true", "1", "yes", "on"}

_ACL_BODY = TypeAdapter(dict[str, list[str]])
_ERROR_BODY = TypeAdapter(dict[str, str])


@dataclass
class Response:
    """Protocol-neutral response."""

    status: HTTPStatus
    body: str | None = None
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def location(self) -> str | None:
        return self.headers.get("Location")

    @property
    def ok(self) -> bool:
        return self.status < 400


def _error_response(error: AccessRolesError) -> Response:
    body = _ERROR_BODY.dump_json({"code": error.code, "message": error.message}).decode()
    return Response(get_http_status(error), body=body, headers={"Content-Type": "application/json"})


class AccessRolesEndpoint:
    """HTTP-style binding for access role management.

    Args:
        gateway: Mutation gateway.
        engine: Decision engine (for plain resource actions).
        hierarchy: Hierarchy view (to tell purged from forbidden for superusers).
        acl_subpath: Sub-resource name of a node's ACL.
        base_url: Prefix for ``Location`` headers.
    """

    def __init__(
        self,
        gateway: AccessRolesGateway,
        engine: DecisionEngine,
        hierarchy: HierarchyView,
        *,
        acl_subpath: str = "fcr:accessroles",
        base_url: str = "",
    ) -> None:
        self._gateway = gateway
        self._engine = engine
        self._hierarchy = hierarchy
        self._acl_subpath = acl_subpath
        self._base_url = base_url.rstrip("/")

    def acl_location(self, resource: str) -> str:
        return f"{self._base_url}{resource.rstrip('/')}/{self._acl_subpath}"

    def authorize(self, request: AccessRequest) -> Response:
        """Gate an ordinary resource operation (read, add child, update, delete)."""
        log = get_request_logger(__name__, request)
        result = self._engine.evaluate(request)

        if not result.allowed:
            log.info("%s forbidden (%s)", request.action.value, result.reason.value)
            return Response(HTTPStatus.FORBIDDEN)

        if request.is_superuser and self._hierarchy.state_of(request.resource) is not ExistenceState.LIVE:
            return Response(HTTPStatus.NOT_FOUND)
        return Response(HTTPStatus.OK)

    def get(self, request: AccessRequest, *, effective: bool = False) -> Response:
        """``GET <path>/fcr:accessroles[?effective]``."""
        log = get_request_logger(__name__, request)
        log.debug("Get access roles (effective=%s)", effective)
        try:
            data = self._gateway.get_acl(request, effective=effective)
        except AccessRolesError as e:
            return _error_response(e)

        if data is None:
            return Response(HTTPStatus.NO_CONTENT)
        return Response(
            HTTPStatus.OK,
            body=_ACL_BODY.dump_json(data).decode(),
            headers={"Content-Type": "application/json"},
        )

    def post(self, request: AccessRequest, body: str | bytes | Mapping[str, Iterable[str]]) -> Response:
        """``POST <path>/fcr:accessroles`` with a JSON principal → roles document."""
        log = get_request_logger(__name__, request)
        try:
            self._gateway.set_acl(request, body)
        except AccessRolesError as e:
            log.info("Access roles not saved: [%s] %s", e.code, e.message)
            return _error_response(e)

        return Response(HTTPStatus.CREATED, headers={"Location": self.acl_location(request.resource)})

    def delete(self, request: AccessRequest) -> Response:
        """``DELETE <path>/fcr:accessroles``."""
        try:
            self._gateway.delete_acl(request)
        except AccessRolesError as e:
            return _error_response(e)
        return Response(HTTPStatus.NO_CONTENT)


# ── Identity extraction ─────────────────────────────────


def request_from_metadata(
    metadata: Mapping[str, str] | Iterable[tuple[str, str]],
    resource: str,
    action: Action = Action.READ,
) -> AccessRequest:
    """Build an AccessRequest from forwarded identity headers.

    Header names are matched case-insensitively. A request without
    ``x-principal`` carries only the implicit ``EVERYONE`` principal.

    Example::

        request_from_metadata(
            {"X-Principal": "alice", "X-Principal-Groups": "staff, editors"},
            "/a/b",
            Action.UPDATE_CONTENT,
        )
    """
    items = metadata.items() if isinstance(metadata, Mapping) else metadata
    headers: dict[str, Any] = {str(k).lower(): v for k, v in items}

    principals: set[str] = set()
    principal = str(headers.get(PRINCIPAL_HEADER, "")).strip()
    if principal:
        principals.add(principal)
    groups = str(headers.get(GROUPS_HEADER, ""))
    principals.update(g.strip() for g in groups.split(",") if g.strip())

    superuser = str(headers.get(SUPERUSER_HEADER, "")).strip().lower() in _TRUTHY

    return AccessRequest(
        principals=frozenset(principals),
        resource=resource,
        action=action,
        principal_class=PrincipalClass.SUPERUSER if superuser else PrincipalClass.ORDINARY,
        request_id=str(headers.get(REQUEST_ID_HEADER, "")),
    )


def request_from_grpc_context(
    context: grpc.ServicerContext,
    resource: str,
    action: Action = Action.READ,
) -> AccessRequest:
    """Build an AccessRequest from gRPC invocation metadata."""
    return request_from_metadata(context.invocation_metadata() or (), resource, action)


__all__ = [
    "AccessRolesEndpoint",
    "Response",
    "request_from_grpc_context",
    "request_from_metadata",
]
