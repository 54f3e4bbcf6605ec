"""Tests for the gRPC binding and its error handling."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import grpc
import pytest

from accessroles import (
    AccessControlList,
    AccessRolesGateway,
    InMemoryAclStore,
)
from accessroles.grpc_service import SERVICE_NAME, AccessRolesServicer, add_access_roles_servicer


def _context(principal: str = "fedoraAdmin", *, superuser: bool = True) -> MagicMock:
    """Build a servicer context carrying forwarded identity metadata."""
    context = MagicMock()
    metadata = [("x-principal", principal), ("x-request-id", "rpc-1")]
    if superuser:
        metadata.append(("x-superuser", "true"))
    context.invocation_metadata.return_value = tuple(metadata)
    context.abort = AsyncMock()
    return context


def _body(**fields) -> bytes:
    return json.dumps(fields).encode()


@pytest.fixture
def servicer(gateway: AccessRolesGateway) -> AccessRolesServicer:
    return AccessRolesServicer(gateway)


class TestAccessRolesServicer:
    @pytest.mark.asyncio
    async def test_set_then_get(self, servicer: AccessRolesServicer) -> None:
        """Test that roles set over gRPC are read back."""
        context = _context()
        reply = await servicer.SetAccessRoles(_body(path="a/b", roles={"alice": ["admin"]}), context)
        assert reply == {"path": "/a/b", "created": True}

        reply = await servicer.GetAccessRoles(_body(path="/a/b"), context)
        assert reply == {"path": "/a/b", "roles": {"alice": ["admin"]}}
        context.abort.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_effective_get(self, servicer: AccessRolesServicer, store: InMemoryAclStore) -> None:
        store.set("/a", AccessControlList.from_assignments({"alice": ["reader"]}))
        context = _context("alice", superuser=False)
        reply = await servicer.GetAccessRoles(_body(path="/a/c/item", effective=True), context)
        assert reply["roles"] == {"alice": ["reader"]}

    @pytest.mark.asyncio
    async def test_delete(self, servicer: AccessRolesServicer, store: InMemoryAclStore) -> None:
        store.set("/a", AccessControlList.from_assignments({"alice": ["reader"]}))
        reply = await servicer.DeleteAccessRoles(_body(path="/a"), _context())
        assert reply == {"path": "/a", "deleted": True}
        assert store.get("/a") is None

    @pytest.mark.asyncio
    async def test_denied_caller_aborts_permission_denied(self, servicer: AccessRolesServicer) -> None:
        """Test that a gateway denial becomes PERMISSION_DENIED with an error-code trailer."""
        context = _context("mallory", superuser=False)
        await servicer.SetAccessRoles(_body(path="/a", roles={"mallory": ["admin"]}), context)
        context.set_trailing_metadata.assert_called_once_with([("error-code", "PERMISSION_DENIED")])
        status, message = context.abort.await_args.args
        assert status == grpc.StatusCode.PERMISSION_DENIED
        assert message.startswith("[PERMISSION_DENIED]")

    @pytest.mark.asyncio
    async def test_root_aborts(self, servicer: AccessRolesServicer) -> None:
        context = _context()
        await servicer.SetAccessRoles(_body(path="/", roles={"EVERYONE": ["reader"]}), context)
        context.set_trailing_metadata.assert_called_once_with([("error-code", "ROOT_ACL_FORBIDDEN")])
        assert context.abort.await_args.args[0] == grpc.StatusCode.PERMISSION_DENIED

    @pytest.mark.asyncio
    async def test_invalid_roles_abort_invalid_argument(self, servicer: AccessRolesServicer) -> None:
        context = _context()
        await servicer.SetAccessRoles(_body(path="/a", roles={"alice": []}), context)
        assert context.abort.await_args.args[0] == grpc.StatusCode.INVALID_ARGUMENT

    @pytest.mark.asyncio
    async def test_malformed_body_aborts_invalid_argument(self, servicer: AccessRolesServicer) -> None:
        context = _context()
        await servicer.GetAccessRoles(b"{not json", context)
        assert context.abort.await_args.args[0] == grpc.StatusCode.INVALID_ARGUMENT

    @pytest.mark.asyncio
    async def test_missing_path_aborts_invalid_argument(self, servicer: AccessRolesServicer) -> None:
        context = _context()
        await servicer.DeleteAccessRoles(_body(roles={}), context)
        status, message = context.abort.await_args.args
        assert status == grpc.StatusCode.INVALID_ARGUMENT
        assert "resource path" in message

    @pytest.mark.asyncio
    async def test_missing_acl_aborts_not_found(self, servicer: AccessRolesServicer) -> None:
        context = _context()
        await servicer.DeleteAccessRoles(_body(path="/a"), context)
        assert context.abort.await_args.args[0] == grpc.StatusCode.NOT_FOUND

    @pytest.mark.asyncio
    async def test_unexpected_error_is_internal(self) -> None:
        """Test that a non-package error aborts with INTERNAL."""
        gateway = MagicMock(spec=AccessRolesGateway)
        gateway.get_acl.side_effect = RuntimeError("kaboom")
        context = _context()
        await AccessRolesServicer(gateway).GetAccessRoles(_body(path="/a"), context)
        status, message = context.abort.await_args.args
        assert status == grpc.StatusCode.INTERNAL
        assert "kaboom" in message


class TestRegistration:
    def test_generic_handler_registered(self, servicer: AccessRolesServicer) -> None:
        server = MagicMock()
        add_access_roles_servicer(servicer, server)
        (handlers,), _ = server.add_generic_rpc_handlers.call_args
        assert len(handlers) == 1

        details = MagicMock()
        details.method = f"/{SERVICE_NAME}/SetAccessRoles"
        handler = handlers[0].service(details)
        assert handler is not None
        assert handler.response_serializer({"created": True}) == b'{"created":true}'
