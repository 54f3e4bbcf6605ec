"""Shared fixtures: a small repository tree with a bound in-memory store."""

from __future__ import annotations

import pytest

from accessroles import (
    AccessRolesEndpoint,
    AccessRolesGateway,
    DecisionEngine,
    InMemoryAclStore,
    InMemoryRepository,
    reset_role_matrix,
)


@pytest.fixture(autouse=True)
def _reset_role_matrix():
    reset_role_matrix()
    yield
    reset_role_matrix()


@pytest.fixture
def store() -> InMemoryAclStore:
    return InMemoryAclStore()


@pytest.fixture
def repo(store: InMemoryAclStore) -> InMemoryRepository:
    """Tree: /a, /a/b, /a/c, /a/c/item, /a/d, /x/y."""
    repo = InMemoryRepository(store)
    for path in ("/a/b", "/a/c/item", "/a/d", "/x/y"):
        repo.create(path, parents=True)
    return repo


@pytest.fixture
def engine(repo: InMemoryRepository, store: InMemoryAclStore) -> DecisionEngine:
    return DecisionEngine(repo, store)


@pytest.fixture
def gateway(repo: InMemoryRepository, store: InMemoryAclStore, engine: DecisionEngine) -> AccessRolesGateway:
    return AccessRolesGateway(repo, store, engine)


@pytest.fixture
def endpoint(
    gateway: AccessRolesGateway, engine: DecisionEngine, repo: InMemoryRepository
) -> AccessRolesEndpoint:
    return AccessRolesEndpoint(gateway, engine, repo, base_url="http://localhost:8080/rest")
