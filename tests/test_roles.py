"""Tests for the role matrix."""

from __future__ import annotations

import json

import pytest

from accessroles import (
    DEFAULT_ROLE_MATRIX,
    Action,
    ConfigurationError,
    RoleMatrix,
    get_role_matrix,
    init_role_matrix,
    reset_role_matrix,
)


class TestDefaultRoleMatrix:
    """The basic reader / writer / admin profile."""

    def test_reader_only_reads(self) -> None:
        assert DEFAULT_ROLE_MATRIX.actions_for({"reader"}) == frozenset({Action.READ})

    def test_writer_cannot_manage_acl(self) -> None:
        actions = DEFAULT_ROLE_MATRIX.actions_for({"writer"})
        assert Action.UPDATE_CONTENT in actions
        assert Action.ADD_CHILD_CONTENT in actions
        assert Action.DELETE_RESOURCE in actions
        assert Action.MANAGE_ACL not in actions

    def test_admin_has_every_action(self) -> None:
        assert DEFAULT_ROLE_MATRIX.actions_for({"admin"}) == frozenset(Action)

    def test_unknown_role_grants_nothing(self) -> None:
        assert DEFAULT_ROLE_MATRIX.actions_for({"janitor"}) == frozenset()

    def test_union(self) -> None:
        assert DEFAULT_ROLE_MATRIX.actions_for({"reader", "writer"}) == DEFAULT_ROLE_MATRIX.actions_for({"writer"})

    def test_grants(self) -> None:
        assert DEFAULT_ROLE_MATRIX.grants("admin", Action.MANAGE_ACL)
        assert not DEFAULT_ROLE_MATRIX.grants("reader", Action.UPDATE_CONTENT)


class TestRoleMatrixLoading:
    def test_from_mapping_with_strings(self) -> None:
        matrix = RoleMatrix({"auditor": ["READ"]})
        assert matrix.actions_for({"auditor"}) == frozenset({Action.READ})

    def test_unknown_action_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid role matrix"):
            RoleMatrix({"auditor": ["PEEK"]})

    def test_blank_role_rejected(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid role name"):
            RoleMatrix({" ": ["READ"]})

    def test_from_json(self) -> None:
        matrix = RoleMatrix.from_json('{"curator": ["READ", "UPDATE_CONTENT"]}')
        assert matrix.roles == frozenset({"curator"})
        assert matrix.grants("curator", Action.UPDATE_CONTENT)

    def test_from_json_unknown_action(self) -> None:
        with pytest.raises(ConfigurationError, match="Invalid role matrix document"):
            RoleMatrix.from_json('{"curator": ["PEEK"]}')

    def test_from_file(self, tmp_path) -> None:
        path = tmp_path / "roles.json"
        path.write_text(json.dumps({"reader": ["READ"], "admin": [a.value for a in Action]}))
        matrix = RoleMatrix.from_file(path)
        assert matrix.grants("admin", Action.MANAGE_ACL)

    def test_from_missing_file(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="Cannot read role matrix"):
            RoleMatrix.from_file(tmp_path / "missing.json")

    def test_to_dict_roundtrips_through_constructor(self) -> None:
        assert RoleMatrix(DEFAULT_ROLE_MATRIX.to_dict()) == DEFAULT_ROLE_MATRIX


class TestProcessWideMatrix:
    def test_default_when_not_initialized(self) -> None:
        assert get_role_matrix() is DEFAULT_ROLE_MATRIX

    def test_init_and_reset(self) -> None:
        custom = init_role_matrix({"reader": ["READ", "UPDATE_CONTENT"]})
        assert get_role_matrix() is custom
        reset_role_matrix()
        assert get_role_matrix() is DEFAULT_ROLE_MATRIX

    def test_init_none_installs_default(self) -> None:
        assert init_role_matrix() is DEFAULT_ROLE_MATRIX
