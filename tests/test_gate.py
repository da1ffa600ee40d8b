"""Tests for diffyne.security.gate — the access gate."""

from __future__ import annotations

import pytest

from diffyne._errors import ArityError, LockedPropertyError, NotInvokableError, SchemaError
from diffyne.component.manifest import build_manifest
from diffyne.security import authorize_invoke, authorize_write

from .conftest import Counter, PostList, TodoList


class TestAuthorizeWrite:
    def test_unlocked_property(self) -> None:
        spec = authorize_write(build_manifest(PostList, "post-list"), "page")
        assert spec.name == "page"

    @pytest.mark.parametrize("name", ["posts", "total", "per_page"])
    def test_locked_property(self, name: str) -> None:
        with pytest.raises(LockedPropertyError) as info:
            authorize_write(build_manifest(PostList, "post-list"), name)
        assert info.value.property_name == name

    def test_unknown_property(self) -> None:
        with pytest.raises(SchemaError):
            authorize_write(build_manifest(Counter, "counter"), "admin")


class TestAuthorizeInvoke:
    def test_exposed_method(self) -> None:
        spec = authorize_invoke(build_manifest(Counter, "counter"), "add", [5])
        assert spec.name == "add"

    @pytest.mark.parametrize("name", ["render", "mount", "_load", "updated_page", "missing"])
    def test_not_invokable(self, name: str) -> None:
        with pytest.raises(NotInvokableError):
            authorize_invoke(build_manifest(PostList, "post-list"), name, [])

    def test_too_few_args(self) -> None:
        with pytest.raises(ArityError, match="expected 1"):
            authorize_invoke(build_manifest(Counter, "counter"), "add", [])

    def test_too_many_args(self) -> None:
        with pytest.raises(ArityError):
            authorize_invoke(build_manifest(Counter, "counter"), "increment", [1])

    def test_wrong_kind(self) -> None:
        with pytest.raises(ArityError, match="expects int"):
            authorize_invoke(build_manifest(TodoList, "todo-list"), "remove", ["1"])

    def test_bool_is_not_int(self) -> None:
        with pytest.raises(ArityError):
            authorize_invoke(build_manifest(Counter, "counter"), "add", [True])
