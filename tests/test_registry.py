"""Tests for diffyne.component.registry."""

from __future__ import annotations

import pytest

from diffyne._errors import ConfigError, SchemaError
from diffyne.component import Component, ComponentRegistry
from diffyne.component.registry import default_component_name, split_component_id

from .conftest import Counter, PostList, TodoList


class TestDefaultName:
    def test_kebab_case(self) -> None:
        assert default_component_name(TodoList) == "todo-list"
        assert default_component_name(Counter) == "counter"


class TestSplitComponentId:
    def test_split(self) -> None:
        assert split_component_id("post-list:abc123") == ("post-list", "abc123")

    @pytest.mark.parametrize("bad", ["counter", ":abc", "counter:", ""])
    def test_malformed(self, bad: str) -> None:
        with pytest.raises(SchemaError):
            split_component_id(bad)


class TestComponentRegistry:
    """ComponentRegistry — registration and lookups."""

    def test_register_returns_class(self) -> None:
        registry = ComponentRegistry()
        assert registry.register(Counter) is Counter
        assert "counter" in registry
        assert len(registry) == 1

    def test_decorator_with_name(self) -> None:
        registry = ComponentRegistry()

        @registry.register(name="clicker")
        class Clicker(Component):
            clicks: int = 0

        assert registry.get("clicker").cls is Clicker
        assert registry.manifest("clicker").component == "clicker"

    def test_duplicate_name(self) -> None:
        registry = ComponentRegistry()
        registry.register(Counter)
        with pytest.raises(ConfigError, match="already registered"):
            registry.register(Counter)

    def test_invalid_name(self) -> None:
        with pytest.raises(ConfigError, match="invalid component name"):
            ComponentRegistry().register(Counter, name="Bad Name")

    def test_not_a_component(self) -> None:
        with pytest.raises(ConfigError):
            ComponentRegistry().register(dict)  # type: ignore[arg-type]

    def test_unknown_name(self) -> None:
        with pytest.raises(SchemaError, match="unknown component"):
            ComponentRegistry().get("nope")

    def test_resolve_by_instance_id(self, registry: ComponentRegistry) -> None:
        assert registry.resolve("post-list:0011").cls is PostList

    def test_new_component_id(self, registry: ComponentRegistry) -> None:
        first = registry.new_component_id("counter")
        second = registry.new_component_id("counter")
        assert first.startswith("counter:")
        assert first != second
        assert registry.resolve(first).name == "counter"

    def test_new_id_for_unknown(self, registry: ComponentRegistry) -> None:
        with pytest.raises(SchemaError):
            registry.new_component_id("missing")

    def test_names_sorted(self, registry: ComponentRegistry) -> None:
        assert registry.names() == ("contact-form", "counter", "post-list", "todo-list")
