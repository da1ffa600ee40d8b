"""Tests for diffyne.component.validation — rules and the error bag."""

from __future__ import annotations

import pytest

from diffyne._errors import ConfigError, ValidationError
from diffyne.component.validation import ErrorBag, validate_values


class TestErrorBag:
    def test_add_and_query(self) -> None:
        bag = ErrorBag()
        bag.add("email", "Invalid.")
        bag.add("email", "Taken.")
        assert bag.has("email")
        assert bag.first("email") == "Invalid."
        assert bag.get("email") == ["Invalid.", "Taken."]
        assert "email" in bag
        assert "name" not in bag
        assert len(bag) == 2

    def test_empty_is_falsy(self) -> None:
        assert not ErrorBag()
        assert ErrorBag().first("x") is None

    def test_merge(self) -> None:
        bag = ErrorBag({"name": ["Short."]})
        bag.merge({"name": ["Blank."], "email": ["Bad."]})
        assert bag.to_dict() == {"name": ["Short.", "Blank."], "email": ["Bad."]}

    def test_to_wire(self) -> None:
        bag = ErrorBag({"name": ["Short."], "email": ["Bad."]})
        assert bag.to_wire() == [
            {"field": "name", "message": "Short."},
            {"field": "email", "message": "Bad."},
        ]

    def test_clear(self) -> None:
        bag = ErrorBag({"name": ["Short."]})
        bag.clear()
        assert not bag


class TestValidateValues:
    def test_passes(self) -> None:
        validate_values(
            {"name": "Ada", "email": "ada@example.com", "age": 36},
            {"name": "required|string|min:2", "email": "required|email", "age": "integer|max:150"},
        )

    def test_required(self) -> None:
        with pytest.raises(ValidationError) as info:
            validate_values({"name": ""}, {"name": "required|min:2"})
        assert info.value.errors == {"name": ["The name field is required."]}

    def test_optional_empty_skips_rules(self) -> None:
        validate_values({"nickname": ""}, {"nickname": "min:3"})

    def test_collects_all_fields(self) -> None:
        with pytest.raises(ValidationError) as info:
            validate_values({"name": "A", "email": "nope"}, {"name": "min:2", "email": "email"})
        assert set(info.value.errors) == {"name", "email"}

    @pytest.mark.parametrize(
        ("value", "rule"),
        [
            ("abc", "max:2"),
            ([1], "min:2"),
            (5, "min:10"),
            (True, "integer"),
            ("1", "numeric"),
            ("yes", "boolean"),
            ("urgent", "in:low,normal,high"),
            (3, "string"),
        ],
    )
    def test_failing_rules(self, value: object, rule: str) -> None:
        with pytest.raises(ValidationError):
            validate_values({"field": value}, {"field": rule})

    def test_in_rule(self) -> None:
        validate_values({"priority": "high"}, {"priority": "in:low,normal,high"})

    def test_human_label(self) -> None:
        with pytest.raises(ValidationError) as info:
            validate_values({}, {"first_name": "required"})
        assert info.value.errors["first_name"] == ["The first name field is required."]

    def test_unknown_rule(self) -> None:
        with pytest.raises(ConfigError, match="unknown validation rule"):
            validate_values({"x": "1"}, {"x": "uuid"})
