"""Validation rules and the per-request error bag.

Rules are pipe-separated strings, one per field::

    self.validate({
        "name": "required|string|min:2|max:80",
        "email": "required|email",
        "priority": "in:low,normal,high",
    })

Supported rules: ``required``, ``string``, ``integer``, ``numeric``,
``boolean``, ``email``, ``min:n``, ``max:n``, ``in:a,b,...``.  ``min`` and
``max`` compare string length, list length, or numeric value depending on
the value.  Fields that are empty and not ``required`` skip the other rules.
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from typing import Any

from diffyne._errors import ConfigError, ValidationError

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class ErrorBag:
    """Validation messages collected for one request, by field."""

    __slots__ = ("_messages",)

    def __init__(self, messages: Mapping[str, list[str]] | None = None) -> None:
        self._messages: dict[str, list[str]] = {k: list(v) for k, v in (messages or {}).items()}

    def add(self, field: str, message: str) -> None:
        self._messages.setdefault(field, []).append(message)

    def merge(self, errors: Mapping[str, list[str]]) -> None:
        for field, messages in errors.items():
            for message in messages:
                self.add(field, message)

    def has(self, field: str) -> bool:
        return bool(self._messages.get(field))

    def first(self, field: str) -> str | None:
        messages = self._messages.get(field)
        return messages[0] if messages else None

    def get(self, field: str) -> list[str]:
        return list(self._messages.get(field, ()))

    def clear(self) -> None:
        self._messages.clear()

    def to_dict(self) -> dict[str, list[str]]:
        return {k: list(v) for k, v in self._messages.items()}

    def to_wire(self) -> list[dict[str, str]]:
        """Flatten to the response shape ``[{field, message}, ...]``."""
        return [
            {"field": field, "message": message}
            for field, messages in self._messages.items()
            for message in messages
        ]

    def __bool__(self) -> bool:
        return any(self._messages.values())

    def __len__(self) -> int:
        return sum(len(v) for v in self._messages.values())

    def __iter__(self) -> Iterator[str]:
        return iter(self._messages)

    def __contains__(self, field: object) -> bool:
        return isinstance(field, str) and self.has(field)

    def __repr__(self) -> str:
        return f"ErrorBag({self._messages!r})"


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _size(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, (str, list, dict)):
        return len(value)
    return None


def _check(field: str, rule: str, arg: str | None, value: Any) -> str | None:
    """Return an error message if *value* fails *rule*, else None."""
    label = field.replace("_", " ")
    match rule:
        case "required":
            return f"The {label} field is required." if _is_empty(value) else None
        case "string":
            return None if isinstance(value, str) else f"The {label} must be a string."
        case "integer":
            ok = isinstance(value, int) and not isinstance(value, bool)
            return None if ok else f"The {label} must be an integer."
        case "numeric":
            ok = isinstance(value, (int, float)) and not isinstance(value, bool)
            return None if ok else f"The {label} must be a number."
        case "boolean":
            return None if isinstance(value, bool) else f"The {label} must be true or false."
        case "email":
            ok = isinstance(value, str) and _EMAIL_RE.match(value) is not None
            return None if ok else f"The {label} must be a valid email address."
        case "min" | "max":
            limit = float(arg or 0)
            size = _size(value)
            if size is None:
                return f"The {label} has an invalid size."
            if rule == "min" and size < limit:
                return f"The {label} must be at least {arg}."
            if rule == "max" and size > limit:
                return f"The {label} may not be greater than {arg}."
            return None
        case "in":
            allowed = (arg or "").split(",")
            return None if str(value) in allowed else f"The selected {label} is invalid."
    msg = f"unknown validation rule {rule!r} for field {field!r}"
    raise ConfigError(msg)


def validate_values(values: Mapping[str, Any], rules: Mapping[str, str]) -> None:
    """Apply *rules* to *values*.

    Raises:
        ValidationError: With every failing message, grouped by field.
        ConfigError: On an unknown rule name.

    """
    errors: dict[str, list[str]] = {}
    for field, spec in rules.items():
        value = values.get(field)
        parts = [p for p in spec.split("|") if p]
        required = "required" in parts
        if not required and _is_empty(value):
            continue
        for part in parts:
            rule, _, arg = part.partition(":")
            message = _check(field, rule, arg or None, value)
            if message is not None:
                errors.setdefault(field, []).append(message)
                if rule == "required":
                    break
    if errors:
        raise ValidationError(errors)
