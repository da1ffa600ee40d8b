"""Client-requested mutations.

Two kinds arrive on the wire::

    {"kind": "propertySet", "name": "page", "value": 2}
    {"kind": "methodCall", "name": "next_page", "args": []}

"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from diffyne._errors import SchemaError
from diffyne.component.manifest import is_json_value


@dataclass(frozen=True, slots=True)
class PropertySet:
    """Overwrite one public property."""

    name: str
    value: Any = field(hash=False)

    kind = "propertySet"
    group = "update"

    def to_wire(self) -> dict[str, Any]:
        return {"kind": self.kind, "name": self.name, "value": self.value}


@dataclass(frozen=True, slots=True)
class MethodCall:
    """Call one invokable method with positional arguments."""

    name: str
    args: tuple[Any, ...] = field(default=(), hash=False)

    kind = "methodCall"
    group = "call"

    def to_wire(self) -> dict[str, Any]:
        return {"kind": self.kind, "name": self.name, "args": list(self.args)}


type Mutation = PropertySet | MethodCall


def parse_mutation(payload: object) -> Mutation:
    """Build a mutation from its wire form.

    Raises:
        SchemaError: On an unknown kind or malformed fields.

    """
    if not isinstance(payload, Mapping):
        msg = "mutation must be an object"
        raise SchemaError(msg)
    kind = payload.get("kind")
    name = payload.get("name")
    if not isinstance(name, str) or not name:
        msg = "mutation name must be a non-empty string"
        raise SchemaError(msg)

    if kind == "propertySet":
        if "value" not in payload:
            msg = "propertySet requires a value"
            raise SchemaError(msg)
        value = payload["value"]
        if not is_json_value(value):
            msg = "propertySet value must be JSON"
            raise SchemaError(msg)
        return PropertySet(name=name, value=value)

    if kind == "methodCall":
        args = payload.get("args", [])
        if not isinstance(args, list) or not is_json_value(args):
            msg = "methodCall args must be a JSON array"
            raise SchemaError(msg)
        return MethodCall(name=name, args=tuple(args))

    msg = f"unknown mutation kind {kind!r}"
    raise SchemaError(msg)
