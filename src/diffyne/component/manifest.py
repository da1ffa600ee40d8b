"""Capability manifests — the client-exposed surface of a component type.

A manifest is data, not behavior: the declared public properties (with their
value kinds), which of them are locked, and which methods the client may call
with which parameters.  It is derived once, when a component class is
registered, and is immutable afterwards.  Per-request authorization is a
lookup in these tables; nothing is discovered by reflection at request time.

Declaring a component::

    class PostList(Component):
        page: int = 1
        posts: Locked[list] = []

        @invokable
        def next_page(self) -> None:
            self.page += 1

"""

from __future__ import annotations

import inspect
import types
import typing
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Annotated, Any, ClassVar, Literal, Union

from diffyne._errors import ConfigError

type PropertyKind = Literal["str", "int", "float", "bool", "list", "dict", "any"]

_KIND_BY_TYPE: dict[object, PropertyKind] = {
    str: "str",
    int: "int",
    float: "float",
    bool: "bool",
    list: "list",
    dict: "dict",
    Any: "any",
}

_ZERO_VALUES: dict[PropertyKind, object] = {
    "str": "",
    "int": 0,
    "float": 0.0,
    "bool": False,
    "list": [],
    "dict": {},
    "any": None,
}

# Names that belong to the component machinery and can never be exposed.
RESERVED_NAMES: frozenset[str] = frozenset({
    "mount",
    "hydrate",
    "dehydrate",
    "updating",
    "updated",
    "render",
    "state",
    "context",
    "validate",
    "add_error",
    "reset",
    "dispatch",
    "redirect",
    "errors",
    "component_id",
    "template",
    "manifest",
    "dispatched_events",
    "redirect_url",
})


# ---------------------------------------------------------------------------
# Declaration markers
# ---------------------------------------------------------------------------


class _LockedMarker:
    """Annotation metadata marking a property as locked."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "LOCKED"


LOCKED = _LockedMarker()


class Locked:
    """Mark a property as readable by the client but never writable by it.

    ``posts: Locked[list] = []`` is shorthand for
    ``posts: Annotated[list, LOCKED] = []``.  Component code may still
    assign the property freely.

    """

    def __class_getitem__(cls, item: object) -> object:
        return Annotated[item, LOCKED]


def invokable(func: Any) -> Any:
    """Expose a component method to client-triggered calls."""
    func.__diffyne_invokable__ = True
    return func


# ---------------------------------------------------------------------------
# Value checks
# ---------------------------------------------------------------------------


def is_json_value(value: object) -> bool:
    """True if *value* is made only of JSON-representable Python values."""
    if value is None or isinstance(value, (str, bool, int, float)):
        return True
    if isinstance(value, list):
        return all(is_json_value(v) for v in value)
    if isinstance(value, dict):
        return all(isinstance(k, str) and is_json_value(v) for k, v in value.items())
    return False


def value_matches(kind: PropertyKind, value: object, *, nullable: bool = False) -> bool:
    """Check a decoded value against a declared kind.

    ``bool`` never satisfies ``int`` or ``float``; ``int`` satisfies ``float``
    because JSON has a single number type.

    """
    if value is None:
        return nullable or kind == "any"
    match kind:
        case "any":
            return is_json_value(value)
        case "bool":
            return isinstance(value, bool)
        case "int":
            return isinstance(value, int) and not isinstance(value, bool)
        case "float":
            return isinstance(value, (int, float)) and not isinstance(value, bool)
        case "str":
            return isinstance(value, str)
        case "list":
            return isinstance(value, list) and is_json_value(value)
        case "dict":
            return isinstance(value, dict) and is_json_value(value)
    return False


# ---------------------------------------------------------------------------
# Manifest data
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class PropertySpec:
    """A declared public property.

    Attributes:
        name: Property name.
        kind: Declared value kind.
        nullable: Whether ``None`` is accepted.
        locked: Whether client writes are refused.
        default: Class-level default, copied into each new instance.

    """

    name: str
    kind: PropertyKind
    nullable: bool = False
    locked: bool = False
    default: Any = field(default=None, compare=False)

    def accepts(self, value: object) -> bool:
        return value_matches(self.kind, value, nullable=self.nullable)


@dataclass(frozen=True, slots=True)
class ParamSpec:
    """One declared parameter of an invokable method."""

    name: str
    kind: PropertyKind
    nullable: bool = False
    required: bool = True

    def accepts(self, value: object) -> bool:
        return value_matches(self.kind, value, nullable=self.nullable)


@dataclass(frozen=True, slots=True)
class MethodSpec:
    """An invokable method and its positional parameter list."""

    name: str
    params: tuple[ParamSpec, ...] = ()

    @property
    def min_arity(self) -> int:
        return sum(1 for p in self.params if p.required)

    @property
    def max_arity(self) -> int:
        return len(self.params)


@dataclass(frozen=True, slots=True)
class CapabilityManifest:
    """The client-exposed surface of one component type.

    Attributes:
        component: Registered component name.
        properties: Declared public properties by name.
        locked_properties: Names the client may read but never write.
        invokable_methods: Methods the client may call, by name.

    """

    component: str
    properties: Mapping[str, PropertySpec]
    locked_properties: frozenset[str]
    invokable_methods: Mapping[str, MethodSpec]

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", types.MappingProxyType(dict(self.properties)))
        object.__setattr__(
            self, "invokable_methods", types.MappingProxyType(dict(self.invokable_methods))
        )
        unknown = self.locked_properties - self.properties.keys()
        if unknown:
            msg = f"{self.component}: locked names are not properties: {sorted(unknown)}"
            raise ConfigError(msg)

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready description of the manifest."""
        return {
            "component": self.component,
            "properties": {
                name: {"kind": spec.kind, "nullable": spec.nullable, "locked": spec.locked}
                for name, spec in sorted(self.properties.items())
            },
            "lockedProperties": sorted(self.locked_properties),
            "invokableMethods": {
                name: [
                    {"name": p.name, "kind": p.kind, "nullable": p.nullable, "required": p.required}
                    for p in spec.params
                ]
                for name, spec in sorted(self.invokable_methods.items())
            },
        }


# ---------------------------------------------------------------------------
# Derivation from a component class
# ---------------------------------------------------------------------------


def _unwrap_annotation(hint: object) -> tuple[object, bool, bool]:
    """Return (base type, nullable, locked) for a property or parameter annotation."""
    locked = False
    if typing.get_origin(hint) is Annotated:
        locked = any(meta is LOCKED for meta in hint.__metadata__)  # type: ignore[attr-defined]
        hint = typing.get_args(hint)[0]

    nullable = False
    if typing.get_origin(hint) in (Union, types.UnionType):
        args = [a for a in typing.get_args(hint) if a is not type(None)]
        nullable = len(args) < len(typing.get_args(hint))
        if len(args) != 1:
            return Any, nullable, locked
        hint = args[0]

    origin = typing.get_origin(hint)
    if origin is not None:
        hint = origin
    return hint, nullable, locked


def _kind_for(owner: str, name: str, base: object) -> PropertyKind:
    kind = _KIND_BY_TYPE.get(base)
    if kind is None:
        msg = f"{owner}.{name}: unsupported type {base!r} (use str, int, float, bool, list, dict, Any)"
        raise ConfigError(msg)
    return kind


def _property_specs(cls: type, owner: str) -> dict[str, PropertySpec]:
    try:
        hints = typing.get_type_hints(cls, include_extras=True)
    except Exception as exc:
        msg = f"{owner}: cannot resolve property annotations: {exc}"
        raise ConfigError(msg) from exc

    specs: dict[str, PropertySpec] = {}
    for name, hint in hints.items():
        if name.startswith("_") or typing.get_origin(hint) is ClassVar or hint is ClassVar:
            continue
        if name in RESERVED_NAMES:
            msg = f"{owner}.{name}: property name is reserved"
            raise ConfigError(msg)
        base, nullable, locked = _unwrap_annotation(hint)
        kind = _kind_for(owner, name, base)
        if hasattr(cls, name):
            default = getattr(cls, name)
        elif nullable:
            default = None
        else:
            default = _ZERO_VALUES[kind]
        if not value_matches(kind, default, nullable=nullable):
            msg = f"{owner}.{name}: default {default!r} does not match {kind}"
            raise ConfigError(msg)
        specs[name] = PropertySpec(
            name=name, kind=kind, nullable=nullable, locked=locked, default=default,
        )
    return specs


def _method_spec(func: Any, owner: str, name: str) -> MethodSpec:
    try:
        hints = typing.get_type_hints(func)
    except Exception:
        hints = {}
    params: list[ParamSpec] = []
    for i, param in enumerate(inspect.signature(func).parameters.values()):
        if i == 0:
            continue  # self
        if param.kind not in (param.POSITIONAL_ONLY, param.POSITIONAL_OR_KEYWORD):
            msg = f"{owner}.{name}: invokable methods take positional parameters only"
            raise ConfigError(msg)
        base, nullable, _ = _unwrap_annotation(hints.get(param.name, Any))
        params.append(
            ParamSpec(
                name=param.name,
                kind=_kind_for(owner, f"{name}({param.name})", base),
                nullable=nullable,
                required=param.default is param.empty,
            )
        )
    return MethodSpec(name=name, params=tuple(params))


def build_manifest(cls: type, name: str) -> CapabilityManifest:
    """Derive the capability manifest for a component class.

    Raises:
        ConfigError: On unsupported annotations, reserved or private invokable
            names, or a method that shadows a property.

    """
    owner = cls.__qualname__
    properties = _property_specs(cls, owner)

    names: dict[str, None] = {}
    for klass in reversed(cls.__mro__):
        names.update(dict.fromkeys(vars(klass)))

    methods: dict[str, MethodSpec] = {}
    for attr in names:
        # An override without the decorator withdraws the exposure.
        obj = inspect.getattr_static(cls, attr)
        if not getattr(obj, "__diffyne_invokable__", False):
            continue
        if attr.startswith("_") or attr in RESERVED_NAMES:
            msg = f"{owner}.{attr}: lifecycle and private methods cannot be invokable"
            raise ConfigError(msg)
        if attr in properties:
            msg = f"{owner}.{attr}: invokable method shadows a property"
            raise ConfigError(msg)
        methods[attr] = _method_spec(obj, owner, attr)

    return CapabilityManifest(
        component=name,
        properties=properties,
        locked_properties=frozenset(n for n, s in properties.items() if s.locked),
        invokable_methods=methods,
    )
