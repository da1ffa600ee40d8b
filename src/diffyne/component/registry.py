"""Component registry — component types and their immutable manifests.

Registration happens at startup.  Afterwards the registry is only read, and
reads go to an immutable snapshot that is swapped atomically on each
registration, so lookups from concurrent requests never take the lock.
"""

from __future__ import annotations

import re
import secrets
import threading
import types
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from diffyne._errors import ConfigError, SchemaError
from diffyne.component.base import Component
from diffyne.component.manifest import build_manifest

if TYPE_CHECKING:
    from diffyne._types import ComponentID
    from diffyne.component.manifest import CapabilityManifest

C = TypeVar("C", bound=type[Component])

_NAME_RE = re.compile(r"^[a-z][a-z0-9_.-]*$")


def default_component_name(cls: type) -> str:
    """``TodoList`` -> ``todo-list``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "-", cls.__name__).lower()


@dataclass(frozen=True, slots=True)
class Registration:
    """A registered component type."""

    name: str
    cls: type[Component]
    manifest: CapabilityManifest


def split_component_id(component_id: ComponentID) -> tuple[str, str]:
    """Split ``"<name>:<token>"``.

    Raises:
        SchemaError: If the id is not in that form.

    """
    name, sep, token = component_id.rpartition(":")
    if not sep or not name or not token:
        msg = f"malformed component id {component_id!r}"
        raise SchemaError(msg)
    return name, token


class ComponentRegistry:
    """Maps component names to classes and capability manifests."""

    __slots__ = ("_lock", "_snapshot")

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._snapshot: Mapping[str, Registration] = types.MappingProxyType({})

    def register(self, cls: C | None = None, *, name: str | None = None) -> C:
        """Register a component class.  Usable as ``@registry.register``.

        Raises:
            ConfigError: On duplicate names, invalid names, non-Component
                classes, or an invalid capability declaration.

        """
        if cls is None:
            return lambda c: self.register(c, name=name)  # type: ignore[return-value]

        if not (isinstance(cls, type) and issubclass(cls, Component)):
            msg = f"{cls!r} is not a Component subclass"
            raise ConfigError(msg)

        component_name = name or default_component_name(cls)
        if not _NAME_RE.match(component_name):
            msg = f"invalid component name {component_name!r}"
            raise ConfigError(msg)

        manifest = build_manifest(cls, component_name)
        with self._lock:
            if component_name in self._snapshot:
                msg = f"component {component_name!r} is already registered"
                raise ConfigError(msg)
            updated = dict(self._snapshot)
            updated[component_name] = Registration(
                name=component_name, cls=cls, manifest=manifest,
            )
            self._snapshot = types.MappingProxyType(updated)
        return cls

    def get(self, name: str) -> Registration:
        """Look up a registration by component name.

        Raises:
            SchemaError: If no component has that name.

        """
        registration = self._snapshot.get(name)
        if registration is None:
            msg = f"unknown component {name!r}"
            raise SchemaError(msg)
        return registration

    def resolve(self, component_id: ComponentID) -> Registration:
        """Look up the registration for a component instance id."""
        name, _token = split_component_id(component_id)
        return self.get(name)

    def manifest(self, name: str) -> CapabilityManifest:
        return self.get(name).manifest

    def new_component_id(self, name: str) -> ComponentID:
        """Fresh instance id for a registered component."""
        self.get(name)
        return f"{name}:{secrets.token_hex(8)}"

    def names(self) -> tuple[str, ...]:
        return tuple(sorted(self._snapshot))

    def __contains__(self, name: object) -> bool:
        return name in self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)
