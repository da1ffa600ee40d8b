"""Component base class.

A component is a server-defined unit with declared public properties and
methods.  Each request works on a fresh instance: it is created, hydrated
from verified state, mutated, rendered, and discarded.  Nothing about an
instance outlives the request.

Lifecycle hooks (all optional):

    mount(**params)          first render only
    hydrate()                after state was assigned and the request authorized
    updating(name, value)    before a client property write
    updating_<name>(value)
    updated(name, value)     once per property whose value changed, including
                             properties changed by other updated hooks
    updated_<name>(value)
    dehydrate()              before the new state is read back

Hooks may raise ``ValidationError``; the whole mutation is then rolled back.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, ClassVar

from diffyne.component.manifest import is_json_value
from diffyne.component.validation import ErrorBag, validate_values

if TYPE_CHECKING:
    from collections.abc import Mapping

    from diffyne._types import ComponentState
    from diffyne.component.manifest import CapabilityManifest


@dataclass(frozen=True, slots=True)
class DispatchedEvent:
    """A browser event emitted by component code for the client to fire."""

    name: str
    payload: dict[str, Any] = field(default_factory=dict, hash=False)

    def to_wire(self) -> dict[str, Any]:
        return {"name": self.name, "payload": self.payload}


class Component:
    """Base class for diffyne components.

    Subclasses declare public properties as annotated class attributes and
    expose methods with ``@invokable``.  Set ``template`` to render through a
    Kida template, or define ``render(self) -> str``.

    """

    template: ClassVar[str | None] = None

    def __init__(self, component_id: str, manifest: CapabilityManifest) -> None:
        self.component_id = component_id
        self._manifest = manifest
        self.errors = ErrorBag()
        self._events: list[DispatchedEvent] = []
        self._redirect: str | None = None
        for spec in manifest.properties.values():
            setattr(self, spec.name, copy.deepcopy(spec.default))

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.component_id}>"

    @property
    def manifest(self) -> CapabilityManifest:
        return self._manifest

    # ----- lifecycle hooks -----

    def mount(self, **params: Any) -> None:
        """Assign mount parameters to declared properties."""
        for name, value in params.items():
            if name not in self._manifest.properties:
                msg = f"{type(self).__name__}.mount() got an unexpected parameter {name!r}"
                raise TypeError(msg)
            setattr(self, name, value)

    def hydrate(self) -> None:
        pass

    def dehydrate(self) -> None:
        pass

    def updating(self, name: str, value: Any) -> None:
        pass

    def updated(self, name: str, value: Any) -> None:
        pass

    # ----- state -----

    def state(self) -> ComponentState:
        """Snapshot of the declared public properties."""
        return {
            name: copy.deepcopy(getattr(self, name))
            for name in self._manifest.properties
        }

    def context(self) -> dict[str, Any]:
        """Template context: public state plus ``errors`` and ``component``."""
        return {**self.state(), "errors": self.errors, "component": self}

    def reset(self, *names: str) -> None:
        """Restore properties to their declared defaults (all if none given)."""
        for name in names or tuple(self._manifest.properties):
            spec = self._manifest.properties[name]
            setattr(self, name, copy.deepcopy(spec.default))

    # ----- validation -----

    def add_error(self, field: str, message: str) -> None:
        self.errors.add(field, message)

    def validate(self, rules: Mapping[str, str]) -> ComponentState:
        """Validate current property values; return the validated subset.

        Raises:
            ValidationError: If any rule fails.

        """
        values = {name: getattr(self, name, None) for name in rules}
        validate_values(values, rules)
        return values

    # ----- side channels -----

    def dispatch(self, event: str, /, **payload: Any) -> None:
        """Ask the client to fire a browser event after patching."""
        if not is_json_value(payload):
            msg = f"event {event!r} payload must be JSON-representable"
            raise ValueError(msg)
        self._events.append(DispatchedEvent(name=event, payload=dict(payload)))

    def redirect(self, url: str) -> None:
        """Ask the client to navigate to *url* after this request."""
        self._redirect = url

    @property
    def dispatched_events(self) -> tuple[DispatchedEvent, ...]:
        return tuple(self._events)

    @property
    def redirect_url(self) -> str | None:
        return self._redirect
