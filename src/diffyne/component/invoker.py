"""Invoker — applies one client mutation to a freshly hydrated component.

The invoker treats a request as a pure function over two explicit state
snapshots: the verified state it hydrates from, and the state it reads back
after the mutation.  Nothing survives between requests.

Steps:
    1. Assign declared properties from the decoded state (type-checked).
       No component code runs here, so the access gate decides before any
       hook does.
    2. Call ``hydrate()``, then re-run the access gate for the mutation.
    3. Property set: ``updating`` hooks, then assign.
       Method call: call the bound method with the given arguments.
    4. For each property whose value changed (canonical comparison, so
       ``1`` and ``True`` differ), call ``updated`` and ``updated_<name>``.
       Writes made by those hooks are picked up in further rounds until
       nothing new changes; a name never fires twice.
    5. ``dehydrate()``, then read the new state back and type-check it.

A ``ValidationError`` raised in steps 2-4 is collected rather than
propagated, and the mutation is rolled back as a whole: the returned state is
the decoded state, events and redirects requested during the failed
mutation are discarded, and the messages land in the error bag.
"""

from __future__ import annotations

import copy
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from diffyne._errors import SchemaError, ValidationError
from diffyne.component.mutation import MethodCall, PropertySet
from diffyne.security.gate import authorize_invoke, authorize_write
from diffyne.state.codec import canonicalize, check_state

if TYPE_CHECKING:
    from diffyne._types import ComponentState
    from diffyne.component.base import Component, DispatchedEvent
    from diffyne.component.mutation import Mutation

# Error-bag field for validation failures that name no field
GENERAL_ERROR_FIELD = "__all__"


@dataclass(frozen=True, slots=True)
class InvocationResult:
    """Outcome of one mutation.

    Attributes:
        state: State read back from the instance (the decoded state when
            the mutation was rolled back).
        changed: Names of properties whose value changed, in declaration order.
        errors: Validation messages by field.
        events: Browser events requested by component code.
        redirect: Navigation target requested by component code.

    """

    state: dict[str, Any] = field(hash=False)
    changed: tuple[str, ...] = ()
    errors: dict[str, list[str]] = field(default_factory=dict, hash=False)
    events: tuple[DispatchedEvent, ...] = ()
    redirect: str | None = None

    @property
    def ok(self) -> bool:
        return not self.errors

    @property
    def rolled_back(self) -> bool:
        return bool(self.errors) and not self.changed


def changed_properties(before: Mapping[str, Any], after: Mapping[str, Any]) -> tuple[str, ...]:
    """Names whose values differ structurally between two snapshots."""
    return tuple(
        name for name in after
        if name not in before or canonicalize(before[name]) != canonicalize(after[name])
    )


class Invoker:
    """Hydrates components and applies mutations under the access gate."""

    def assign(self, instance: Component, decoded_state: Mapping[str, Any]) -> None:
        """Copy verified state onto the instance's declared properties.

        Runs no component code.

        Raises:
            SchemaError: On an undeclared or mistyped property.

        """
        manifest = instance.manifest
        for name, value in decoded_state.items():
            spec = manifest.properties.get(name)
            if spec is None or not spec.accepts(value):
                msg = f"{manifest.component}: cannot hydrate {name!r}"
                raise SchemaError(msg)
            setattr(instance, name, copy.deepcopy(value))

    def hydrate(self, instance: Component, decoded_state: Mapping[str, Any]) -> bool:
        """Assign verified state, then run the ``hydrate()`` hook.

        Returns False when the hook raised ``ValidationError``; the instance
        then holds the decoded state and the messages sit in its error bag.

        Raises:
            SchemaError: On an undeclared or mistyped property.

        """
        self.assign(instance, decoded_state)
        before = instance.state()
        try:
            instance.hydrate()
        except ValidationError as exc:
            self._roll_back(instance, before, exc)
            return False
        return True

    def apply(
        self,
        instance: Component,
        decoded_state: Mapping[str, Any],
        mutation: Mutation,
    ) -> InvocationResult:
        """Hydrate *instance* from *decoded_state* and apply *mutation*.

        Raises:
            LockedPropertyError, NotInvokableError, ArityError: Gate denial.
            SchemaError: Mistyped write, or component code left a property
                with a value that does not match its declaration.

        """
        self.assign(instance, decoded_state)
        return self.invoke(instance, mutation, hydrate=True)

    def invoke(
        self,
        instance: Component,
        mutation: Mutation,
        *,
        hydrate: bool = False,
    ) -> InvocationResult:
        """Apply *mutation* to an instance holding its decoded state.

        With *hydrate*, the ``hydrate()`` hook runs first, inside the same
        rollback scope as the mutation.

        """
        manifest = instance.manifest
        decoded = instance.state()

        try:
            if hydrate:
                instance.hydrate()
            before = instance.state()
            self._mutate(instance, mutation)
            self._fire_updated(instance, before)
            instance.dehydrate()
        except ValidationError as exc:
            return self._roll_back(instance, decoded, exc)

        new_state = instance.state()
        check_state(new_state, manifest)
        return InvocationResult(
            state=new_state,
            changed=changed_properties(before, new_state),
            errors=instance.errors.to_dict(),
            events=instance.dispatched_events,
            redirect=instance.redirect_url,
        )

    def _mutate(self, instance: Component, mutation: Mutation) -> None:
        manifest = instance.manifest
        match mutation:
            case PropertySet(name=name, value=value):
                spec = authorize_write(manifest, name)
                if not spec.accepts(value):
                    msg = f"{manifest.component}.{name}: expected {spec.kind}"
                    raise SchemaError(msg)
                value = copy.deepcopy(value)
                instance.updating(name, value)
                hook = getattr(instance, f"updating_{name}", None)
                if callable(hook):
                    hook(value)
                setattr(instance, name, value)
            case MethodCall(name=name, args=args):
                authorize_invoke(manifest, name, args)
                getattr(instance, name)(*copy.deepcopy(list(args)))
            case _:
                msg = f"unsupported mutation {mutation!r}"
                raise SchemaError(msg)

    def _fire_updated(self, instance: Component, before: ComponentState) -> None:
        fired: set[str] = set()
        while pending := [
            name for name in changed_properties(before, instance.state()) if name not in fired
        ]:
            for name in pending:
                fired.add(name)
                value = getattr(instance, name)
                instance.updated(name, value)
                hook = getattr(instance, f"updated_{name}", None)
                if callable(hook):
                    hook(value)

    def _roll_back(
        self,
        instance: Component,
        before: ComponentState,
        exc: ValidationError,
    ) -> InvocationResult:
        for name, value in before.items():
            setattr(instance, name, copy.deepcopy(value))
        instance._events.clear()
        instance._redirect = None
        instance.errors.merge(exc.errors)
        if not exc.errors:
            instance.errors.add(GENERAL_ERROR_FIELD, str(exc))
        return InvocationResult(
            state=instance.state(),
            changed=(),
            errors=instance.errors.to_dict(),
        )
