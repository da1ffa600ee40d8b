"""Access gate — authorizes client-initiated mutations against a manifest.

The manifest is the single source of truth for what a client may touch.
Both checks are pure lookups and run before any component code executes.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from diffyne._errors import (
    ArityError,
    LockedPropertyError,
    NotInvokableError,
    SchemaError,
)

if TYPE_CHECKING:
    from diffyne.component.manifest import CapabilityManifest, MethodSpec, PropertySpec


def authorize_write(manifest: CapabilityManifest, property_name: str) -> PropertySpec:
    """Allow or deny a client write to *property_name*.

    Returns the property spec when allowed.

    Raises:
        LockedPropertyError: The property is locked, whatever the value.
        SchemaError: The component has no such property.

    """
    if property_name in manifest.locked_properties:
        raise LockedPropertyError(property_name)
    spec = manifest.properties.get(property_name)
    if spec is None:
        msg = f"{manifest.component}: no property {property_name!r}"
        raise SchemaError(msg)
    return spec


def authorize_invoke(
    manifest: CapabilityManifest,
    method_name: str,
    args: Sequence[Any],
) -> MethodSpec:
    """Allow or deny a client call of *method_name* with *args*.

    Returns the method spec when allowed.

    Raises:
        NotInvokableError: The method is not exposed.
        ArityError: Wrong argument count or an argument of the wrong kind.

    """
    spec = manifest.invokable_methods.get(method_name)
    if spec is None:
        raise NotInvokableError(method_name)

    count = len(args)
    if not spec.min_arity <= count <= spec.max_arity:
        if spec.min_arity == spec.max_arity:
            expected = str(spec.max_arity)
        else:
            expected = f"{spec.min_arity}..{spec.max_arity}"
        raise ArityError(method_name, f"expected {expected} argument(s), got {count}")

    for param, value in zip(spec.params, args, strict=False):
        if not param.accepts(value):
            raise ArityError(
                method_name,
                f"argument {param.name!r} expects {param.kind}, got {type(value).__name__}",
            )
    return spec
