"""Component layer — declarations, manifests, and mutation.

Components declare public properties and invokable methods; the registry
derives an immutable capability manifest for each type, and the invoker
applies client mutations to freshly hydrated instances.
"""

from diffyne.component.base import Component, DispatchedEvent
from diffyne.component.invoker import InvocationResult, Invoker
from diffyne.component.manifest import (
    CapabilityManifest,
    Locked,
    MethodSpec,
    ParamSpec,
    PropertySpec,
    build_manifest,
    invokable,
)
from diffyne.component.mutation import MethodCall, Mutation, PropertySet, parse_mutation
from diffyne.component.registry import ComponentRegistry, Registration
from diffyne.component.validation import ErrorBag

__all__ = [
    "CapabilityManifest",
    "Component",
    "ComponentRegistry",
    "DispatchedEvent",
    "ErrorBag",
    "InvocationResult",
    "Invoker",
    "Locked",
    "MethodCall",
    "MethodSpec",
    "Mutation",
    "ParamSpec",
    "PropertySet",
    "PropertySpec",
    "Registration",
    "build_manifest",
    "invokable",
    "parse_mutation",
]
