"""Shared type definitions for diffyne."""

from typing import Literal

# JSON-representable values carried in component state
type JSONValue = str | int | float | bool | None | list[JSONValue] | dict[str, JSONValue]

# Public state of a component: property name -> value
type ComponentState = dict[str, JSONValue]

# Component instance identifier ("<component-name>:<token>")
type ComponentID = str

# Client identity used for rate limiting
type ClientID = str

# Rate-limit action group
type ActionGroup = Literal["update", "call"]

# Mutation kinds accepted on the wire
type MutationKind = Literal["propertySet", "methodCall"]

# Address of a node: child indices from the document root
type NodePath = tuple[int, ...]
