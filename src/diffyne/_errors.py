"""Diffyne error hierarchy.

All diffyne-specific errors inherit from DiffyneError for easy catching.

Protocol errors carry the transport mapping they produce at the boundary:
an HTTP-style ``status``, a machine-readable ``reason``, and a
``public_message`` that is safe to show to the client.  The exception text
itself (``str(exc)``) holds the server-side detail and is never sent.
"""

from __future__ import annotations

from collections.abc import Mapping


class DiffyneError(Exception):
    """Base error for all diffyne operations."""


class ConfigError(DiffyneError):
    """Invalid or missing configuration, or an invalid component declaration."""


class ProtocolError(DiffyneError):
    """A request was rejected by the update protocol."""

    status: int = 400
    reason: str = "bad_request"
    public_message: str = "The request could not be processed."


class IntegrityError(ProtocolError):
    """Envelope signature mismatch — possible tampering."""

    status = 403
    reason = "forbidden"
    public_message = "The component state could not be verified."


class SchemaError(ProtocolError):
    """Unexpected or mistyped property, or a malformed envelope."""

    reason = "schema_mismatch"
    public_message = "The component state does not match the component."


class AccessDeniedError(ProtocolError):
    """A mutation was refused by the capability manifest."""

    public_message = "This action is not allowed."


class LockedPropertyError(AccessDeniedError):
    """The client tried to overwrite a locked property."""

    reason = "locked_property"

    def __init__(self, property_name: str) -> None:
        self.property_name = property_name
        super().__init__(f"property {property_name!r} is locked")


class NotInvokableError(AccessDeniedError):
    """The client tried to call a method that is not exposed."""

    reason = "not_invokable"

    def __init__(self, method_name: str) -> None:
        self.method_name = method_name
        super().__init__(f"method {method_name!r} is not invokable")


class ArityError(AccessDeniedError):
    """Arguments do not match the declared method signature."""

    reason = "arity_mismatch"

    def __init__(self, method_name: str, detail: str) -> None:
        self.method_name = method_name
        super().__init__(f"method {method_name!r}: {detail}")


class ValidationError(ProtocolError):
    """Recoverable, user-facing validation failure raised by component code.

    Carries messages per field.  The pipeline collects it and answers with a
    successful transport response that includes the messages.

    """

    status = 200
    reason = "validation_failed"
    public_message = "The given data was invalid."

    def __init__(
        self,
        errors: Mapping[str, str | list[str]] | None = None,
        message: str | None = None,
    ) -> None:
        self.errors: dict[str, list[str]] = {}
        for field, messages in (errors or {}).items():
            if isinstance(messages, str):
                messages = [messages]
            self.errors[field] = list(messages)
        super().__init__(message or self.public_message)


class RateLimitError(ProtocolError):
    """Too many requests from one client within the current window."""

    status = 429
    reason = "too_many_requests"
    public_message = "Too many requests. Try again later."

    def __init__(self, client_id: str, group: str, retry_after: float) -> None:
        self.client_id = client_id
        self.group = group
        self.retry_after = retry_after
        super().__init__(
            f"rate limit exceeded for {client_id!r} ({group}); retry in {retry_after:.1f}s"
        )


class PatchError(DiffyneError):
    """A patch could not be applied to the tree it was addressed to."""
