"""State codec — canonical serialization and integrity signing.

The public state of a component travels to the client and back on every
request.  The codec binds it to the component instance id and signs it with
HMAC-SHA256 over a canonical JSON encoding, so that signing and verification
agree bit-for-bit regardless of key order or number formatting on the wire.

Canonical form:
    - mapping keys sorted lexicographically
    - ``(",", ":")`` separators, no insignificant whitespace
    - ASCII-only output (non-ASCII escaped as ``\\uXXXX``)
    - ``NaN`` and infinities rejected
    - booleans and numbers keep distinct encodings; integral floats are
      written as integers, matching what a browser sends back

The codec has no side effects and holds no per-request state.
"""

from __future__ import annotations

import copy
import hashlib
import hmac
import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from diffyne._errors import IntegrityError, SchemaError

if TYPE_CHECKING:
    from diffyne._types import ComponentID, ComponentState
    from diffyne.component.manifest import CapabilityManifest


def _json_numbers(value: object) -> object:
    """Write integral floats as integers, the way ``JSON.stringify`` does."""
    if isinstance(value, float):
        return int(value) if value.is_integer() else value
    if isinstance(value, dict):
        return {key: _json_numbers(item) for key, item in value.items()}
    if isinstance(value, list | tuple):
        return [_json_numbers(item) for item in value]
    return value


def canonicalize(value: object) -> str:
    """Deterministic JSON encoding used for signing.

    ``2.0`` and ``2`` encode alike: a browser re-serializing the envelope
    cannot tell them apart, so neither may the signature.

    Raises:
        SchemaError: If *value* contains anything that is not plain JSON.

    """
    try:
        return json.dumps(
            _json_numbers(value),
            sort_keys=True,
            separators=(",", ":"),
            ensure_ascii=True,
            allow_nan=False,
        )
    except (TypeError, ValueError) as exc:
        msg = f"state is not canonically serializable: {exc}"
        raise SchemaError(msg) from exc


def _signed_message(component_id: str, state: object) -> bytes:
    return canonicalize({"component": component_id, "state": state}).encode("ascii")


@dataclass(frozen=True, slots=True)
class SignedEnvelope:
    """Signed state exchanged on each request/response.

    Attributes:
        component_id: Component instance the state belongs to.
        state: Public component state.
        signature: Hex HMAC-SHA256 over the canonical (id, state) pair.

    """

    component_id: str
    state: dict[str, Any] = field(hash=False)
    signature: str

    def to_wire(self) -> dict[str, Any]:
        return {
            "componentId": self.component_id,
            "state": self.state,
            "signature": self.signature,
        }

    @classmethod
    def from_wire(cls, payload: Mapping[str, Any]) -> SignedEnvelope:
        """Build an envelope from a decoded request body.

        Raises:
            SchemaError: If a field is missing or has the wrong shape.

        """
        component_id = payload.get("componentId")
        state = payload.get("state")
        signature = payload.get("signature")
        if not isinstance(component_id, str) or not component_id:
            msg = "envelope: componentId must be a non-empty string"
            raise SchemaError(msg)
        if not isinstance(state, dict):
            msg = "envelope: state must be an object"
            raise SchemaError(msg)
        if not isinstance(signature, str):
            msg = "envelope: signature must be a string"
            raise SchemaError(msg)
        return cls(component_id=component_id, state=state, signature=signature)


class StateCodec:
    """Signs, verifies, and schema-checks component state.

    Only the currently configured key verifies; there is no grace window for
    a previous key.

    Args:
        secret_key: Signing key.

    """

    __slots__ = ("_key",)

    def __init__(self, secret_key: str | bytes) -> None:
        if isinstance(secret_key, str):
            secret_key = secret_key.encode("utf-8")
        if not secret_key:
            msg = "secret_key must not be empty"
            raise ValueError(msg)
        self._key = secret_key

    def sign(self, component_id: ComponentID, state: ComponentState) -> str:
        """Return the hex signature of *state* for *component_id*."""
        return hmac.new(self._key, _signed_message(component_id, state), hashlib.sha256).hexdigest()

    def verify(self, component_id: ComponentID, state: object, signature: str) -> bool:
        """Constant-time check of *signature*; False for unserializable state."""
        try:
            expected = hmac.new(
                self._key, _signed_message(component_id, state), hashlib.sha256
            ).hexdigest()
        except SchemaError:
            return False
        return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8"))

    def encode(self, component_id: ComponentID, state: ComponentState) -> SignedEnvelope:
        """Sign *state* and wrap it in an envelope.

        The envelope holds its own deep copy of the state.

        """
        signature = self.sign(component_id, state)
        return SignedEnvelope(
            component_id=component_id,
            state=copy.deepcopy(dict(state)),
            signature=signature,
        )

    def decode(
        self,
        envelope: SignedEnvelope,
        expected_component_id: ComponentID,
        manifest: CapabilityManifest | None = None,
    ) -> ComponentState:
        """Verify an envelope and return its state.

        Raises:
            IntegrityError: Wrong component id or signature mismatch.
            SchemaError: A key is not a declared property, or a value does not
                match its declared kind (only checked when *manifest* is given).

        """
        if envelope.component_id != expected_component_id:
            msg = (
                f"envelope for {envelope.component_id!r} presented as "
                f"{expected_component_id!r}"
            )
            raise IntegrityError(msg)

        if not self.verify(envelope.component_id, envelope.state, envelope.signature):
            msg = f"signature mismatch for {envelope.component_id!r}"
            raise IntegrityError(msg)

        state = envelope.state
        if not isinstance(state, dict):
            msg = "state must be an object"
            raise SchemaError(msg)

        if manifest is not None:
            check_state(state, manifest)

        return copy.deepcopy(state)


def check_state(state: Mapping[str, Any], manifest: CapabilityManifest) -> None:
    """Check every key and value of *state* against *manifest*.

    Raises:
        SchemaError: On an undeclared key or a mistyped value.

    """
    for name, value in state.items():
        spec = manifest.properties.get(name)
        if spec is None:
            msg = f"{manifest.component}: undeclared property {name!r}"
            raise SchemaError(msg)
        if not spec.accepts(value):
            msg = f"{manifest.component}.{name}: expected {spec.kind}, got {type(value).__name__}"
            raise SchemaError(msg)
