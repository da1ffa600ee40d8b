"""Update requests as they arrive from the client.

Wire shape::

    {
      "componentId": "post-list:9f2c41aa07d3be15",
      "state": {"page": 1, "posts": [...]},
      "signature": "<hex>",
      "mutation": {"kind": "propertySet", "name": "page", "value": 2}
    }

"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from diffyne._errors import SchemaError
from diffyne.component.mutation import parse_mutation
from diffyne.state.codec import SignedEnvelope

if TYPE_CHECKING:
    from diffyne._types import ComponentID
    from diffyne.component.mutation import Mutation


@dataclass(frozen=True, slots=True)
class ProtocolRequest:
    """A signed envelope plus the mutation the client asks for."""

    envelope: SignedEnvelope
    mutation: Mutation

    @property
    def component_id(self) -> ComponentID:
        return self.envelope.component_id

    @classmethod
    def from_wire(cls, payload: object) -> ProtocolRequest:
        """Parse a decoded JSON request body.

        Raises:
            SchemaError: If the envelope or the mutation is malformed.

        """
        if not isinstance(payload, Mapping):
            msg = "request body must be an object"
            raise SchemaError(msg)
        return cls(
            envelope=SignedEnvelope.from_wire(payload),
            mutation=parse_mutation(payload.get("mutation")),
        )

    def to_wire(self) -> dict[str, Any]:
        return {**self.envelope.to_wire(), "mutation": self.mutation.to_wire()}
