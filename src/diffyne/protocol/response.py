"""Update responses and mount results.

Success::

    {"componentId": ..., "state": {...}, "signature": "<hex>",
     "patches": [...], "html": "<full rendering>",
     "errors"?: [{"field": ..., "message": ...}],
     "events"?: [{"name": ..., "payload": {...}}], "redirect"?: "/url"}

Rejection::

    {"error": "<reason>", "message": "<public message>",
     "retryAfter"?: <seconds>}

A rejection after the envelope was verified (an access denial) also echoes
the unchanged state and signature, with an empty patch list.
"""

from __future__ import annotations

import html
import json
import math
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from diffyne._errors import RateLimitError
from diffyne.render.patches import patches_to_wire

if TYPE_CHECKING:
    from diffyne._errors import ProtocolError
    from diffyne.component.base import DispatchedEvent
    from diffyne.protocol.pipeline import RequestStage
    from diffyne.render.patches import PatchOp
    from diffyne.state.codec import SignedEnvelope

HOST_ID_ATTRIBUTE = "data-diffyne-id"
HOST_STATE_ATTRIBUTE = "data-diffyne-state"


@dataclass(frozen=True, slots=True)
class ProtocolResponse:
    """The pipeline's answer to one update request.

    Attributes:
        status: Transport status (200, 400, 403, 429).
        envelope: Newly signed state (success) or the unchanged verified
            state (access denial); None otherwise.
        patches: Ordered patches for the client.
        markup: Full new rendering, for clients that cannot patch.
        errors: Validation messages by field.
        events: Browser events to fire after patching.
        redirect: Navigation target, if requested.
        reason: Machine-readable rejection reason; None on success.
        message: Client-safe rejection message.
        retry_after: Seconds until a rate-limited client may retry.
        stages: Pipeline stages the request passed through.

    """

    status: int = 200
    envelope: SignedEnvelope | None = None
    patches: tuple[PatchOp, ...] = ()
    markup: str | None = None
    errors: dict[str, list[str]] = field(default_factory=dict, hash=False)
    events: tuple[DispatchedEvent, ...] = ()
    redirect: str | None = None
    reason: str | None = None
    message: str | None = None
    retry_after: float | None = None
    stages: tuple[RequestStage, ...] = ()

    @classmethod
    def rejected(
        cls,
        exc: ProtocolError,
        *,
        envelope: SignedEnvelope | None = None,
        stages: tuple[RequestStage, ...] = (),
    ) -> ProtocolResponse:
        """Build the client-facing rejection for *exc*."""
        return cls(
            status=exc.status,
            envelope=envelope,
            reason=exc.reason,
            message=exc.public_message,
            retry_after=exc.retry_after if isinstance(exc, RateLimitError) else None,
            stages=stages,
        )

    @property
    def ok(self) -> bool:
        return self.reason is None

    def to_wire(self) -> dict[str, Any]:
        body: dict[str, Any] = {}
        if not self.ok:
            body["error"] = self.reason
            body["message"] = self.message
            if self.retry_after is not None:
                body["retryAfter"] = math.ceil(self.retry_after)
        if self.envelope is not None:
            body.update(self.envelope.to_wire())
            body["patches"] = patches_to_wire(self.patches)
        if self.markup is not None:
            body["html"] = self.markup
        if self.errors:
            body["errors"] = [
                {"field": name, "message": message}
                for name, messages in self.errors.items()
                for message in messages
            ]
        if self.events:
            body["events"] = [event.to_wire() for event in self.events]
        if self.redirect is not None:
            body["redirect"] = self.redirect
        return body


@dataclass(frozen=True, slots=True)
class MountResult:
    """A freshly mounted component: its first rendering and signed state."""

    envelope: SignedEnvelope
    markup: str

    @property
    def component_id(self) -> str:
        return self.envelope.component_id

    def host_markup(self, tag: str = "div") -> str:
        """The rendering wrapped in a host element carrying id and envelope."""
        envelope = json.dumps(self.envelope.to_wire(), separators=(",", ":"))
        return (
            f'<{tag} {HOST_ID_ATTRIBUTE}="{html.escape(self.component_id, quote=True)}" '
            f'{HOST_STATE_ATTRIBUTE}="{html.escape(envelope, quote=True)}">'
            f"{self.markup}</{tag}>"
        )

    def __html__(self) -> str:
        return self.host_markup()
