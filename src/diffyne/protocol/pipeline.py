"""Request pipeline — one update request from envelope to patches.

Orchestrates the update protocol for a single request:
    1. Rate limit the client per action group
    2. Decode and verify the signed envelope (StateCodec)
    3. Hydrate a fresh component instance from the verified state
       (declared properties only, no hooks yet)
    4. Authorize the mutation against the capability manifest
    5. Run ``hydrate()``, apply the mutation and run lifecycle hooks (Invoker)
    6. Render the previous and the new state
    7. Diff the two renderings into ordered patches
    8. Sign the new state and respond

Per request the pipeline walks::

    RECEIVED -> VERIFIED -> HYDRATED -> AUTHORIZED -> INVOKED
             -> RENDERED -> DIFFED -> SIGNED -> RESPONDED

Any rejection (rate limit, integrity, schema, access) moves the request to
REJECTED and answers without rendering.  A validation failure raised by
component code is not a rejection: the mutation is rolled back, and the
response carries the messages plus the patches of the error display.

The previous rendering is never trusted from the client.  It is re-derived
from the verified state, which makes it a pure function of the signature;
a bounded cache keyed by signature avoids rendering the same state twice.
Renderings that show validation messages are never cached.

Thread Safety:
    Requests share only the immutable registry, the rate limiter, the
    render cache, and the event log, each internally locked.  Everything
    else is per request.

"""

from __future__ import annotations

import sys
import threading
from collections import OrderedDict
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING, Any

from diffyne._errors import IntegrityError, PatchError, ProtocolError
from diffyne.component.invoker import Invoker
from diffyne.component.mutation import MethodCall, PropertySet
from diffyne.observability.collector import StackCollector
from diffyne.observability.profiler import PipelineProfiler
from diffyne.protocol.request import ProtocolRequest
from diffyne.protocol.response import MountResult, ProtocolResponse
from diffyne.render.apply import apply_patches
from diffyne.render.differ import diff
from diffyne.render.patches import summarize
from diffyne.render.renderer import render_component
from diffyne.render.tree import parse_markup
from diffyne.security.gate import authorize_invoke, authorize_write
from diffyne.security.ratelimit import RateLimiter
from diffyne.state.codec import StateCodec, check_state

if TYPE_CHECKING:
    from diffyne._types import ClientID, ComponentID
    from diffyne.component.registry import ComponentRegistry, Registration
    from diffyne.config import DiffyneConfig
    from diffyne.render.patches import PatchOp
    from diffyne.render.renderer import Renderer
    from diffyne.render.tree import Document
    from diffyne.state.codec import SignedEnvelope

ANONYMOUS_CLIENT = "anonymous"


class RequestStage(StrEnum):
    """States of one update request."""

    RECEIVED = "received"
    VERIFIED = "verified"
    HYDRATED = "hydrated"
    AUTHORIZED = "authorized"
    INVOKED = "invoked"
    RENDERED = "rendered"
    DIFFED = "diffed"
    SIGNED = "signed"
    RESPONDED = "responded"
    REJECTED = "rejected"


@dataclass(slots=True)
class _Progress:
    """Per-request bookkeeping."""

    client_id: str
    component_id: str = ""
    target: str = ""
    verified: SignedEnvelope | None = None
    stages: list[RequestStage] = field(default_factory=lambda: [RequestStage.RECEIVED])

    @property
    def stage(self) -> RequestStage:
        return self.stages[-1]

    def advance(self, stage: RequestStage) -> None:
        self.stages.append(stage)


class _RenderCache:
    """Bounded LRU of parsed renderings keyed by state signature."""

    __slots__ = ("_entries", "_lock", "_max_size")

    def __init__(self, max_size: int) -> None:
        self._max_size = max_size
        self._entries: OrderedDict[str, Document] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, signature: str) -> Document | None:
        with self._lock:
            tree = self._entries.get(signature)
            if tree is not None:
                self._entries.move_to_end(signature)
            return tree

    def put(self, signature: str, tree: Document) -> None:
        if self._max_size <= 0:
            return
        with self._lock:
            self._entries[signature] = tree
            self._entries.move_to_end(signature)
            while len(self._entries) > self._max_size:
                self._entries.popitem(last=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class RequestPipeline:
    """Mounts components and answers update requests.

    Args:
        registry: Registered component types.
        codec: Signs and verifies component state.
        renderer: Produces markup for a hydrated component.
        rate_limiter: Per-client budget; None disables rate limiting.
        collector: Event sink for observability.
        render_cache_size: Renderings kept for reuse (0 disables).
        verify_patches: Re-apply each patch list and compare with the new
            rendering, reporting mismatches to stderr.
        verbose: Print a one-line timing summary per request.

    """

    def __init__(
        self,
        registry: ComponentRegistry,
        codec: StateCodec,
        renderer: Renderer = render_component,
        *,
        rate_limiter: RateLimiter | None = None,
        collector: StackCollector | None = None,
        render_cache_size: int = 256,
        verify_patches: bool = False,
        verbose: bool = False,
    ) -> None:
        self._registry = registry
        self._codec = codec
        self._renderer = renderer
        self._rate_limiter = rate_limiter
        self._collector = collector if collector is not None else StackCollector()
        self._cache = _RenderCache(render_cache_size)
        self._invoker = Invoker()
        self._verify_patches = verify_patches
        self._verbose = verbose

    @classmethod
    def from_config(
        cls,
        config: DiffyneConfig,
        registry: ComponentRegistry,
        renderer: Renderer | None = None,
        collector: StackCollector | None = None,
    ) -> RequestPipeline:
        """Build a pipeline from application configuration."""
        if renderer is None:
            from diffyne.render.renderer import KidaRenderer

            renderer = KidaRenderer([config.templates_path])
        return cls(
            registry,
            StateCodec(config.secret_key),
            renderer,
            rate_limiter=RateLimiter(config.rate_limits, window=config.rate_limit_window),
            collector=collector,
            render_cache_size=config.render_cache_size,
            verify_patches=config.verify_patches,
            verbose=config.debug,
        )

    @property
    def registry(self) -> ComponentRegistry:
        return self._registry

    @property
    def collector(self) -> StackCollector:
        return self._collector

    # ----- mount -----

    def mount(self, name: str, /, **params: Any) -> MountResult:
        """Create, mount and render a new component instance.

        Raises:
            SchemaError: If no component has that name, or mount left a
                property with a mistyped value.
            TypeError: On a mount parameter that is not a declared property.

        """
        registration = self._registry.get(name)
        component_id = self._registry.new_component_id(name)
        instance = registration.cls(component_id, registration.manifest)
        instance.mount(**params)

        state = instance.state()
        check_state(state, registration.manifest)
        markup = self._renderer(instance)
        envelope = self._codec.encode(component_id, state)
        self._cache.put(envelope.signature, parse_markup(markup))

        self._collector.record_mount(component_id, properties=len(state))
        return MountResult(envelope=envelope, markup=markup)

    # ----- update -----

    def handle(
        self,
        request: ProtocolRequest | Mapping[str, Any],
        client_id: ClientID = ANONYMOUS_CLIENT,
    ) -> ProtocolResponse:
        """Answer one update request.

        *request* may be a parsed :class:`ProtocolRequest` or the decoded
        JSON body.  Protocol failures become rejection responses; anything
        else (a bug in component code) propagates.

        """
        progress = _Progress(client_id=client_id)
        try:
            if not isinstance(request, ProtocolRequest):
                request = ProtocolRequest.from_wire(request)
            progress.component_id = request.component_id
            progress.target = request.mutation.name
            return self._process(request, progress)
        except ProtocolError as exc:
            return self._reject(exc, progress)

    def _process(self, request: ProtocolRequest, progress: _Progress) -> ProtocolResponse:
        component_id = request.component_id
        mutation = request.mutation

        if self._rate_limiter is not None:
            self._rate_limiter.hit(progress.client_id, mutation.group)

        profiler = PipelineProfiler(self._collector.log, verbose=self._verbose)
        profiler.begin(component_id)

        registration = self._registry.resolve(component_id)
        manifest = registration.manifest
        with profiler.stage("verify"):
            decoded = self._codec.decode(request.envelope, component_id, manifest)
        progress.verified = request.envelope
        progress.advance(RequestStage.VERIFIED)

        instance = registration.cls(component_id, manifest)
        with profiler.stage("invoke"):
            self._invoker.assign(instance, decoded)
        progress.advance(RequestStage.HYDRATED)

        match mutation:
            case PropertySet(name=name):
                authorize_write(manifest, name)
            case MethodCall(name=name, args=args):
                authorize_invoke(manifest, name, args)
        progress.advance(RequestStage.AUTHORIZED)

        # No component code runs before the gate
        with profiler.stage("invoke"):
            result = self._invoker.invoke(instance, mutation, hydrate=True)
        progress.advance(RequestStage.INVOKED)
        self._collector.record_mutation(
            component_id,
            mutation.kind,
            mutation.name,
            changed=result.changed,
            errors=sum(len(messages) for messages in result.errors.values()),
        )

        with profiler.stage("render"):
            old_tree = self._previous_rendering(registration, request.envelope, decoded)
            markup = self._renderer(instance)
            new_tree = parse_markup(markup)
        progress.advance(RequestStage.RENDERED)

        with profiler.stage("diff"):
            patches = diff(old_tree, new_tree)
        if self._verify_patches:
            self._check_patches(component_id, old_tree, new_tree, patches)
        progress.advance(RequestStage.DIFFED)
        self._collector.record_patches(component_id, summarize(patches))

        with profiler.stage("sign"):
            envelope = self._codec.encode(component_id, result.state)
        # An error display is not a function of the signed state
        if not result.errors:
            self._cache.put(envelope.signature, new_tree)
        progress.advance(RequestStage.SIGNED)

        profiler.finish(patches_count=len(patches))
        progress.advance(RequestStage.RESPONDED)
        return ProtocolResponse(
            status=200,
            envelope=envelope,
            patches=patches,
            markup=markup,
            errors=result.errors,
            events=result.events,
            redirect=result.redirect,
            stages=tuple(progress.stages),
        )

    def _previous_rendering(
        self,
        registration: Registration,
        envelope: SignedEnvelope,
        decoded: Mapping[str, Any],
    ) -> Document:
        tree = self._cache.get(envelope.signature)
        if tree is not None:
            return tree
        instance = registration.cls(envelope.component_id, registration.manifest)
        hydrated = self._invoker.hydrate(instance, decoded)
        tree = parse_markup(self._renderer(instance))
        if hydrated:
            self._cache.put(envelope.signature, tree)
        return tree

    def _check_patches(
        self,
        component_id: ComponentID,
        old_tree: Document,
        new_tree: Document,
        patches: tuple[PatchOp, ...],
    ) -> None:
        try:
            applied = apply_patches(old_tree, patches)
        except PatchError as exc:
            print(f"  Patch self-check failed: {component_id}: {exc}", file=sys.stderr)
            return
        if applied != new_tree:
            print(
                f"  Patch self-check failed: {component_id}: "
                f"{len(patches)} patches do not reproduce the new rendering",
                file=sys.stderr,
            )

    # ----- rejection -----

    def _reject(self, exc: ProtocolError, progress: _Progress) -> ProtocolResponse:
        stage = progress.stage
        progress.advance(RequestStage.REJECTED)
        target = (
            getattr(exc, "property_name", None)
            or getattr(exc, "method_name", None)
            or progress.target
        )

        self._collector.record_rejection(
            progress.component_id,
            client_id=progress.client_id,
            stage=stage.value,
            status=exc.status,
            reason=exc.reason,
            target=target,
            detail=str(exc),
        )

        label = "Possible tampering" if isinstance(exc, IntegrityError) else "Rejected"
        print(
            f"  {label}: {progress.component_id or '<unknown>'} "
            f"[{exc.reason}] {target or '-'} from {progress.client_id}: {exc}",
            file=sys.stderr,
        )

        # Access denials echo the verified, unchanged state
        envelope = progress.verified if exc.status == 400 else None
        return ProtocolResponse.rejected(exc, envelope=envelope, stages=tuple(progress.stages))
