"""Component router — exposes the update pipeline as Chirp routes.

Registers the JSON update endpoint the browser client posts to, and a
stats endpoint for pipeline timing and event-log summaries.

The pipeline is synchronous and may run component hooks that block, so the
update handler runs it in a worker thread under ``request_timeout``.  An
expired request is answered with 504; the worker finishes in the background
and its result is dropped.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import TYPE_CHECKING, Any

from diffyne.protocol.pipeline import ANONYMOUS_CLIENT
from diffyne.transport.client import UPDATE_ENDPOINT

if TYPE_CHECKING:
    from chirp import App, Request

    from diffyne.protocol.pipeline import RequestPipeline

STATS_ENDPOINT = "/__diffyne/stats"


def client_identity(request: Any, trusted_proxies: int = 0) -> str:
    """Rate-limit identity of the peer that sent *request*.

    ``X-Forwarded-For`` is read only when *trusted_proxies* says how many
    proxies in front of the server append to it.  The address those proxies
    saw is then ``trusted_proxies`` hops from the right; hops further left
    are client-supplied and ignored.
    """
    if trusted_proxies > 0:
        headers = getattr(request, "headers", None)
        forwarded = headers.get("x-forwarded-for") if headers is not None else None
        if forwarded:
            hops = [hop.strip() for hop in forwarded.split(",") if hop.strip()]
            if len(hops) >= trusted_proxies:
                return hops[-trusted_proxies]
    client = getattr(request, "client", None)
    if isinstance(client, tuple | list) and client:
        return str(client[0])
    if client:
        return str(client)
    return ANONYMOUS_CLIENT


async def _read_json(request: Any) -> Any:
    reader = getattr(request, "json", None)
    if callable(reader):
        return await reader()
    raw = await request.body()
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    return json.loads(raw)


def _json_response(payload: Any, status: int) -> Any:
    from chirp.http.response import Response

    return Response(
        body=json.dumps(payload, separators=(",", ":")),
        status=status,
        content_type="application/json",
    )


class ComponentRouter:
    """Routes update requests through the :class:`RequestPipeline`.

    Args:
        app: Chirp App to register routes on (must not yet be frozen).
        pipeline: The request pipeline answering updates.
        request_timeout: Seconds one update may take before a 504.
        trusted_proxies: Reverse proxies in front of the server whose
            ``X-Forwarded-For`` entries identify the client (0 trusts none).

    """

    def __init__(
        self,
        app: App,
        pipeline: RequestPipeline,
        *,
        request_timeout: float = 10.0,
        trusted_proxies: int = 0,
    ) -> None:
        self._app = app
        self._pipeline = pipeline
        self._request_timeout = request_timeout
        self._trusted_proxies = trusted_proxies

    @property
    def pipeline(self) -> RequestPipeline:
        return self._pipeline

    async def dispatch(self, payload: Any, client_id: str) -> tuple[int, dict[str, Any]]:
        """Run one decoded request body through the pipeline.

        Returns ``(status, body)``.

        """
        try:
            response = await asyncio.wait_for(
                asyncio.to_thread(self._pipeline.handle, payload, client_id),
                timeout=self._request_timeout,
            )
        except TimeoutError:
            print(
                f"  Update timed out after {self._request_timeout:.1f}s from {client_id}",
                file=sys.stderr,
            )
            return 504, {"error": "timeout", "message": "The request took too long."}
        return response.status, response.to_wire()

    def register_update_endpoint(self, path: str = UPDATE_ENDPOINT) -> None:
        """Register the ``POST /diffyne/update`` JSON endpoint."""
        router = self

        async def update_handler(request: Request) -> Any:
            try:
                payload = await _read_json(request)
            except (ValueError, UnicodeDecodeError):
                return _json_response(
                    {"error": "schema_mismatch", "message": "The request body is not JSON."},
                    400,
                )
            status, body = await router.dispatch(
                payload, client_identity(request, router._trusted_proxies),
            )
            return _json_response(body, status)

        update_handler.__name__ = "diffyne_update"
        update_handler.__qualname__ = "ComponentRouter.diffyne_update"
        self._app.route(path, methods=["POST"], name="diffyne:update")(update_handler)

    def register_stats_endpoint(self, path: str = STATS_ENDPOINT) -> None:
        """Register the ``/__diffyne/stats`` JSON endpoint.

        Returns aggregate pipeline profiling stats and event log summary.

        """
        collector = self._pipeline.collector

        async def stats_handler(request: Request) -> Any:
            from chirp.http.response import Response

            from diffyne.observability.profiler import compute_aggregate_stats

            payload = json.dumps(
                {
                    "pipeline": compute_aggregate_stats(collector.log),
                    "event_log": collector.log.stats(),
                    "components": list(self._pipeline.registry.names()),
                },
                indent=2,
            )
            return Response(
                body=payload,
                status=200,
                content_type="application/json",
            )

        stats_handler.__name__ = "diffyne_stats"
        stats_handler.__qualname__ = "ComponentRouter.diffyne_stats"
        self._app.route(path, name="diffyne:stats")(stats_handler)
