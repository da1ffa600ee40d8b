"""Tests for diffyne.transport.client — client script and its middleware."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

import pytest

from diffyne.protocol.response import HOST_ID_ATTRIBUTE, HOST_STATE_ATTRIBUTE
from diffyne.transport.client import (
    UPDATE_ENDPOINT,
    client_script,
    make_client_script_middleware,
)


@dataclass(frozen=True)
class _Response:
    body: str | bytes
    content_type: str = "text/html; charset=utf-8"


@dataclass(frozen=True)
class _StreamingResponse:
    content_type: str = "text/html"


def _next_returning(response: Any):  # noqa: ANN202
    async def next_(request: Any) -> Any:
        return response

    return next_


HOST = f'<div {HOST_ID_ATTRIBUTE}="counter:1" {HOST_STATE_ATTRIBUTE}="{{}}"></div>'


class TestClientScript:
    def test_placeholders_replaced(self) -> None:
        script = client_script()
        assert "__ENDPOINT__" not in script
        assert "__ID_ATTR__" not in script
        assert f"'{UPDATE_ENDPOINT}'" in script
        assert f"'{HOST_ID_ATTRIBUTE}'" in script
        assert f"'{HOST_STATE_ATTRIBUTE}'" in script

    def test_custom_endpoint(self) -> None:
        assert "'/api/components'" in client_script("/api/components")

    def test_handles_every_patch_op(self) -> None:
        script = client_script()
        for op in ("remove", "insert", "reorder", "replaceText", "setAttribute",
                   "removeAttribute", "replace"):
            assert f"case '{op}'" in script

    def test_stale_host_fallback(self) -> None:
        assert "data-diffyne-stale" in client_script()


class TestClientScriptMiddleware:
    """make_client_script_middleware injects only into component pages."""

    @pytest.mark.asyncio
    async def test_injects_before_body_close(self) -> None:
        middleware = make_client_script_middleware()
        page = f"<html><body>{HOST}</body></html>"
        result = await middleware(object(), _next_returning(_Response(page)))

        assert "data-diffyne-client" in result.body
        assert result.body.index("data-diffyne-client") < result.body.index("</body>")

    @pytest.mark.asyncio
    async def test_decodes_bytes(self) -> None:
        middleware = make_client_script_middleware()
        page = f"<html>{HOST}</html>".encode()
        result = await middleware(object(), _next_returning(_Response(page)))
        assert result.body.endswith("</script>\n</html>")

    @pytest.mark.asyncio
    async def test_appends_without_closing_tags(self) -> None:
        middleware = make_client_script_middleware()
        result = await middleware(object(), _next_returning(_Response(HOST)))
        assert result.body.startswith(HOST)
        assert "data-diffyne-client" in result.body

    @pytest.mark.asyncio
    async def test_page_without_components_untouched(self) -> None:
        middleware = make_client_script_middleware()
        response = _Response("<html><body><p>static</p></body></html>")
        assert await middleware(object(), _next_returning(response)) is response

    @pytest.mark.asyncio
    async def test_not_injected_twice(self) -> None:
        middleware = make_client_script_middleware()
        first = await middleware(object(), _next_returning(_Response(f"<body>{HOST}</body>")))
        second = await middleware(object(), _next_returning(first))
        assert second is first
        assert second.body.count("data-diffyne-client") == 1

    @pytest.mark.asyncio
    async def test_non_html_untouched(self) -> None:
        middleware = make_client_script_middleware()
        response = _Response(f'{{"html": "{HOST}"}}', content_type="application/json")
        assert await middleware(object(), _next_returning(response)) is response

    @pytest.mark.asyncio
    async def test_streaming_untouched(self) -> None:
        middleware = make_client_script_middleware()
        response = _StreamingResponse()
        assert await middleware(object(), _next_returning(response)) is response
