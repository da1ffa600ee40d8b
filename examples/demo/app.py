"""Demo app — every demo component mounted on one page.

Run with ``python examples/demo/app.py``, or serve only the update endpoint
with ``diffyne serve examples/demo``.
"""

from __future__ import annotations

from pathlib import Path

from diffyne import create_app
from diffyne.app import DiffyneApp, load_components
from diffyne.component import ComponentRegistry
from diffyne.config_loader import load_config

ROOT = Path(__file__).resolve().parent

PAGE = """\
<!doctype html>
<html>
<head><title>Diffyne demo</title></head>
<body>
<h1>Diffyne demo</h1>
{hosts}
</body>
</html>
"""


def build() -> DiffyneApp:
    """Load the demo configuration and components and add an index page."""
    config = load_config(ROOT)
    registry = ComponentRegistry()
    load_components(config.components, registry, config.root)
    diffyne_app = create_app(config, registry)

    async def index(request: object) -> object:
        from chirp.http.response import Response

        hosts = "\n".join(
            diffyne_app.mount(name).host_markup() for name in registry.names()
        )
        return Response(
            body=PAGE.format(hosts=hosts),
            status=200,
            content_type="text/html; charset=utf-8",
        )

    diffyne_app.app.route("/", name="demo:index")(index)
    return diffyne_app


if __name__ == "__main__":
    from pounce.config import ServerConfig
    from pounce.server import Server

    demo = build()
    Server(
        ServerConfig(host=demo.config.host, port=demo.config.port, workers=demo.config.workers),
        demo.app,
        lifecycle_collector=demo.collector,
    ).run()
