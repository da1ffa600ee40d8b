"""Diffyne application — the update protocol wired into Chirp and Pounce.

``create_app`` builds a Chirp app that serves the update endpoint for a
component registry; ``serve`` loads configuration and components from an
application root and runs the app under Pounce.
"""

from __future__ import annotations

import importlib
import importlib.util
import sys
import time
from dataclasses import dataclass
from pathlib import Path
from types import ModuleType
from typing import TYPE_CHECKING, Any

from diffyne._errors import ConfigError
from diffyne.component.base import Component
from diffyne.component.registry import ComponentRegistry
from diffyne.config import DiffyneConfig
from diffyne.config_loader import load_config

if TYPE_CHECKING:
    from chirp import App

    from diffyne.observability.collector import StackCollector
    from diffyne.protocol.pipeline import RequestPipeline
    from diffyne.protocol.response import MountResult
    from diffyne.render.renderer import Renderer
    from diffyne.transport.router import ComponentRouter


@dataclass(frozen=True, slots=True)
class DiffyneApp:
    """A Chirp app serving the update protocol, plus its collaborators."""

    app: App
    pipeline: RequestPipeline
    router: ComponentRouter
    collector: StackCollector
    config: DiffyneConfig

    def mount(self, name: str, /, **params: Any) -> MountResult:
        """Mount a component for embedding in a page."""
        return self.pipeline.mount(name, **params)


def _import_components_module(spec: str, root: Path) -> ModuleType:
    """Import ``spec`` as a dotted module name or a ``.py`` file under *root*."""
    path = Path(spec)
    if spec.endswith(".py"):
        if not path.is_absolute():
            path = root / path
        if not path.is_file():
            msg = f"components {spec!r}: {path} not found"
            raise ConfigError(msg)
        module_name = f"diffyne_components_{path.stem}"
        spec_obj = importlib.util.spec_from_file_location(module_name, path)
        if spec_obj is None or spec_obj.loader is None:
            msg = f"components {spec!r}: failed to load {path}"
            raise ConfigError(msg)
        module = importlib.util.module_from_spec(spec_obj)
        sys.modules[module_name] = module
        spec_obj.loader.exec_module(module)
        return module

    try:
        return importlib.import_module(spec)
    except ImportError as exc:
        msg = f"components {spec!r}: {exc}"
        raise ConfigError(msg) from exc


def load_components(spec: str, registry: ComponentRegistry, root: Path | None = None) -> int:
    """Register every Component subclass defined in a module.

    Classes already present in *registry* (for example registered with
    ``@registry.register`` in that module) are skipped.

    Returns the number of newly registered components.

    Raises:
        ConfigError: If the module cannot be imported or a component is invalid.

    """
    module = _import_components_module(spec, root or Path.cwd())
    registered = {registry.get(name).cls for name in registry.names()}
    count = 0
    for value in vars(module).values():
        if (
            isinstance(value, type)
            and issubclass(value, Component)
            and value is not Component
            and value.__module__ == module.__name__
            and value not in registered
        ):
            registry.register(value)
            count += 1
    return count


def resolve_component_class(spec: str, root: Path | None = None) -> type[Component]:
    """Resolve ``module:Class`` to a Component subclass.

    Raises:
        ConfigError: On a malformed spec, a missing attribute, or a class
            that is not a Component.

    """
    module_part, _, attr = spec.partition(":")
    if not module_part or not attr:
        msg = f"expected MODULE:Class, got {spec!r}"
        raise ConfigError(msg)
    module = _import_components_module(module_part, root or Path.cwd())
    cls = getattr(module, attr, None)
    if not (isinstance(cls, type) and issubclass(cls, Component)):
        msg = f"{spec!r} is not a Component subclass"
        raise ConfigError(msg)
    return cls


def _create_chirp_app(config: DiffyneConfig, *, debug: bool = False) -> App:
    """Create a Chirp App whose templates live in the configured directory."""
    from chirp import App, AppConfig

    app_config = AppConfig(
        template_dir=config.templates_path,
        debug=debug,
        host=config.host,
        port=config.port,
    )
    return App(config=app_config)


def create_app(
    config: DiffyneConfig | None = None,
    registry: ComponentRegistry | None = None,
    renderer: Renderer | None = None,
    *,
    collector: StackCollector | None = None,
) -> DiffyneApp:
    """Build a Chirp app serving the update protocol for *registry*.

    Registers ``POST /diffyne/update`` and ``GET /__diffyne/stats``, adds the
    client-script middleware, and exposes ``diffyne_mount(name, **params)``
    to templates.

    Args:
        config: Application configuration (debug defaults when omitted).
        registry: Registered components (empty when omitted).
        renderer: Component renderer (Kida templates from the configured
            directory when omitted).
        collector: Event sink shared with Pounce.

    """
    from diffyne.observability import EventLog, StackCollector
    from diffyne.protocol.pipeline import RequestPipeline
    from diffyne.transport.client import make_client_script_middleware
    from diffyne.transport.router import ComponentRouter

    if config is None:
        config = DiffyneConfig(debug=True)
    if registry is None:
        registry = ComponentRegistry()
    if collector is None:
        collector = StackCollector(EventLog(max_events=config.max_events))

    pipeline = RequestPipeline.from_config(config, registry, renderer, collector)

    app = _create_chirp_app(config, debug=config.debug)
    router = ComponentRouter(
        app,
        pipeline,
        request_timeout=config.request_timeout,
        trusted_proxies=config.trusted_proxies,
    )
    router.register_update_endpoint()
    router.register_stats_endpoint()
    app.add_middleware(make_client_script_middleware())
    app._template_globals["diffyne_mount"] = pipeline.mount

    return DiffyneApp(
        app=app,
        pipeline=pipeline,
        router=router,
        collector=collector,
        config=config,
    )


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def serve(root: str | Path = ".", components: str | None = None, **kwargs: object) -> None:
    """Run the update protocol as a live Pounce server.

    Multiple Pounce workers share the frozen Chirp app and the immutable
    component registry; the only shared mutable state is the rate limiter
    and the render cache, both internally locked.

    Args:
        root: Application root directory.
        components: Module (dotted name or ``.py`` file) defining components.
        **kwargs: Override DiffyneConfig fields.

    """
    from diffyne.banner import print_banner

    config = load_config(Path(root), **kwargs)
    t0 = time.perf_counter()

    registry = ComponentRegistry()
    warnings: list[str] = []
    components = components or config.components
    if components:
        load_components(components, registry, config.root)
    if not len(registry):
        warnings.append("no components registered (use --components)")
    if config.debug:
        warnings.append("debug mode: placeholder secret key may be in use")

    diffyne_app = create_app(config, registry)

    load_ms = (time.perf_counter() - t0) * 1000
    print_banner(
        config, len(registry), mode="serve",
        load_ms=load_ms,
        warnings=warnings,
    )

    from pounce.config import ServerConfig
    from pounce.server import Server

    server_config = ServerConfig(
        host=config.host,
        port=config.port,
        workers=config.workers,  # 0 = auto-detect via Pounce
    )
    server = Server(server_config, diffyne_app.app, lifecycle_collector=diffyne_app.collector)
    server.run()
