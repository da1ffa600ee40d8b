"""Diffyne — server-driven reactive components over signed state.

Component state lives in the browser, signed.  Each interaction posts the
envelope back together with one mutation; the server verifies the
signature, rebuilds the component, applies the mutation, re-renders, and
answers with a minimal list of DOM patches plus a freshly signed envelope.

Quick start::

    from diffyne import Component, ComponentRegistry, invokable

    registry = ComponentRegistry()

    @registry.register
    class Counter(Component):
        count: int = 0

        @invokable
        def increment(self) -> None:
            self.count += 1

    import diffyne
    diffyne.serve("my-app/", components="components.py")

Built on:

    pounce      ASGI server       (serves apps)
    chirp       Web framework     (routes requests)
    kida        Template engine   (renders components)

"""

# PEP 703: Declare this module as free-threading safe
_Py_mod_gil = 0

__version__ = "0.1.0-dev"
__all__ = [
    "Component",
    "ComponentRegistry",
    "DiffyneConfig",
    "Locked",
    "RequestPipeline",
    "StateCodec",
    "ValidationError",
    "__version__",
    "create_app",
    "invokable",
    "serve",
]


def __getattr__(name: str) -> object:
    """Lazy imports for the public API.

    Keeps ``import diffyne`` fast while providing a clean top-level API.
    """
    if name == "DiffyneConfig":
        from diffyne.config import DiffyneConfig

        return DiffyneConfig

    if name in ("Component", "Locked", "invokable", "ComponentRegistry"):
        from diffyne import component

        return getattr(component, name)

    if name == "StateCodec":
        from diffyne.state.codec import StateCodec

        return StateCodec

    if name == "RequestPipeline":
        from diffyne.protocol.pipeline import RequestPipeline

        return RequestPipeline

    if name == "ValidationError":
        from diffyne._errors import ValidationError

        return ValidationError

    if name in ("create_app", "serve"):
        from diffyne import app

        return getattr(app, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
