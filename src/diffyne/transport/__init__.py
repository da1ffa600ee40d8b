"""Transport layer — Chirp routes and the browser client script."""

from diffyne.transport.client import client_script, make_client_script_middleware
from diffyne.transport.router import ComponentRouter, client_identity

__all__ = [
    "ComponentRouter",
    "client_identity",
    "client_script",
    "make_client_script_middleware",
]
