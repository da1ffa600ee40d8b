"""Renderer boundary — hydrated component to markup.

A renderer is any callable ``(component) -> str`` and must be a pure
function of the component's public state.  Components either define
``render(self) -> str`` or name a Kida template in ``template``.
"""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

from diffyne._errors import ConfigError

if TYPE_CHECKING:
    from diffyne.component.base import Component


class Renderer(Protocol):
    def __call__(self, component: Component) -> str: ...


def render_component(component: Component) -> str:
    """Render through the component's own ``render()`` method.

    Raises:
        ConfigError: If the component defines no ``render()``.

    """
    render = getattr(component, "render", None)
    if not callable(render):
        msg = f"{type(component).__name__} defines neither render() nor a template"
        raise ConfigError(msg)
    return str(render())


class KidaRenderer:
    """Renders ``component.template`` through a Kida environment.

    The template context is the public state plus ``errors`` (the error bag)
    and ``component`` (the instance).  Components without a template fall
    back to :func:`render_component`.

    Args:
        template_dirs: Directories searched for templates.
        environment: A ready Kida ``Environment``; overrides *template_dirs*.
        autoescape: Escape interpolated values (default True).

    """

    __slots__ = ("_env",)

    def __init__(
        self,
        template_dirs: Sequence[str | Path] = (),
        *,
        environment: Any = None,
        autoescape: bool = True,
    ) -> None:
        if environment is None:
            from kida import Environment, FileSystemLoader

            environment = Environment(
                loader=FileSystemLoader([str(d) for d in template_dirs]),
                autoescape=autoescape,
            )
        self._env = environment

    @property
    def environment(self) -> Any:
        return self._env

    def __call__(self, component: Component) -> str:
        name = type(component).template
        if name is None:
            return render_component(component)
        template = self._env.get_template(name)
        return template.render(**component.context())
