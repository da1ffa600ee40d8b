"""Startup banner — mode-aware status output.

Prints the startup banner with load timing, the protocol endpoints and the
rate limits in force.  Detects ``NO_COLOR`` / ``TERM`` for safe fallback.
"""

from __future__ import annotations

import os
import sys
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from diffyne.config import DiffyneConfig


# ---------------------------------------------------------------------------
# ANSI helpers, honouring NO_COLOR (https://no-color.org)
# ---------------------------------------------------------------------------

def _supports_color() -> bool:
    """Return True if the terminal supports ANSI colors."""
    if os.environ.get("NO_COLOR"):
        return False
    if os.environ.get("TERM") == "dumb":
        return False
    return hasattr(sys.stderr, "isatty") and sys.stderr.isatty()


_COLOR = _supports_color()

_RESET = "\033[0m" if _COLOR else ""
_BOLD = "\033[1m" if _COLOR else ""
_DIM = "\033[2m" if _COLOR else ""
_CYAN = "\033[36m" if _COLOR else ""
_GREEN = "\033[32m" if _COLOR else ""
_YELLOW = "\033[33m" if _COLOR else ""


# ---------------------------------------------------------------------------
# Mode badges
# ---------------------------------------------------------------------------

_MODE_STYLES: dict[str, tuple[str, str]] = {
    "debug": (_GREEN, "debug"),
    "serve": (_CYAN, "serve"),
}


def _mode_badge(mode: str) -> str:
    """Return a styled [mode] badge."""
    color, label = _MODE_STYLES.get(mode, (_DIM, mode))
    return f"{color}[{label}]{_RESET}"


def _clickable_url(url: str) -> str:
    """Wrap *url* in an OSC 8 hyperlink escape if the terminal supports it."""
    if not _COLOR:
        return url
    return f"\033]8;;{url}\033\\{_BOLD}{_CYAN}{url}{_RESET}\033]8;;\033\\"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def print_banner(
    config: DiffyneConfig,
    component_count: int,
    mode: str,
    *,
    load_ms: float = 0.0,
    warnings: list[str] | None = None,
) -> None:
    """Print the Diffyne startup banner to stderr.

    Args:
        config: Resolved DiffyneConfig.
        component_count: Number of registered components.
        mode: ``"serve"`` or ``"debug"``.
        load_ms: Time spent loading components in milliseconds.
        warnings: Optional list of warning messages to display.

    """
    from diffyne import __version__
    from diffyne.transport.client import UPDATE_ENDPOINT

    badge = _mode_badge("debug" if config.debug and mode == "serve" else mode)
    header = f"  {_BOLD}Diffyne{_RESET} {_DIM}v{__version__}{_RESET}  {badge}"

    lines: list[str] = [
        "",
        header,
        f"  {_DIM}{'─' * 43}{_RESET}",
    ]

    timing = f" {_DIM}in {load_ms:.0f}ms{_RESET}" if load_ms > 0 else ""
    lines.append(
        f"  {_DIM}├─{_RESET} {_plural(component_count, 'component')} registered{timing}"
    )
    lines.append(f"  {_DIM}├─{_RESET} templates: {_DIM}{config.templates_path}{_RESET}")
    lines.append(f"  {_DIM}├─{_RESET} updates on {_DIM}POST {UPDATE_ENDPOINT}{_RESET}")

    limits = config.rate_limits
    lines.append(
        f"  {_DIM}├─{_RESET} rate limit: {limits['update']} updates, "
        f"{limits['call']} calls per {config.rate_limit_window:g}s"
    )

    workers_label = str(config.workers) if config.workers > 0 else "auto"
    lines.append(f"  {_DIM}└─{_RESET} workers: {workers_label}")

    url = f"http://{config.host}:{config.port}"
    lines.append("")
    lines.append(f"  {_clickable_url(url)}")

    if warnings:
        lines.append("")
        lines.extend(f"  {_YELLOW}!{_RESET} {w}" for w in warnings)

    lines.append("")

    print("\n".join(lines), file=sys.stderr)
