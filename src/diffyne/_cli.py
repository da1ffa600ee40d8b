"""Diffyne CLI — diffyne serve / diffyne keygen / diffyne manifest.

Entry point for the ``diffyne`` command-line interface.
"""

from __future__ import annotations

import argparse
import json
import secrets
import sys


def _build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the diffyne CLI."""
    parser = argparse.ArgumentParser(
        prog="diffyne",
        description="Server-driven reactive components over signed state.",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {_get_version()}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # diffyne serve
    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the component update server",
    )
    serve_parser.add_argument("root", nargs="?", default=".", help="Application root directory")
    serve_parser.add_argument(
        "--components", default=None, help="Module or .py file defining components",
    )
    serve_parser.add_argument("--host", default=None, help="Bind address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port")
    serve_parser.add_argument("--workers", type=int, default=None, help="Worker count (0=auto)")
    serve_parser.add_argument(
        "--debug", action="store_true", default=None, help="Development mode",
    )

    # diffyne keygen
    keygen_parser = subparsers.add_parser(
        "keygen",
        help="Print a new random secret key",
    )
    keygen_parser.add_argument(
        "--bytes", type=int, default=48, dest="nbytes", help="Random bytes before encoding",
    )

    # diffyne manifest
    manifest_parser = subparsers.add_parser(
        "manifest",
        help="Print the capability manifest of a component class",
    )
    manifest_parser.add_argument("target", help="MODULE:Class")
    manifest_parser.add_argument("--name", default=None, help="Registered component name")

    return parser


def _get_version() -> str:
    """Get the package version."""
    from diffyne import __version__

    return __version__


def _print_manifest(target: str, name: str | None) -> None:
    from diffyne._errors import ConfigError
    from diffyne.app import resolve_component_class
    from diffyne.component.manifest import build_manifest
    from diffyne.component.registry import default_component_name

    try:
        cls = resolve_component_class(target)
        manifest = build_manifest(cls, name or default_component_name(cls))
    except ConfigError as exc:
        print(f"  Error: {exc}", file=sys.stderr)
        sys.exit(1)
    print(json.dumps(manifest.to_dict(), indent=2))


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "keygen":
        if args.nbytes < 24:
            parser.error("--bytes must be at least 24")
        print(secrets.token_urlsafe(args.nbytes))
    elif args.command == "manifest":
        _print_manifest(args.target, args.name)
    elif args.command == "serve":
        from diffyne.app import serve

        serve(
            root=args.root,
            components=args.components,
            host=args.host,
            port=args.port,
            workers=args.workers,
            debug=args.debug,
        )


if __name__ == "__main__":
    main()
