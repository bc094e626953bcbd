"""CLI entry point for the IndexSync server and tooling.

Commands:
  serve    Run the HTTP service (uvicorn)
  mapping  Print the index mapping generated for a configured model
"""

from __future__ import annotations

import argparse
import json
import os
import sys
from pathlib import Path
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from indexsync.config.settings import Settings


def main(argv: list[str] | None = None) -> None:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="indexsync",
        description="IndexSync — Keep a document store and a search index in step",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"IndexSync {_get_version()}",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the HTTP service")
    _add_config_argument(serve)
    serve.add_argument(
        "--host",
        type=str,
        default=None,
        help="Server bind address (overrides config)",
    )
    serve.add_argument(
        "--port",
        "-p",
        type=int,
        default=None,
        help="Server port (overrides config)",
    )
    serve.add_argument(
        "--workers",
        "-w",
        type=int,
        default=None,
        help="Number of worker processes",
    )
    serve.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    serve.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default=None,
        help="Log level (overrides config)",
    )
    serve.set_defaults(handler=_serve)

    mapping = subparsers.add_parser("mapping", help="Print the generated mapping of a configured model")
    _add_config_argument(mapping, required=True)
    mapping.add_argument("model", type=str, help="Model name as declared under 'models'")
    mapping.set_defaults(handler=_mapping)

    args = parser.parse_args(argv)
    args.handler(args)


def _add_config_argument(parser: argparse.ArgumentParser, *, required: bool = False) -> None:
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        required=required,
        help="Path to YAML configuration file",
    )


def _load_settings(config: str | None) -> Settings:
    from indexsync.config.settings import Settings

    if not config:
        return Settings()
    config_path = Path(config)
    if not config_path.exists():
        print(f"Error: Config file not found: {config_path}", file=sys.stderr)
        sys.exit(1)
    return Settings.from_yaml(config_path)


def _serve(args: argparse.Namespace) -> None:
    settings = _load_settings(args.config)

    # Apply CLI overrides
    if args.host:
        settings.server.host = args.host
    if args.port:
        settings.server.port = args.port
    if args.workers:
        settings.server.workers = args.workers
    if args.log_level:
        settings.observability.log_level = args.log_level

    from indexsync.observability.logging import setup_logging

    setup_logging(settings.observability)

    # Check port availability before starting
    _check_port(settings.server.host, settings.server.port)

    # The app factory runs in the server process: it reloads the same file,
    # and the overrides reach it as environment variables.
    _export_for_server(args)

    import uvicorn

    uvicorn.run(
        "indexsync.api.app:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        workers=settings.server.workers if not args.reload else 1,
        reload=args.reload,
        log_level=settings.observability.log_level.lower(),
        log_config=None,
    )


def _export_for_server(args: argparse.Namespace) -> None:
    from indexsync.api.app import CONFIG_ENV_VAR

    if args.config:
        os.environ[CONFIG_ENV_VAR] = str(Path(args.config).resolve())

    overrides = {
        "INDEXSYNC_SERVER__HOST": args.host,
        "INDEXSYNC_SERVER__PORT": args.port,
        "INDEXSYNC_SERVER__WORKERS": args.workers,
        "INDEXSYNC_OBSERVABILITY__LOG_LEVEL": args.log_level,
    }
    for var, value in overrides.items():
        if value:
            os.environ[var] = str(value)


def _mapping(args: argparse.Namespace) -> None:
    from indexsync.core.mapping import MappingGenerator
    from indexsync.exceptions import MappingGenerationError
    from indexsync.models.schema import SchemaDescription

    settings = _load_settings(args.config)
    config = settings.models.get(args.model)
    if config is None:
        print(
            f"Error: Model '{args.model}' is not declared in {args.config} "
            f"(declared: {', '.join(sorted(settings.models)) or 'none'})",
            file=sys.stderr,
        )
        sys.exit(1)

    try:
        schema = SchemaDescription.from_dict(config.fields, config.primary_key)
        mapping = MappingGenerator().generate(schema)
    except MappingGenerationError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)

    print(json.dumps(mapping.to_dict(), indent=2))


def _check_port(host: str, port: int) -> None:
    """Check if the port is available. If not, print a hint and exit."""
    import socket

    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        sock.bind((host if host != "0.0.0.0" else "127.0.0.1", port))
    except OSError:
        print(f"\n{'=' * 60}", file=sys.stderr)
        print(f"  ERROR: Port {port} is already in use!", file=sys.stderr)
        print(f"  Run 'lsof -i :{port}' to find the process.", file=sys.stderr)
        print(f"{'=' * 60}\n", file=sys.stderr)
        sys.exit(1)
    finally:
        sock.close()


def _get_version() -> str:
    """Get the package version."""
    from indexsync import __version__

    return __version__


if __name__ == "__main__":
    main()
