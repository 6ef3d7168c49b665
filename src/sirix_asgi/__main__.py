# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""
sirix-asgi CLI entry point.

Usage:
    sirix-asgi serve                         # config from ~/sirix-data and ./config.yaml
    sirix-asgi serve --config my.yaml        # explicit project config
    sirix-asgi serve --port 8443             # override https.port

Environment variables SIRIX_ASGI_CONFIG, SIRIX_ASGI_HOST, SIRIX_ASGI_PORT
and SIRIX_ASGI_DATAROOT are read as well.
"""

from __future__ import annotations

import logging
import sys


def cmd_serve(argv: list[str]) -> int:
    """Run the HTTPS server."""
    from .config import ConfigError, load_settings
    from .server import run

    try:
        settings = load_settings(argv)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    print("sirix-asgi starting...", flush=True)
    print(f"Data root: {settings.data_root}", flush=True)
    print(f"OAuth2 flow: {settings.oauth2.flow.value}", flush=True)
    print(flush=True)

    try:
        run(settings=settings)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nShutdown.")

    return 0


def main() -> int:
    """Main entry point."""
    if "--version" in sys.argv or "-v" in sys.argv:
        from . import __version__

        print(f"sirix-asgi {__version__}")
        return 0

    if "--help" in sys.argv or "-h" in sys.argv or len(sys.argv) == 1:
        print("Usage: sirix-asgi serve [options]")
        print()
        print("Options:")
        print("  --config FILE     Project config file (default: ./config.yaml)")
        print("  --host HOST       Listen address (default: 0.0.0.0)")
        print("  --port PORT       HTTPS port (default: 9443)")
        print("  --dataroot DIR    Data root with cert.pem/key.pem (default: ~/sirix-data)")
        print("  --version, -v     Show version")
        print("  --help, -h        Show this help")
        return 0

    subcommand = sys.argv[1]
    if subcommand != "serve":
        print(f"Error: unknown subcommand '{subcommand}'", file=sys.stderr)
        return 1

    return cmd_serve(sys.argv[2:])


if __name__ == "__main__":
    sys.exit(main())
