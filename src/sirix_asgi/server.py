# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Process bootstrap: resolve Settings, build the application, run uvicorn.

TLS material is read from the data root (``~/sirix-data`` by default)::

    <data-root>/cert.pem
    <data-root>/key.pem

The server refuses to start without them unless ``https.enabled`` is false,
which serves plain HTTP for local development.
"""

from __future__ import annotations

import logging
from typing import Any

from .application import SirixApplication
from .config import ConfigError, Settings, load_settings

__all__ = ["run", "uvicorn_options"]

logger = logging.getLogger("sirix_asgi.server")


def uvicorn_options(settings: Settings) -> dict[str, Any]:
    """Keyword arguments for ``uvicorn.run``.

    Raises:
        ConfigError: If TLS is enabled and a PEM file is missing.
    """
    options: dict[str, Any] = {
        "host": settings.https.host,
        "port": settings.https.port,
        "log_config": None,
    }
    if settings.https.enabled:
        for path in (settings.https.cert_path, settings.https.key_path):
            if not path.is_file():
                raise ConfigError(f"TLS file not found: {path}")
        options["ssl_certfile"] = str(settings.https.cert_path)
        options["ssl_keyfile"] = str(settings.https.key_path)
    else:
        logger.warning("https.enabled is false: serving plain HTTP")
    return options


def run(argv: list[str] | None = None, settings: Settings | None = None) -> None:
    """Load configuration and serve until interrupted."""
    import uvicorn

    settings = settings or load_settings(argv)
    options = uvicorn_options(settings)
    app = SirixApplication(settings)
    scheme = "https" if settings.https.enabled else "http"
    logger.info("Starting %r on %s://%s:%s", app, scheme, options["host"], options["port"])
    uvicorn.run(app, **options)
