# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Tests for the process bootstrap helpers."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from sirix_asgi.config import ConfigError
from sirix_asgi.server import uvicorn_options


def test_missing_tls_files(settings_factory: Any) -> None:
    with pytest.raises(ConfigError, match="cert.pem"):
        uvicorn_options(settings_factory())


def test_tls_files_present(settings_factory: Any, tmp_path: Path) -> None:
    (tmp_path / "cert.pem").write_text("cert")
    (tmp_path / "key.pem").write_text("key")

    options = uvicorn_options(settings_factory(https__port=8443))

    assert options["port"] == 8443
    assert options["host"] == "0.0.0.0"
    assert options["ssl_certfile"] == str(tmp_path / "cert.pem")
    assert options["ssl_keyfile"] == str(tmp_path / "key.pem")


def test_key_missing(settings_factory: Any, tmp_path: Path) -> None:
    (tmp_path / "cert.pem").write_text("cert")
    with pytest.raises(ConfigError, match="key.pem"):
        uvicorn_options(settings_factory())


def test_plain_http_for_development(settings_factory: Any) -> None:
    options = uvicorn_options(settings_factory(https__enabled=False))
    assert "ssl_certfile" not in options
    assert options["port"] == 9443
