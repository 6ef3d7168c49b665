# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Tests for Settings resolution."""

from __future__ import annotations

from pathlib import Path

import pytest

from sirix_asgi.config import (
    CORS_ALLOWED_HEADERS,
    CORS_ALLOWED_METHODS,
    DATA_ROOT,
    ConfigError,
    FlowType,
    Settings,
    flatten,
)


class TestDefaults:
    def test_defaults(self) -> None:
        settings = Settings.from_mapping()
        assert settings.oauth2.flow is FlowType.PASSWORD
        assert settings.oauth2.client_id == "sirix"
        assert settings.oauth2.token_path == "/token"
        assert settings.oauth2.auth_path == "/user/authorize"
        assert settings.oauth2.site is None
        assert settings.https.port == 9443
        assert settings.https.host == "0.0.0.0"
        assert settings.https.enabled is True
        assert settings.body_limit == -1
        assert settings.handlers is None
        assert settings.log_level == "INFO"
        assert not settings.cors_enabled

    def test_data_root_and_tls_files(self) -> None:
        settings = Settings.from_mapping()
        assert settings.data_root == DATA_ROOT
        assert DATA_ROOT == Path.home() / "sirix-data"
        assert settings.https.cert_path == DATA_ROOT / "cert.pem"
        assert settings.https.key_path == DATA_ROOT / "key.pem"

    def test_cors_defaults(self) -> None:
        cors = Settings.from_mapping().cors
        assert cors.origin_pattern == "*"
        assert cors.allow_credentials is False
        assert cors.allowed_headers == CORS_ALLOWED_HEADERS
        assert "X-PINGARUNER" in cors.allowed_headers
        assert cors.allowed_methods == CORS_ALLOWED_METHODS

    def test_settings_are_frozen(self) -> None:
        settings = Settings.from_mapping()
        with pytest.raises(AttributeError):
            settings.body_limit = 10  # type: ignore[misc]


class TestOverrides:
    def test_dotted_keys(self, tmp_path: Path) -> None:
        settings = Settings.from_mapping(
            {
                "oAuthFlowType": "AUTH_CODE",
                "keycloak.url": "https://kc.test/realms/sirixdb/",
                "client.id": "web",
                "client.secret": "s",
                "redirect.uri": "https://app.test/cb",
                "https.port": "8443",
                "cors.allowCredentials": "true",
            },
            data_root=tmp_path,
        )
        assert settings.oauth2.auth_code
        assert settings.cors_enabled
        assert settings.oauth2.site == "https://kc.test/realms/sirixdb"
        assert settings.oauth2.client_id == "web"
        assert settings.oauth2.redirect_uri == "https://app.test/cb"
        assert settings.https.port == 8443
        assert settings.cors.allow_credentials is True
        assert settings.https.cert_path == tmp_path / "cert.pem"

    def test_nested_sections(self) -> None:
        settings = Settings.from_mapping(
            {"keycloak": {"url": "https://kc.test"}, "https": {"enabled": False}, "body": {"limit": 1024}}
        )
        assert settings.oauth2.site == "https://kc.test"
        assert settings.https.enabled is False
        assert settings.body_limit == 1024

    def test_flow_case_insensitive(self) -> None:
        assert Settings.from_mapping({"oAuthFlowType": "auth_code"}).oauth2.flow is FlowType.AUTH_CODE

    def test_none_values_keep_defaults(self) -> None:
        assert Settings.from_mapping({"client.id": None}).oauth2.client_id == "sirix"

    def test_log_level_uppercased(self) -> None:
        assert Settings.from_mapping({"logging.level": "debug"}).log_level == "DEBUG"


class TestInvalid:
    def test_unknown_flow(self) -> None:
        with pytest.raises(ConfigError, match="oAuthFlowType"):
            Settings.from_mapping({"oAuthFlowType": "IMPLICIT"})

    def test_bad_port(self) -> None:
        with pytest.raises(ConfigError, match="https.port"):
            Settings.from_mapping({"https.port": "abc"})

    def test_bad_bool(self) -> None:
        with pytest.raises(ConfigError, match="cors.allowCredentials"):
            Settings.from_mapping({"cors.allowCredentials": "maybe"})


def test_flatten() -> None:
    assert flatten({"keycloak": {"url": "x"}, "client.secret": "s", "a": {"b": {"c": 1}}}) == {
        "keycloak.url": "x",
        "client.secret": "s",
        "a.b.c": 1,
    }


class TestLoadSettings:
    def test_project_file_and_overrides(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        from sirix_asgi.config import load_settings

        monkeypatch.chdir(tmp_path)
        config_file = tmp_path / "sirix.yaml"
        config_file.write_text(
            "oAuthFlowType: AUTH_CODE\n"
            "keycloak:\n"
            "  url: https://kc.test/realms/sirixdb\n"
            "https:\n"
            "  port: 8443\n"
        )

        settings = load_settings(
            ["--config", str(config_file), "--dataroot", str(tmp_path)], client__id="web"
        )

        assert settings.oauth2.auth_code
        assert settings.oauth2.site == "https://kc.test/realms/sirixdb"
        assert settings.https.port == 8443
        assert settings.oauth2.client_id == "web"
        assert settings.data_root == tmp_path

    def test_missing_explicit_config(self, tmp_path: Path) -> None:
        from sirix_asgi.config import load_settings

        with pytest.raises(ConfigError, match="not found"):
            load_settings(["--config", str(tmp_path / "absent.yaml"), "--dataroot", str(tmp_path)])
