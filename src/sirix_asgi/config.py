# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Configuration for sirix-asgi.

All process-wide settings (provider, CORS, TLS, storage location) are
bundled into one immutable ``Settings`` value, built once at startup and
passed explicitly to every component that needs it.

Sources (later overrides earlier):
    1. Built-in DEFAULTS
    2. Global config: ~/sirix-data/config.yaml
    3. Project config: --config FILE (default ./config.yaml)
    4. Environment variables SIRIX_ASGI_* and command line arguments
       (bootstrap options only: config, host, port, dataroot)
    5. Explicit keyword overrides passed to ``load_settings()``

YAML files may use nested sections or dotted keys, both flatten to the
same dotted names::

    oAuthFlowType: AUTH_CODE
    keycloak:
      url: "https://localhost:8080/realms/sirixdb"
    client.secret: "..."
    cors:
      allowedOriginPattern: "https://app\\.example\\.com"
      allowCredentials: true

Recognized keys and defaults are listed in DEFAULTS.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

from genro_toolbox import SmartOptions  # type: ignore[import-untyped]

__all__ = [
    "CORS_ALLOWED_HEADERS",
    "CORS_ALLOWED_METHODS",
    "DATA_ROOT",
    "DEFAULTS",
    "ConfigError",
    "CorsSettings",
    "FlowType",
    "HttpsSettings",
    "OAuth2Settings",
    "Settings",
    "flatten",
    "load_settings",
]

DATA_ROOT = Path.home() / "sirix-data"

CORS_ALLOWED_HEADERS: tuple[str, ...] = (
    "x-requested-with",
    "Access-Control-Allow-Origin",
    "origin",
    "Content-Type",
    "accept",
    "X-PINGARUNER",
    "Authorization",
    "authorization",
)

CORS_ALLOWED_METHODS: tuple[str, ...] = ("GET", "POST", "OPTIONS", "DELETE", "PATCH", "PUT")

DEFAULTS: dict[str, Any] = {
    "oAuthFlowType": "PASSWORD",
    "keycloak.url": None,
    "client.id": "sirix",
    "client.secret": None,
    "token.path": "/token",
    "auth.path": "/user/authorize",
    "redirect.uri": None,
    "cors.allowedOriginPattern": "*",
    "cors.allowCredentials": False,
    "https.host": "0.0.0.0",
    "https.port": 9443,
    "https.enabled": True,
    "body.limit": -1,
    "handlers": None,
    "logging.level": "INFO",
}


class ConfigError(Exception):
    """Configuration error."""


class FlowType(str, Enum):
    """OAuth2 grant flow used by the token endpoint."""

    PASSWORD = "PASSWORD"
    AUTH_CODE = "AUTH_CODE"


@dataclass(frozen=True)
class OAuth2Settings:
    flow: FlowType = FlowType.PASSWORD
    site: str | None = None
    client_id: str = "sirix"
    client_secret: str | None = None
    token_path: str = "/token"
    auth_path: str = "/user/authorize"
    redirect_uri: str | None = None

    @property
    def auth_code(self) -> bool:
        return self.flow is FlowType.AUTH_CODE


@dataclass(frozen=True)
class CorsSettings:
    origin_pattern: str = "*"
    allowed_headers: tuple[str, ...] = CORS_ALLOWED_HEADERS
    allowed_methods: tuple[str, ...] = CORS_ALLOWED_METHODS
    allow_credentials: bool = False


@dataclass(frozen=True)
class HttpsSettings:
    host: str = "0.0.0.0"
    port: int = 9443
    enabled: bool = True
    cert_path: Path = DATA_ROOT / "cert.pem"
    key_path: Path = DATA_ROOT / "key.pem"


@dataclass(frozen=True)
class Settings:
    """Immutable process configuration.

    Attributes:
        oauth2: Identity provider and grant flow.
        cors: Cross-origin policy, only applied with the AUTH_CODE flow.
        https: Listener and TLS material.
        data_root: Backing store location, shared read-only by all requests.
        body_limit: Maximum request body size in bytes, -1 for unlimited.
        handlers: ``module:Class`` of the resource handlers, None for the
            built-in placeholder that answers 501.
        log_level: Root log level name used by the CLI.
    """

    oauth2: OAuth2Settings = OAuth2Settings()
    cors: CorsSettings = CorsSettings()
    https: HttpsSettings = HttpsSettings()
    data_root: Path = DATA_ROOT
    body_limit: int = -1
    handlers: str | None = None
    log_level: str = "INFO"

    @property
    def cors_enabled(self) -> bool:
        """CORS is installed only for the authorization-code flow."""
        return self.oauth2.auth_code

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any] | None = None, data_root: Path | None = None) -> Settings:
        """Build Settings from a (possibly nested) mapping of config keys.

        Raises:
            ConfigError: If a value cannot be converted.
        """
        opts = dict(DEFAULTS)
        opts.update({k: v for k, v in flatten(values or {}).items() if v is not None})
        root = Path(data_root) if data_root is not None else DATA_ROOT

        flow_name = str(opts["oAuthFlowType"]).strip().upper()
        try:
            flow = FlowType(flow_name)
        except ValueError:
            raise ConfigError(
                f"Invalid oAuthFlowType '{opts['oAuthFlowType']}': expected PASSWORD or AUTH_CODE"
            ) from None

        oauth2 = OAuth2Settings(
            flow=flow,
            site=_strip_slash(opts["keycloak.url"]),
            client_id=str(opts["client.id"]),
            client_secret=opts["client.secret"],
            token_path=str(opts["token.path"]),
            auth_path=str(opts["auth.path"]),
            redirect_uri=opts["redirect.uri"],
        )
        cors = CorsSettings(
            origin_pattern=str(opts["cors.allowedOriginPattern"]),
            allow_credentials=_to_bool("cors.allowCredentials", opts["cors.allowCredentials"]),
        )
        https = HttpsSettings(
            host=str(opts["https.host"]),
            port=_to_int("https.port", opts["https.port"]),
            enabled=_to_bool("https.enabled", opts["https.enabled"]),
            cert_path=root / "cert.pem",
            key_path=root / "key.pem",
        )
        return cls(
            oauth2=oauth2,
            cors=cors,
            https=https,
            data_root=root,
            body_limit=_to_int("body.limit", opts["body.limit"]),
            handlers=opts["handlers"],
            log_level=str(opts["logging.level"]).upper(),
        )


def flatten(data: Mapping[str, Any], prefix: str = "") -> dict[str, Any]:
    """Flatten nested sections into dotted keys.

    Example:
        >>> flatten({"keycloak": {"url": "x"}, "client.secret": "s"})
        {'keycloak.url': 'x', 'client.secret': 's'}
    """
    result: dict[str, Any] = {}
    for key, value in data.items():
        full_key = f"{prefix}.{key}" if prefix else str(key)
        if hasattr(value, "as_dict"):
            value = value.as_dict()
        if isinstance(value, Mapping):
            result.update(flatten(value, full_key))
        else:
            result[full_key] = value
    return result


def _strip_slash(value: Any) -> str | None:
    if not value:
        return None
    return str(value).rstrip("/")


def _to_bool(key: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("on", "true", "yes", "1"):
            return True
        if lowered in ("off", "false", "no", "0", ""):
            return False
    if isinstance(value, int):
        return bool(value)
    raise ConfigError(f"Invalid boolean for '{key}': {value!r}")


def _to_int(key: str, value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"Invalid integer for '{key}': {value!r}")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"Invalid integer for '{key}': {value!r}") from None


def _bootstrap_opts_spec(config: str, host: str, port: int, dataroot: str) -> None:
    """Reference function for SmartOptions type extraction (no defaults)."""


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    opts = SmartOptions(str(path))
    return flatten(opts.as_dict() if hasattr(opts, "as_dict") else dict(opts))


def load_settings(argv: list[str] | None = None, **overrides: Any) -> Settings:
    """Resolve Settings from files, environment, command line and overrides.

    Args:
        argv: Command line arguments (``--config``, ``--host``, ``--port``,
            ``--dataroot``).
        **overrides: Dotted config keys passed as keyword arguments with
            dots replaced by double underscores (``https__port=8443``).

    Raises:
        ConfigError: If an explicit config file is missing or a value is invalid.
    """
    env_argv_opts = SmartOptions(_bootstrap_opts_spec, env="SIRIX_ASGI", argv=argv or [])

    data_root = Path(env_argv_opts["dataroot"] or DATA_ROOT).expanduser()

    merged: dict[str, Any] = {}
    merged.update(_read_yaml(data_root / "config.yaml"))

    explicit_config = env_argv_opts["config"]
    project_config = Path(explicit_config or "config.yaml").expanduser()
    if explicit_config and not project_config.exists():
        raise ConfigError(f"Configuration file not found: {project_config}")
    merged.update(_read_yaml(project_config))

    if env_argv_opts["host"]:
        merged["https.host"] = env_argv_opts["host"]
    if env_argv_opts["port"]:
        merged["https.port"] = env_argv_opts["port"]

    merged.update({key.replace("__", "."): value for key, value in overrides.items()})
    return Settings.from_mapping(merged, data_root=data_root)
