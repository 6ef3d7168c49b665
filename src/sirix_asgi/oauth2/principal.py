# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Principal - result of a successful authentication."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import orjson

__all__ = ["Principal", "collect_roles"]


def collect_roles(*sources: Mapping[str, Any] | None) -> list[str]:
    """Collect granted roles from token claims.

    Looks at Keycloak's ``realm_access.roles``, every
    ``resource_access.<client>.roles`` list and the space-separated
    ``scope`` claim. Order of first appearance is kept, duplicates dropped.
    """
    roles: list[str] = []

    def add(values: Any) -> None:
        for role in values or ():
            if isinstance(role, str) and role not in roles:
                roles.append(role)

    for source in sources:
        if not isinstance(source, Mapping):
            continue
        realm_access = source.get("realm_access")
        if isinstance(realm_access, Mapping):
            add(realm_access.get("roles"))
        resource_access = source.get("resource_access")
        if isinstance(resource_access, Mapping):
            for client_access in resource_access.values():
                if isinstance(client_access, Mapping):
                    add(client_access.get("roles"))
        scope = source.get("scope")
        if isinstance(scope, str):
            add(scope.split())
    return roles


@dataclass(frozen=True)
class Principal:
    """Authenticated identity, valid for one request.

    Attributes:
        token: Opaque access token.
        claims: Provider claims (token response or introspection result).
    """

    token: str
    claims: Mapping[str, Any] = field(default_factory=dict)

    @property
    def roles(self) -> list[str]:
        return collect_roles(self.claims)

    @property
    def subject(self) -> str | None:
        for key in ("preferred_username", "username", "sub"):
            value = self.claims.get(key)
            if isinstance(value, str) and value:
                return value
        return None

    def has_role(self, role: str) -> bool:
        """Case-insensitive role check."""
        wanted = role.lower()
        return any(granted.lower() == wanted for granted in self.roles)

    def to_json(self) -> bytes:
        """Claims serialized as JSON text."""
        return orjson.dumps(dict(self.claims))
