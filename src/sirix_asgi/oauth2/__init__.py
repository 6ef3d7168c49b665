# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""OAuth2 client side: provider discovery, grant flows, Principal."""

from .client import OAuth2Client, ProviderMetadata
from .principal import Principal, collect_roles

__all__ = ["OAuth2Client", "Principal", "ProviderMetadata", "collect_roles"]
