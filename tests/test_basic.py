# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

import sirix_asgi


def test_version() -> None:
    """Test that version is defined."""
    assert sirix_asgi.__version__ == "0.1.0"


def test_exports() -> None:
    """Test that main exports are available."""
    assert hasattr(sirix_asgi, "SirixApplication")
    assert hasattr(sirix_asgi, "Router")
    assert hasattr(sirix_asgi, "Response")
    assert hasattr(sirix_asgi, "Settings")
    assert hasattr(sirix_asgi, "ResourceHandlers")
