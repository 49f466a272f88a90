"""Global pytest configuration.

Tests under tests/integration get the integration marker, so
`pytest -m "not integration"` runs without a Redis server.
"""

from __future__ import annotations

from pathlib import Path

INTEGRATION_DIR = Path(__file__).parent / "integration"


def pytest_collection_modifyitems(items):
    """Mark every test collected from the integration directory."""
    import pytest

    for item in items:
        if INTEGRATION_DIR in Path(str(item.fspath)).parents:
            item.add_marker(pytest.mark.integration)
