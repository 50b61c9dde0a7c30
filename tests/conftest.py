"""
Pytest configuration and shared fixtures for HUBBLE tests.

This conftest.py:
1. Adds the python/ source root and tests root to sys.path for imports
2. Provides funded state trees, registries and a deterministic signature scheme
3. Resets structlog after each test so CLI runs do not leak configuration
"""

import sys
from pathlib import Path

import pytest

# =============================================================================
# Path Setup - Must happen before any local imports
# =============================================================================

_PROJECT_ROOT = Path(__file__).resolve().parent.parent
_TESTS_ROOT = Path(__file__).resolve().parent

for _path in [str(_PROJECT_ROOT / "python"), str(_TESTS_ROOT)]:
    if _path not in sys.path:
        sys.path.insert(0, _path)

import structlog

from fixtures.common import (
    XorScheme,
    make_registry,
    make_secret_keys,
    make_state_tree,
)


# =============================================================================
# Pytest Fixtures (autodiscovered by pytest)
# =============================================================================


@pytest.fixture(autouse=True)
def _reset_structlog():
    yield
    structlog.reset_defaults()


@pytest.fixture
def secret_keys():
    return make_secret_keys()


@pytest.fixture
def state_tree():
    """Depth 8 tree holding sender, receiver, fee receiver and a token-2 account."""
    return make_state_tree()


@pytest.fixture
def registry(secret_keys):
    return make_registry(secret_keys)


@pytest.fixture
def scheme():
    return XorScheme()
