"""Pytest configuration and fixtures.

Provides marker registration, logging configuration, and transport doubles
shared across suites. Fixtures here are opt-in unless marked autouse.
"""

from __future__ import annotations

import logging

import pytest

from tests.helpers import HangingTransport, ScriptedTransport

# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "contract: Behavioral guarantees of the public API",
        "integration: Component integration tests with mocked transports",
        "slow: Tests that take >1 second",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# =============================================================================
# Logging
# =============================================================================


@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Suppress noisy third-party loggers."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


@pytest.fixture(autouse=True)
def courier_debug_logs(caplog):
    """Capture courier's DEBUG logs so tests can assert on retry traces."""
    caplog.set_level(logging.DEBUG, logger="courier")
    return caplog


# =============================================================================
# Transport Doubles
# =============================================================================


@pytest.fixture
def scripted() -> ScriptedTransport:
    """Transport that replays a script; returns 200 once the script runs out."""
    return ScriptedTransport()


@pytest.fixture
def hanging() -> HangingTransport:
    """Transport that never resolves until cancelled."""
    return HangingTransport()
