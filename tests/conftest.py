"""
Shared pytest configuration for the storj-notes test suite.

This file centralizes reusable testing utilities so that:
    • service and CLI tests share one deterministic in-memory storage double
    • the upload clock is pinned where tests compare timestamps
    • NOTES_* variables from the developer's shell never leak into tests
"""

import pytest
from typer.testing import CliRunner

from storj_notes.cli.main import CliState
from storj_notes.service import NoteService
from tests.dummy_storage import FIXED_NOW, DummyStorage

NOTES_ENV_VARS = (
    "NOTES_PASSPHRASE",
    "NOTES_APIKEY",
    "NOTES_SATELLITE",
    "NOTES_ACCESS",
    "NOTES_BUCKET",
)


# ============================================================================
# ENVIRONMENT ISOLATION
# ============================================================================


@pytest.fixture(autouse=True)
def clean_notes_env(monkeypatch):
    """Remove NOTES_* variables so configuration tests start from nothing."""
    for name in NOTES_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


# ============================================================================
# STORAGE + SERVICE FIXTURES
# ============================================================================


@pytest.fixture
def storage() -> DummyStorage:
    """A fresh in-memory storage client."""
    return DummyStorage()


@pytest.fixture
def service(storage):
    """
    An open NoteService over the `notes` bucket with the clock pinned to
    FIXED_NOW. Closed again after the test.
    """
    svc = NoteService.open(
        storage,
        storage.parse_access("test-grant"),
        "notes",
        clock=lambda: FIXED_NOW,
    )
    yield svc
    svc.close()


# ============================================================================
# CLI FIXTURES
# ============================================================================


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provides a fresh Typer CliRunner instance for CLI tests."""
    return CliRunner()


@pytest.fixture
def cli_state(storage):
    """
    Factory for CliState objects bound to the shared DummyStorage.

    `factory_calls` counts how often the CLI constructed a storage client,
    which lets usage-error tests assert that nothing was contacted.
    """

    class _Factory:
        def __init__(self):
            self.factory_calls = 0

        def __call__(self):
            self.factory_calls += 1
            return storage

    factory = _Factory()

    def _make() -> CliState:
        return CliState(client_factory=factory)

    _make.factory = factory
    return _make
