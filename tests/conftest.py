"""Shared fixtures for the prototype test suite."""

from __future__ import annotations

import logging

import pytest

from prototype.config import reset_settings


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------

_SETTINGS_ENV = (
    "PROTOTYPE_TAG_KEY",
    "PROTOTYPE_GETTER_PREFIX",
    "PROTOTYPE_SETTER_PREFIX",
    "PROTOTYPE_CYCLE_DEPTH",
    "PROTOTYPE_INTERRUPT_ON_ERROR",
    "PROTOTYPE_LOG_LEVEL",
    "PROTOTYPE_LOG_FORMAT",
)


@pytest.fixture
def clean_settings(monkeypatch):
    """Process settings re-read from an environment without PROTOTYPE_* vars."""
    for name in _SETTINGS_ENV:
        monkeypatch.delenv(name, raising=False)
    reset_settings()
    yield
    reset_settings()


# ---------------------------------------------------------------------------
# Logging
# ---------------------------------------------------------------------------

@pytest.fixture
def restore_root_logger():
    """Drop handlers installed during the test and restore the root level."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield root
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)
    root.setLevel(level)


# ---------------------------------------------------------------------------
# Cyclic graphs
# ---------------------------------------------------------------------------

@pytest.fixture
def cyclic_map() -> dict:
    m: dict = {}
    m["self"] = m
    return m


@pytest.fixture
def cyclic_list() -> list:
    items: list = []
    items.append(items)
    return items
