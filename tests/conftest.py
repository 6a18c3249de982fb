"""Pytest configuration and fixtures."""

import os

import pytest


@pytest.fixture(autouse=True)
def clean_switchyard_env(monkeypatch):
    """Keep SWITCHYARD_* settings from the outer environment out of tests."""
    for key in list(os.environ):
        if key.startswith("SWITCHYARD_"):
            monkeypatch.delenv(key)
