"""PyTest configuration.

Isolates every test from the user's ~/.kollection.toml and KOLLECTION_*
environment variables.
"""

import logging
import os

import pytest

from kollection.util.config import ENV_PREFIX, reset_config

logger = logging.getLogger(__name__)


@pytest.fixture(autouse=True)
def isolated_config(monkeypatch, tmp_path):
    """Point HOME at an empty directory and drop KOLLECTION_ variables."""
    monkeypatch.setenv("HOME", str(tmp_path))
    for env_var in list(os.environ):
        if env_var.startswith(ENV_PREFIX):
            monkeypatch.delenv(env_var)
    reset_config()
    yield tmp_path
    reset_config()

