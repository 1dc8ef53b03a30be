"""Shared test fixtures."""
import os
import sys
import copy
import pytest
from unittest.mock import MagicMock

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime, timedelta, timezone

from ai.client import LLMUnavailableError
from config import load_config
from models.metrics import EnergyMetric
from models.store import MemoryStore

_CREDENTIAL_VARS = (
    "OPENAI_API_KEY", "MICROGRID_SMTP_USER", "MICROGRID_SMTP_PASS",
    "TWILIO_ACCOUNT_SID", "TWILIO_AUTH_TOKEN", "TWILIO_FROM_NUMBER",
)


def make_metric(consumption=150.0, generation=80.0, storage=60.0, grid_export=0.0,
                solar_efficiency=90.0, battery_health=97.0, timestamp=None):
    """A reading that trips no threshold unless told to."""
    return EnergyMetric(
        consumption=consumption,
        generation=generation,
        storage=storage,
        grid_export=grid_export,
        solar_efficiency=solar_efficiency,
        battery_health=battery_health,
        timestamp=timestamp or datetime.now(timezone.utc),
    )


def make_window(count=24, end=None, **overrides):
    """``count`` hourly readings ending at ``end``, oldest first."""
    end = end or datetime.now(timezone.utc)
    return [make_metric(timestamp=end - timedelta(hours=count - 1 - i), **overrides) for i in range(count)]


@pytest.fixture
def store():
    return MemoryStore(max_metrics=200)


@pytest.fixture
def config(monkeypatch):
    """Default config with credentials scrubbed from the environment."""
    for var in _CREDENTIAL_VARS:
        monkeypatch.delenv(var, raising=False)
    cfg = copy.deepcopy(load_config())
    cfg["simulator"]["seed"] = 42
    return cfg


@pytest.fixture
def llm():
    """Language model stand-in that is offline unless a test says otherwise."""
    client = MagicMock()
    client.is_configured.return_value = True
    client.complete.side_effect = LLMUnavailableError("offline")
    return client


@pytest.fixture
def components(config, llm):
    from monitor.wiring import build_components
    return build_components(config, llm=llm)


@pytest.fixture
def app(config, components):
    from web.app import create_app
    flask_app = create_app(config, components)
    flask_app.config["TESTING"] = True
    return flask_app


@pytest.fixture
def client(app):
    return app.test_client()
