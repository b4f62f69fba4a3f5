"""Pytest configuration and shared fixtures."""

import sys
from pathlib import Path

import pytest

# Add project root and src to path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT / "src"))

from crop_compliance.engine import ComplianceEngine, Submission  # noqa: E402

ADMIN = "deployer"
USER = "wallet_2"
HASH = bytes(range(32))


@pytest.fixture
def project_root():
    return ROOT


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    """Keep CLI runs from attaching handlers to captured streams."""
    import crop_compliance.utils.log as log

    monkeypatch.setattr(log, "_configured", True)


@pytest.fixture
def engine():
    return ComplianceEngine(ADMIN)


@pytest.fixture
def seeded(engine):
    """Standard 1 with numerical [0,100], categorical {BT}, temporal 1000."""
    engine.add_standard(ADMIN, 1, "USDA", "USDA GMO Standards")
    engine.add_numerical_rule(ADMIN, 1, 1, "Pesticide Level", 0, 100)
    engine.add_categorical_rule(ADMIN, 1, 2, "Gene Type", ["BT"])
    engine.add_temporal_rule(ADMIN, 1, 3, "Growth Period", 1000)
    return engine


@pytest.fixture
def make_submission():
    """Factory for submissions; defaults pass every seeded rule."""

    def _make(value=50, category="BT", duration=500, data_hash=HASH):
        return Submission(numeric_value=value, category=category, duration=duration, data_hash=data_hash)

    return _make


@pytest.fixture
def state_path(tmp_path):
    return tmp_path / "state.json"
