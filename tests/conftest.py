"""Pytest fixtures for certchain tests."""

import pytest

from certchain.app import create_app
from certchain.blockchain import CertificateRegistry

MASTER_KEY = "test-master-key"
ISSUER_SECRET = "test-issuer-secret"


def make_config(tmp_path, **overrides):
    """Build an app config pointing at a throwaway database.

    Args:
        tmp_path: Directory for the SQLite file
        **overrides: Extra config keys

    Returns:
        Config dict for create_app
    """
    config = {
        "TESTING": True,
        "MASTER_KEY": MASTER_KEY,
        "ISSUER_SECRET": ISSUER_SECRET,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'certchain.db'}",
        "SEED_PATH": None,
        "LEDGER_PATH": None,
        "LEDGER_BLOCK_TIME": 0.0,
        "LEDGER_CONFIRMATION_TIMEOUT": 5.0,
        "CONTRACT_INFO_PATH": str(tmp_path / "contract-info.json"),
        "LOG_LEVEL": "WARNING",
    }
    config.update(overrides)
    return config


@pytest.fixture
def app(tmp_path):
    """Flask app seeded with the packaged demo events and an in-memory ledger."""
    app = create_app(make_config(tmp_path))
    yield app
    app.extensions["certchain"].registry.close()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    """Service container with an active app context for oracle queries."""
    with app.app_context():
        yield app.extensions["certchain"]


@pytest.fixture
def coordinator(services):
    return services.coordinator


@pytest.fixture
def registry():
    registry = CertificateRegistry(ISSUER_SECRET.encode())
    yield registry
    registry.close()


@pytest.fixture
def app_config(tmp_path):
    """Factory for configs sharing this test's temporary directory."""

    def build(**overrides):
        return make_config(tmp_path, **overrides)

    return build
