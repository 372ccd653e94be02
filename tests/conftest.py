"""Shared pytest fixtures: small product catalog and API test client."""
import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.routers.eiq import get_catalog
from app.services.eiq_calculator import Product
from app.services.eiq_catalog_service import build_catalog


@pytest.fixture
def catalog():
    """Deterministic catalog covering every optional-field combination."""
    return build_catalog([
        Product(name="Glifosato", min_rate=1.5, max_rate=3.0, eiq_per_ha=30.0),
        Product(name="Atrazina", min_rate=1.0, max_rate=2.0, eiq_per_ha=40.0),
        Product(name="Test10x20", max_rate=10.0, eiq_per_ha=20.0),
        Product(name="SoloMin", min_rate=0.5, eiq_per_ha=8.0),
        Product(name="SinEIQ", min_rate=0.1, max_rate=0.2),
        Product(name="MaxCero", min_rate=2.0, max_rate=0.0, eiq_per_ha=12.0),
        Product(name="Vacio"),
    ])


@pytest.fixture
def client(catalog):
    """API client whose catalog dependency is the test catalog."""
    app.dependency_overrides[get_catalog] = lambda: catalog
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
