"""
Pytest Configuration and Fixtures

Configuración global de pytest y fixtures compartidos.
"""

import os

import pytest

from tests.fakes import FakeResponse, FakeSession


# ============================================================================
# PYTEST CONFIGURATION
# ============================================================================

def pytest_configure(config):
    """Configuración de pytest."""
    # Establecer entorno de test antes de importar config.settings
    os.environ["LOAD_TEST_ENV"] = "local"
    os.environ["BASE_URL"] = "http://api.test:7000"
    os.environ["LOG_DIR"] = ""
    os.environ["LOG_LEVEL"] = "WARNING"
    os.environ.pop("TEST_RUN", None)
    os.environ.pop("LOAD_TEST_SCENARIO", None)
    os.environ.pop("VERIFY_UPDATE", None)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def fake_session_factory():
    """Crea FakeSession con rutas arbitrarias."""
    return FakeSession


@pytest.fixture
def event_id() -> str:
    return "4f7c2a7e-8d1b-4c47-9a51-0c2b8f1d3e6a"


@pytest.fixture
def healthy_api(event_id) -> FakeSession:
    """API que responde todo lo que el escenario espera."""
    from tests.factories import EventFactory, EventPageFactory

    created = EventFactory(id=event_id)
    updated = EventFactory(id=event_id, actualizado=True)
    path = f"/eventos/{event_id}"

    return FakeSession({
        ("GET", "/health"): FakeResponse(200, text="OK"),
        ("POST", "/eventos"): FakeResponse(201, created),
        ("GET", path): FakeResponse(200, created),
        ("PUT", path): FakeResponse(200, updated),
        ("GET", "/eventos"): FakeResponse(200, EventPageFactory(items=[created])),
        ("DELETE", path): [FakeResponse(200, text=""), FakeResponse(404, {"title": "Not Found"})],
    })


@pytest.fixture(autouse=True)
def reset_registries():
    """Limpia los registros globales entre tests."""
    from src.scenario.checks import check_registry
    from src.utils.errors import error_registry

    check_registry.reset()
    error_registry.reset()
    yield
    check_registry.reset()
    error_registry.reset()
