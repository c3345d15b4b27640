# ==============================================================================
# Locustfile - Entry Point for Load Testing
# ==============================================================================
#
# Eventos API - Pruebas de Carga
#
# Uso:
#   # Modo interactivo (UI web en http://localhost:8089)
#   locust -f locustfile.py
#
#   # Modo headless (CI/CD); los stages los define LOAD_TEST_SCENARIO
#   LOAD_TEST_SCENARIO=load TEST_RUN=ci-123 \
#       locust -f locustfile.py --headless \
#       --host=http://localhost:7000 \
#       --html=reports/load_test.html
#
# ==============================================================================
"""
Entry point para pruebas de carga con Locust.

Configura el driver con el escenario seleccionado y expone a Locust el
usuario virtual y la forma de carga.
"""

import logging

from locust import events
from locust.runners import MasterRunner, WorkerRunner

from config.settings import settings
from src.scenario.driver import StagesShape, locust_driver
from src.scenario.eventos import iteration, setup, teardown
from src.scenario.options import configuration
from src.scenario.users import EventosUser
from src.utils.logger import configure_from_settings, get_logger

logger = get_logger(__name__)


# ==============================================================================
# CONFIGURACIÓN DEL ESCENARIO
# ==============================================================================

options = configuration()
locust_driver.configure(options, enforce_thresholds=bool(settings.ENFORCE_THRESHOLDS))
locust_driver.register(setup, iteration, teardown)
locust_driver.install(events)


# ==============================================================================
# EVENTOS DE LOCUST (Hooks)
# ==============================================================================

@events.init.add_listener
def on_locust_init(environment, **kwargs):
    """
    Ejecutado al iniciar Locust.

    Reinstala los handlers de logging después de que Locust configure
    los suyos.
    """
    configure_from_settings(force=True)

    logger.info("=" * 60)
    logger.info("Eventos API - Load Testing")
    logger.info("=" * 60)

    if isinstance(environment.runner, MasterRunner):
        logger.info("Iniciando como MASTER")
    elif isinstance(environment.runner, WorkerRunner):
        logger.info("Iniciando como WORKER")
    else:
        logger.info("Iniciando en modo LOCAL")

    if settings.is_production():
        logger.warning(f"Entorno PRODUCTION: la carga apunta a {environment.host or settings.BASE_URL}")


@events.test_start.add_listener
def on_test_start(environment, **kwargs):
    logger.info("-" * 60)
    logger.info(f"Escenario: {options.name} ({len(options.stages)} stages, "
                f"máx {options.max_target} usuarios, {options.total_seconds:.0f}s)")
    logger.info(f"Host: {environment.host or settings.BASE_URL}")
    logger.info(f"Test run: {settings.TEST_RUN}")
    logger.info("-" * 60)


@events.request.add_listener
def on_request(request_type, name, response_time, response_length, exception=None, **kwargs):
    """Logging detallado de requests fallidas."""
    if exception:
        logger.debug(f"Request failed: {request_type} {name} - {exception}")


# Locust detecta EventosUser y StagesShape en este módulo
__all__ = ["EventosUser", "StagesShape"]


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    logger.info("Ejecutar con: locust -f locustfile.py --host=%s", settings.BASE_URL)
