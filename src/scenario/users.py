# ==============================================================================
# Eventos User for Load Testing
# ==============================================================================
"""
Usuario virtual de la prueba de carga.

Cada usuario ejecuta la iteración completa del escenario en un ciclo y
espera THINK_TIME_SECONDS antes del siguiente.
"""

import itertools
from typing import Any

from locust import HttpUser, constant, tag, task

from config.settings import settings
from src.scenario.driver import locust_driver
from src.utils.logger import LogContext, get_logger


logger = get_logger(__name__)

_user_ids = itertools.count(1)


class EventosUser(HttpUser):
    """
    Simula un cliente de la API de Eventos.

    Attributes:
        vu_id: Identificador del usuario virtual para logs
    """

    # Pausa fija entre iteraciones
    wait_time = constant(settings.THINK_TIME_SECONDS)

    # Locust --host tiene prioridad
    host = settings.BASE_URL

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        self.vu_id: str = f"vu-{next(_user_ids)}"

    def on_start(self) -> None:
        logger.debug(f"Usuario virtual {self.vu_id} iniciado")

    @task
    @tag("eventos")
    def eventos_iteration(self) -> None:
        """Health, create/get/update y find en un solo ciclo."""
        with LogContext(run_id=settings.TEST_RUN, user_id=self.vu_id):
            locust_driver.run_iteration(self.client)
