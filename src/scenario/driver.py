# ==============================================================================
# Load Driver
# ==============================================================================
"""
Puente entre el escenario y el runner de carga.

LoadDriver es la interfaz abstracta: recibe stages/thresholds y las
funciones setup/iteration/teardown. LocustDriver la implementa con
eventos de Locust:

- test_start -> setup() una vez (master o local, nunca en workers)
- test_stop  -> teardown() y resumen de requests/errores
- quitting   -> resumen de checks, thresholds y process_exit_code
- report_to_master / worker_report -> checks de los workers al master

StagesShape traduce los stages a la forma de carga de Locust.
"""

from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from locust import LoadTestShape
from locust.clients import HttpSession
from locust.runners import WorkerRunner

from src.scenario.checks import CheckRegistry, check_registry
from src.scenario.eventos import SetupContext
from src.scenario.options import ScenarioOptions, Threshold, ThresholdResult
from src.utils.errors import ErrorRegistry, error_registry
from src.utils.logger import LogContext, get_logger, log_exception

logger = get_logger(__name__)

SetupFn = Callable[[Any], SetupContext]
IterationFn = Callable[..., None]
TeardownFn = Callable[[Any, Optional[SetupContext]], None]

# Clave de los checks en el reporte worker -> master
CHECKS_REPORT_KEY = "eventos_checks"


class LoadDriver(ABC):
    """
    Interfaz de un generador de carga.

    Cualquier herramienta capaz de rampar usuarios virtuales puede
    implementarla.
    """

    @abstractmethod
    def configure(self, options: ScenarioOptions) -> None:
        """Declara stages y thresholds."""

    @abstractmethod
    def register(self, setup: SetupFn, iteration: IterationFn, teardown: TeardownFn) -> None:
        """Registra las tres fases del escenario."""

    @abstractmethod
    def run_iteration(self, session: Any) -> None:
        """Ejecuta una iteración con la sesión de un usuario virtual."""


class LocustDriver(LoadDriver):
    """
    LoadDriver sobre Locust.

    Uso (en el locustfile):
        locust_driver.configure(configuration())
        locust_driver.register(setup, iteration, teardown)
        locust_driver.install(events)
    """

    def __init__(
        self,
        checks: Optional[CheckRegistry] = None,
        errors: Optional[ErrorRegistry] = None,
    ):
        self.options: Optional[ScenarioOptions] = None
        self.thresholds: List[Threshold] = []
        self.context: Optional[SetupContext] = None
        self.enforce_thresholds: bool = True
        self.checks = checks or check_registry
        self.errors = errors or error_registry
        self._setup: Optional[SetupFn] = None
        self._iteration: Optional[IterationFn] = None
        self._teardown: Optional[TeardownFn] = None
        self._installed = False

    # ==========================================================================
    # LoadDriver
    # ==========================================================================

    def configure(self, options: ScenarioOptions, enforce_thresholds: bool = True) -> None:
        self.options = options
        self.thresholds = options.parsed_thresholds()
        self.enforce_thresholds = enforce_thresholds
        StagesShape.options = options

    def register(self, setup: SetupFn, iteration: IterationFn, teardown: TeardownFn) -> None:
        self._setup = setup
        self._iteration = iteration
        self._teardown = teardown

    def run_iteration(self, session: Any) -> None:
        if self._iteration is None:
            raise RuntimeError("LocustDriver.register() no fue llamado")
        self._iteration(session, self.context)

    # ==========================================================================
    # Locust events
    # ==========================================================================

    def install(self, events: Any) -> None:
        """Conecta los listeners a los eventos de Locust (una sola vez)."""
        if self._installed:
            return
        events.test_start.add_listener(self.on_test_start)
        events.test_stop.add_listener(self.on_test_stop)
        events.quitting.add_listener(self.on_quitting)
        events.report_to_master.add_listener(self.on_report_to_master)
        events.worker_report.add_listener(self.on_worker_report)
        self._installed = True

    @staticmethod
    def is_worker(environment: Any) -> bool:
        return isinstance(environment.runner, WorkerRunner)

    @staticmethod
    def make_session(environment: Any, base_url: Optional[str] = None) -> HttpSession:
        """Sesión HTTP fuera de un usuario virtual (setup/teardown)."""
        if base_url is None:
            from config.settings import settings
            base_url = environment.host or settings.BASE_URL
        return HttpSession(
            base_url=base_url,
            request_event=environment.events.request,
            user=None,
        )

    def on_test_start(self, environment: Any, **kwargs: Any) -> None:
        if self.is_worker(environment) or self._setup is None:
            return

        self.checks.reset()
        self.errors.reset()
        with LogContext(group="setup"):
            try:
                self.context = self._setup(self.make_session(environment))
            except Exception as e:
                log_exception(logger, "Setup falló", e)
                self.context = {"eventId": None}

    def on_test_stop(self, environment: Any, **kwargs: Any) -> None:
        if self.is_worker(environment):
            return

        if self._teardown is not None:
            with LogContext(group="teardown"):
                try:
                    self._teardown(self.make_session(environment), self.context)
                except Exception as e:
                    log_exception(logger, "Teardown falló", e)

        self.log_summary(environment)

    def on_report_to_master(self, client_id: str, data: Dict[str, Any], **kwargs: Any) -> None:
        """Worker: adjunta los checks acumulados desde el último reporte."""
        data[CHECKS_REPORT_KEY] = self.checks.drain()

    def on_worker_report(self, client_id: str, data: Dict[str, Any], **kwargs: Any) -> None:
        """Master: suma los checks reportados por un worker."""
        self.checks.merge(data.get(CHECKS_REPORT_KEY) or {})

    def on_quitting(self, environment: Any, **kwargs: Any) -> None:
        if self.is_worker(environment):
            return

        # Al salir ya llegaron los reportes finales de los workers
        self.log_checks()

        if not self.thresholds:
            return

        results = self.evaluate_thresholds(environment.stats.total)
        breached = [r for r in results if not r.passed]

        for result in results:
            if result.passed:
                logger.info(result.describe())
            else:
                logger.error(result.describe())

        if not self.enforce_thresholds:
            return

        # Sin 0 explícito Locust sale con 1 si hubo cualquier error de request
        environment.process_exit_code = 1 if breached else 0
        if breached:
            logger.error(f"{len(breached)} threshold(s) no cumplidos")

    # ==========================================================================
    # Helpers
    # ==========================================================================

    def evaluate_thresholds(self, stats: Any) -> List[ThresholdResult]:
        return [threshold.evaluate(stats) for threshold in self.thresholds]

    def log_checks(self) -> None:
        lines = self.checks.summary_lines()
        if not lines:
            return
        logger.info("Checks:")
        for line in lines:
            logger.info(line)

    def log_summary(self, environment: Any) -> None:
        logger.info("-" * 60)
        logger.info("Pruebas de carga finalizadas")

        stats = environment.stats.total
        if stats.num_requests > 0:
            logger.info(f"Total requests: {stats.num_requests}")
            logger.info(f"Failures: {stats.num_failures}")
            logger.info(f"Avg response time: {stats.avg_response_time:.0f}ms")
            logger.info(f"Requests/s: {stats.total_rps:.2f}")

            if stats.num_failures > 0:
                logger.warning(f"Error rate: {stats.fail_ratio * 100:.2f}%")

        counts = self.errors.get_counts()
        if counts:
            logger.warning(f"Errores por categoría: {counts}")
            for error in self.errors.get_recent(limit=5):
                logger.warning(f"  [{error['category']}] {error['group'] or '-'}: {error['message']}")

        logger.info("-" * 60)


class StagesShape(LoadTestShape):
    """
    Forma de carga a partir de los stages del escenario.

    Cada tick calcula los usuarios objetivo interpolando linealmente
    dentro del stage actual; devuelve None al terminar el último stage.
    """

    options: Optional[ScenarioOptions] = None

    def tick(self):
        if self.options is None:
            return None

        run_time = self.get_run_time()
        target = self.options.target_at(run_time)
        if target is None:
            return None
        return round(target), self.options.spawn_rate_at(run_time)


# Instancia única usada por el locustfile y los usuarios
locust_driver = LocustDriver()
