"""
Tests para LocustDriver y StagesShape.
"""

import pytest
from unittest.mock import MagicMock, patch

from locust.runners import LocalRunner, WorkerRunner

from src.scenario.checks import CheckRegistry
from src.scenario.driver import CHECKS_REPORT_KEY, LocustDriver, StagesShape
from src.scenario.options import SCENARIOS, ScenarioOptions, Stage
from src.utils.errors import CheckFailure, ErrorRegistry, SetupError


def make_environment(worker: bool = False, p95: float = 120.0, fail_ratio: float = 0.0):
    """Environment de Locust con estadísticas numéricas."""
    environment = MagicMock()
    environment.runner = MagicMock(spec=WorkerRunner if worker else LocalRunner)
    environment.process_exit_code = None

    stats = environment.stats.total
    stats.get_response_time_percentile.return_value = p95
    stats.fail_ratio = fail_ratio
    stats.num_requests = 100
    stats.num_failures = int(100 * fail_ratio)
    stats.avg_response_time = 80.0
    stats.median_response_time = 75.0
    stats.min_response_time = 10.0
    stats.max_response_time = 900.0
    stats.total_rps = 12.5
    return environment


@pytest.fixture(autouse=True)
def restore_shape():
    original = StagesShape.options
    yield
    StagesShape.options = original


@pytest.fixture
def driver():
    driver = LocustDriver(checks=CheckRegistry(), errors=ErrorRegistry())
    driver.configure(SCENARIOS["smoke"])
    return driver


@pytest.fixture
def session():
    return MagicMock(name="session")


# ============================================================================
# CONFIGURATION TESTS
# ============================================================================

class TestConfigure:
    """Tests para configure/register/install."""

    def test_configure(self, driver):
        assert len(driver.thresholds) == 3
        assert StagesShape.options is SCENARIOS["smoke"]

    def test_run_iteration_sin_register(self, driver, session):
        with pytest.raises(RuntimeError):
            driver.run_iteration(session)

    def test_run_iteration_pasa_el_contexto(self, driver, session):
        iteration = MagicMock()
        driver.register(MagicMock(), iteration, MagicMock())
        driver.context = {"eventId": "seed"}

        driver.run_iteration(session)

        iteration.assert_called_once_with(session, {"eventId": "seed"})

    def test_install_una_sola_vez(self, driver):
        events = MagicMock()

        driver.install(events)
        driver.install(events)

        assert events.test_start.add_listener.call_count == 1
        assert events.test_stop.add_listener.call_count == 1
        assert events.quitting.add_listener.call_count == 1
        assert events.report_to_master.add_listener.call_count == 1
        assert events.worker_report.add_listener.call_count == 1


# ============================================================================
# LIFECYCLE TESTS
# ============================================================================

class TestLifecycle:
    """Tests para setup/teardown en los eventos de Locust."""

    def test_setup_en_test_start(self, driver, session):
        setup = MagicMock(return_value={"eventId": "seed"})
        driver.register(setup, MagicMock(), MagicMock())
        driver.checks.record("Health Check", "status is 200", False)

        with patch.object(driver, "make_session", return_value=session):
            driver.on_test_start(make_environment())

        setup.assert_called_once_with(session)
        assert driver.context == {"eventId": "seed"}
        assert driver.checks.get_all() == {}

    def test_setup_no_corre_en_workers(self, driver):
        setup = MagicMock()
        driver.register(setup, MagicMock(), MagicMock())

        driver.on_test_start(make_environment(worker=True))

        setup.assert_not_called()

    def test_setup_con_excepcion(self, driver, session):
        driver.register(MagicMock(side_effect=SetupError("boom")), MagicMock(), MagicMock())

        with patch.object(driver, "make_session", return_value=session):
            driver.on_test_start(make_environment())

        assert driver.context == {"eventId": None}

    def test_teardown_en_test_stop(self, driver, session):
        teardown = MagicMock()
        driver.register(MagicMock(), MagicMock(), teardown)
        driver.context = {"eventId": "seed"}

        with patch.object(driver, "make_session", return_value=session):
            driver.on_test_stop(make_environment())

        teardown.assert_called_once_with(session, {"eventId": "seed"})

    def test_teardown_con_excepcion(self, driver, session):
        driver.register(MagicMock(), MagicMock(), MagicMock(side_effect=RuntimeError("boom")))

        with patch.object(driver, "make_session", return_value=session):
            driver.on_test_stop(make_environment())

    def test_resumen_incluye_errores_recientes(self, driver):
        driver.errors.record(CheckFailure("checks fallidos: has items (HTTP 200)"))

        with patch("src.scenario.driver.logger") as logger:
            driver.log_summary(make_environment())

        warnings = " ".join(c.args[0] for c in logger.warning.call_args_list)
        assert "CHECK" in warnings
        assert "has items" in warnings

    def test_teardown_no_corre_en_workers(self, driver):
        teardown = MagicMock()
        driver.register(MagicMock(), MagicMock(), teardown)

        driver.on_test_stop(make_environment(worker=True))

        teardown.assert_not_called()

    def test_make_session_usa_host(self):
        environment = make_environment()
        environment.host = "http://otro:7000"

        with patch("src.scenario.driver.HttpSession") as http_session:
            LocustDriver.make_session(environment)

        assert http_session.call_args.kwargs["base_url"] == "http://otro:7000"

    def test_make_session_sin_host(self):
        environment = make_environment()
        environment.host = None

        with patch("src.scenario.driver.HttpSession") as http_session:
            LocustDriver.make_session(environment)

        assert http_session.call_args.kwargs["base_url"] == "http://api.test:7000"


# ============================================================================
# THRESHOLD TESTS
# ============================================================================

class TestThresholdEnforcement:
    """Tests para la evaluación de thresholds al salir."""

    def test_thresholds_cumplidos(self, driver):
        environment = make_environment(p95=120.0, fail_ratio=0.01)

        driver.on_quitting(environment)

        assert environment.process_exit_code == 0

    def test_latencia_excedida(self, driver):
        environment = make_environment(p95=1500.0)

        driver.on_quitting(environment)

        assert environment.process_exit_code == 1

    def test_tasa_de_error_excedida(self, driver):
        environment = make_environment(fail_ratio=0.5)

        driver.on_quitting(environment)

        assert environment.process_exit_code == 1

    def test_sin_enforcement(self):
        driver = LocustDriver(checks=CheckRegistry(), errors=ErrorRegistry())
        driver.configure(SCENARIOS["smoke"], enforce_thresholds=False)
        environment = make_environment(fail_ratio=0.5)

        driver.on_quitting(environment)

        assert environment.process_exit_code is None

    def test_workers_no_evaluan(self, driver):
        environment = make_environment(worker=True, fail_ratio=0.5)

        driver.on_quitting(environment)

        assert environment.process_exit_code is None

    def test_evaluate_thresholds(self, driver):
        results = driver.evaluate_thresholds(make_environment(p95=700.0).stats.total)

        assert [r.passed for r in results] == [False, True, True]


# ============================================================================
# DISTRIBUTED TESTS
# ============================================================================

class TestWorkerReports:
    """Tests para el envío de checks de los workers al master."""

    def test_worker_adjunta_y_vacia_sus_checks(self, driver):
        driver.checks.record("Health Check", "status is 200", True)
        driver.checks.record("Health Check", "response is OK", False)
        data = {}

        driver.on_report_to_master("worker-1", data)

        assert data[CHECKS_REPORT_KEY] == {
            "Health Check::status is 200": [1, 0],
            "Health Check::response is OK": [0, 1],
        }
        assert driver.checks.get_all() == {}

    def test_master_suma_los_reportes(self):
        worker = LocustDriver(checks=CheckRegistry(), errors=ErrorRegistry())
        master = LocustDriver(checks=CheckRegistry(), errors=ErrorRegistry())
        master.checks.record("Teardown", "deleted successfully", True)

        for _ in range(2):
            worker.checks.record("Find Events", "has items", True)
            data = {}
            worker.on_report_to_master("worker-1", data)
            master.on_worker_report("worker-1", data)

        assert master.checks.get("Find Events", "has items").passes == 2
        assert master.checks.get("Teardown", "deleted successfully").passes == 1

    def test_reporte_sin_checks(self, driver):
        driver.on_worker_report("worker-1", {"stats": []})
        assert driver.checks.get_all() == {}

    def test_resumen_de_checks_al_salir(self, driver):
        driver.checks.merge({"Find Events::has items": [3, 1]})

        with patch("src.scenario.driver.logger") as logger:
            driver.on_quitting(make_environment())

        logged = [c.args[0] for c in logger.info.call_args_list]
        assert any(line.startswith("✗ Find Events::has items: 75.0%") for line in logged)


# ============================================================================
# SHAPE TESTS
# ============================================================================

class TestStagesShape:
    """Tests para la forma de carga."""

    def make_shape(self, run_time: float) -> StagesShape:
        shape = StagesShape()
        shape.get_run_time = MagicMock(return_value=run_time)
        return shape

    def test_sin_opciones(self):
        StagesShape.options = None
        assert self.make_shape(0).tick() is None

    def test_rampa(self):
        StagesShape.options = ScenarioOptions(
            name="t", description="", stages=[Stage("10s", 10), Stage("10s", 0)]
        )

        assert self.make_shape(5).tick() == (5, 1.0)
        assert self.make_shape(10).tick() == (10, 1.0)
        assert self.make_shape(15).tick() == (5, 1.0)

    def test_fin_de_stages(self):
        StagesShape.options = SCENARIOS["smoke"]
        assert self.make_shape(60).tick() is None

    def test_pico(self):
        StagesShape.options = SCENARIOS["spike"]
        users, spawn_rate = self.make_shape(65).tick()

        assert users == 55
        assert spawn_rate == 9
