# ==============================================================================
# Load Test Options
# ==============================================================================
#
# Forma del tráfico (stages) y thresholds de la prueba de carga.
# Los escenarios predefinidos siguen el patrón smoke/load/stress/spike/soak.
#
# ==============================================================================
"""
Configuración del escenario de carga.

Define stages (rampas de usuarios virtuales), thresholds sobre las
métricas agregadas y los escenarios predefinidos.
"""

import math
import operator
import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from src.utils.errors import ConfigurationError


# ==============================================================================
# DURATIONS
# ==============================================================================

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)(ms|s|m|h)")
_DURATION_UNITS = {"ms": 0.001, "s": 1, "m": 60, "h": 3600}


def parse_duration(value: Union[str, int, float]) -> float:
    """
    Convierte una duración ("30s", "1m", "1m30s", "2h") a segundos.

    Raises:
        ConfigurationError: Si el formato no es válido
    """
    if isinstance(value, (int, float)):
        if value < 0:
            raise ConfigurationError(f"Duración negativa: {value}", field="duration")
        return float(value)

    text = value.strip()
    if text.replace(".", "", 1).isdigit():
        return float(text)

    total = 0.0
    position = 0
    for match in _DURATION_PART.finditer(text):
        if match.start() != position:
            break
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()

    if position == 0 or position != len(text):
        raise ConfigurationError(f"Duración inválida: '{value}'", field="duration")
    return total


# ==============================================================================
# STAGES
# ==============================================================================

@dataclass(frozen=True)
class Stage:
    """Tramo de rampa: llegar a `target` usuarios durante `duration`."""
    duration: str
    target: int

    def __post_init__(self) -> None:
        if self.target < 0:
            raise ConfigurationError(f"Target negativo en stage: {self.target}", field="target")
        # Valida el formato al construir
        parse_duration(self.duration)

    @property
    def seconds(self) -> float:
        return parse_duration(self.duration)


# ==============================================================================
# THRESHOLDS
# ==============================================================================

HTTP_REQ_DURATION = "http_req_duration"
HTTP_REQ_FAILED = "http_req_failed"

_THRESHOLD_EXPRESSION = re.compile(
    r"^\s*(?P<agg>p\((?P<pct>\d+(?:\.\d+)?)\)|avg|med|min|max|rate)"
    r"\s*(?P<op><=|>=|==|!=|<|>)\s*(?P<value>-?\d+(?:\.\d+)?)\s*$"
)

_OPERATORS: Dict[str, Callable[[float, float], bool]] = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}

_METRIC_AGGREGATIONS = {
    HTTP_REQ_DURATION: {"p", "avg", "med", "min", "max"},
    HTTP_REQ_FAILED: {"rate"},
}


@dataclass(frozen=True)
class Threshold:
    """
    Condición pass/fail sobre una métrica agregada.

    Attributes:
        metric: http_req_duration (ms) o http_req_failed (proporción)
        expression: Texto original, ej. "p(95)<500"
        aggregation: p, avg, med, min, max o rate
        percentile: Percentil (0-100) cuando aggregation == "p"
        op: Operador de comparación
        value: Límite
    """
    metric: str
    expression: str
    aggregation: str
    op: str
    value: float
    percentile: Optional[float] = None

    @classmethod
    def parse(cls, metric: str, expression: str) -> "Threshold":
        """
        Parsea una expresión de threshold.

        Raises:
            ConfigurationError: Si la métrica o la expresión no son válidas
        """
        if metric not in _METRIC_AGGREGATIONS:
            raise ConfigurationError(
                f"Métrica '{metric}' no soportada. Disponibles: {list(_METRIC_AGGREGATIONS)}",
                field="thresholds",
            )

        match = _THRESHOLD_EXPRESSION.match(expression)
        if not match:
            raise ConfigurationError(
                f"Threshold inválido para {metric}: '{expression}'", field="thresholds"
            )

        aggregation = "p" if match.group("pct") else match.group("agg")
        if aggregation not in _METRIC_AGGREGATIONS[metric]:
            raise ConfigurationError(
                f"Agregación '{aggregation}' no aplica a {metric}", field="thresholds"
            )

        percentile = float(match.group("pct")) if match.group("pct") else None
        if percentile is not None and not 0 < percentile <= 100:
            raise ConfigurationError(
                f"Percentil fuera de rango en '{expression}'", field="thresholds"
            )

        return cls(
            metric=metric,
            expression=expression.strip(),
            aggregation=aggregation,
            op=match.group("op"),
            value=float(match.group("value")),
            percentile=percentile,
        )

    def observe(self, stats: Any) -> float:
        """
        Lee el valor observado de las estadísticas agregadas del runner.

        Args:
            stats: Entrada de estadísticas de Locust (environment.stats.total)
        """
        if self.aggregation == "p":
            return float(stats.get_response_time_percentile(self.percentile / 100) or 0)
        if self.aggregation == "avg":
            return float(stats.avg_response_time or 0)
        if self.aggregation == "med":
            return float(stats.median_response_time or 0)
        if self.aggregation == "min":
            return float(stats.min_response_time or 0)
        if self.aggregation == "max":
            return float(stats.max_response_time or 0)
        return float(stats.fail_ratio or 0)

    def evaluate(self, stats: Any) -> "ThresholdResult":
        observed = self.observe(stats)
        passed = _OPERATORS[self.op](observed, self.value)
        return ThresholdResult(threshold=self, observed=observed, passed=passed)


@dataclass(frozen=True)
class ThresholdResult:
    """Resultado de evaluar un threshold."""
    threshold: Threshold
    observed: float
    passed: bool

    def describe(self) -> str:
        mark = "✓" if self.passed else "✗"
        return (
            f"{mark} {self.threshold.metric}: {self.threshold.expression} "
            f"(observado={self.observed:.4g})"
        )


DEFAULT_THRESHOLDS: Dict[str, List[str]] = {
    HTTP_REQ_DURATION: ["p(95)<500", "p(99)<1000"],
    HTTP_REQ_FAILED: ["rate<0.1"],
}


# ==============================================================================
# LOAD SCENARIOS - Escenarios de carga
# ==============================================================================

@dataclass
class ScenarioOptions:
    """Configuración de un escenario de carga."""
    name: str
    description: str
    stages: List[Stage]
    thresholds: Dict[str, List[str]] = field(
        default_factory=lambda: {k: list(v) for k, v in DEFAULT_THRESHOLDS.items()}
    )
    tags: List[str] = field(default_factory=list)

    def parsed_thresholds(self) -> List[Threshold]:
        """Parsea todas las expresiones (valida la configuración)."""
        return [
            Threshold.parse(metric, expression)
            for metric, expressions in self.thresholds.items()
            for expression in expressions
        ]

    @property
    def total_seconds(self) -> float:
        return sum(stage.seconds for stage in self.stages)

    @property
    def max_target(self) -> int:
        return max((stage.target for stage in self.stages), default=0)

    def target_at(self, elapsed: float) -> Optional[float]:
        """
        Usuarios objetivo en el instante `elapsed` (segundos).

        Cada stage rampa linealmente desde el target del stage anterior
        (0 al inicio) hasta su propio target.

        Returns:
            Usuarios objetivo, o None cuando todos los stages terminaron
        """
        start_target = 0
        stage_start = 0.0
        for stage in self.stages:
            seconds = stage.seconds
            if elapsed < stage_start + seconds:
                progress = (elapsed - stage_start) / seconds if seconds else 1.0
                return start_target + (stage.target - start_target) * progress
            start_target = stage.target
            stage_start += seconds
        return None

    def spawn_rate_at(self, elapsed: float) -> float:
        """
        Usuarios por segundo necesarios para seguir la rampa del stage actual.

        Siempre al menos 1 para que Locust pueda ajustar el conteo.
        """
        start_target = 0
        stage_start = 0.0
        for stage in self.stages:
            seconds = stage.seconds
            if elapsed < stage_start + seconds:
                if not seconds:
                    return float(max(1, abs(stage.target - start_target)))
                return max(1.0, math.ceil(abs(stage.target - start_target) / seconds))
            start_target = stage.target
            stage_start += seconds
        return 1.0


SCENARIOS: Dict[str, ScenarioOptions] = {
    "smoke": ScenarioOptions(
        name="Smoke Test",
        description="Verificación básica de que todo funciona",
        stages=[Stage("10s", 3), Stage("40s", 3), Stage("10s", 0)],
        tags=["smoke", "quick"],
    ),
    "load": ScenarioOptions(
        name="Load Test",
        description="Rampa a 50 y luego a 100 usuarios",
        stages=[
            Stage("1m", 10),   # Ramp-up
            Stage("3m", 50),   # Subir a 50
            Stage("2m", 100),  # Ramp-up a 100
            Stage("3m", 100),  # Mantener 100
            Stage("2m", 0),    # Ramp-down
        ],
        tags=["load", "normal"],
    ),
    "stress": ScenarioOptions(
        name="Stress Test",
        description="Encontrar límites del sistema",
        stages=[
            Stage("2m", 100),
            Stage("5m", 200),
            Stage("2m", 300),
            Stage("5m", 300),
            Stage("2m", 0),
        ],
        tags=["stress", "limits"],
    ),
    "spike": ScenarioOptions(
        name="Spike Test",
        description="Simular picos súbitos de tráfico",
        stages=[
            Stage("1m", 10),
            Stage("10s", 100),  # Pico
            Stage("1m", 100),
            Stage("10s", 10),
            Stage("1m", 10),
            Stage("30s", 0),
        ],
        tags=["spike", "burst"],
    ),
    "soak": ScenarioOptions(
        name="Soak Test",
        description="Prueba prolongada para detectar degradación",
        stages=[Stage("5m", 30), Stage("50m", 30), Stage("5m", 0)],
        tags=["soak", "endurance"],
    ),
}


# ==============================================================================
# HELPER FUNCTIONS
# ==============================================================================

def get_scenario(name: str) -> ScenarioOptions:
    """Obtiene un escenario por nombre."""
    if name not in SCENARIOS:
        raise ConfigurationError(
            f"Escenario '{name}' no encontrado. Disponibles: {list(SCENARIOS.keys())}",
            field="LOAD_TEST_SCENARIO",
        )
    return SCENARIOS[name]


def configuration(scenario: Optional[str] = None) -> ScenarioOptions:
    """
    Declara stages y thresholds de la prueba.

    Args:
        scenario: Nombre del escenario; por defecto settings.LOAD_TEST_SCENARIO

    Returns:
        ScenarioOptions validado

    Raises:
        ConfigurationError: Escenario desconocido o threshold inválido
    """
    if scenario is None:
        from config.settings import settings
        scenario = settings.LOAD_TEST_SCENARIO or "load"

    options = get_scenario(scenario)
    options.parsed_thresholds()
    return options
