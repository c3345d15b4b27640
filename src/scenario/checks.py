"""
Checks y grupos de la prueba de carga.

Un check es una aserción booleana sobre una respuesta: se registra para
el resumen y nunca aborta la iteración. Locust solo ve como fallidas las
requests con error de red o código HTTP inesperado. Los grupos son solo etiquetas: dan nombre a las requests
en las estadísticas y al contexto de logging.

Uso:
    with group("Health Check"):
        with session.get("/health", name=request_name(), catch_response=True) as res:
            check(res, {
                "status is 200": lambda r: r.status_code == 200,
            })
"""

from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass
from threading import Lock
from typing import Any, Callable, Container, Dict, Iterator, List, Optional

from src.scenario.models import ProblemDetails
from src.utils.errors import (
    CheckFailure,
    ErrorContext,
    error_registry,
    wrap_transport_error,
)
from src.utils.logger import LogContext, get_group, get_logger

logger = get_logger(__name__)

GROUP_SEPARATOR = "::"

Predicate = Callable[[Any], bool]

_MISSING = object()


# ==============================================================================
# GROUPS
# ==============================================================================

@contextmanager
def group(name: str) -> Iterator[str]:
    """
    Anida un grupo dentro del grupo actual.

    Yields:
        Ruta completa del grupo ("Create Event::Get Event")
    """
    parent = get_group()
    path = f"{parent}{GROUP_SEPARATOR}{name}" if parent else name
    with LogContext(group=path):
        yield path


def request_name(suffix: Optional[str] = None) -> str:
    """Nombre de la request para las estadísticas del runner."""
    path = get_group() or "ungrouped"
    return f"{path}{GROUP_SEPARATOR}{suffix}" if suffix else path


# ==============================================================================
# RESPONSE HELPERS
# ==============================================================================

def json_value(response: Any, key: str, default: Any = None) -> Any:
    """
    Lee un campo del cuerpo JSON de la respuesta.

    Devuelve `default` si el cuerpo no es JSON, no es un objeto o no
    tiene el campo.
    """
    try:
        body = response.json()
    except Exception:
        return default
    if not isinstance(body, dict):
        return default
    return body.get(key, default)


def has_json_field(response: Any, key: str) -> bool:
    """True si el cuerpo JSON tiene el campo (aunque sea null)."""
    return json_value(response, key, _MISSING) is not _MISSING


def problem_summary(response: Any) -> Optional[str]:
    """Extrae title/detail de un cuerpo RFC 9457, si existe."""
    try:
        body = response.json()
    except Exception:
        return None
    if not isinstance(body, dict) or not ("title" in body or "detail" in body):
        return None
    try:
        return ProblemDetails.model_validate(body).summary() or None
    except ValueError:
        return None


# ==============================================================================
# CHECK REGISTRY
# ==============================================================================

@dataclass
class CheckTally:
    """Conteo de un check."""
    passes: int = 0
    fails: int = 0

    @property
    def total(self) -> int:
        return self.passes + self.fails

    @property
    def rate(self) -> float:
        return self.passes / self.total if self.total else 0.0


class CheckRegistry:
    """
    Conteo de checks por "grupo::nombre".

    Uso:
        registry = CheckRegistry()
        registry.record("Health Check", "status is 200", True)
        registry.get("Health Check", "status is 200").passes
    """

    def __init__(self):
        self._tallies: Dict[str, CheckTally] = defaultdict(CheckTally)
        self._lock = Lock()

    @staticmethod
    def _key(group_path: Optional[str], name: str) -> str:
        return f"{group_path}{GROUP_SEPARATOR}{name}" if group_path else name

    def record(self, group_path: Optional[str], name: str, passed: bool) -> None:
        key = self._key(group_path, name)
        with self._lock:
            tally = self._tallies[key]
            if passed:
                tally.passes += 1
            else:
                tally.fails += 1

    def get(self, group_path: Optional[str], name: str) -> CheckTally:
        with self._lock:
            tally = self._tallies.get(self._key(group_path, name))
            return CheckTally(tally.passes, tally.fails) if tally else CheckTally()

    def get_all(self) -> Dict[str, CheckTally]:
        with self._lock:
            return {k: CheckTally(v.passes, v.fails) for k, v in self._tallies.items()}

    @property
    def failed(self) -> int:
        with self._lock:
            return sum(t.fails for t in self._tallies.values())

    def summary_lines(self) -> List[str]:
        """Líneas de resumen, una por check, en orden de registro."""
        lines = []
        for key, tally in self.get_all().items():
            mark = "✓" if tally.fails == 0 else "✗"
            lines.append(
                f"{mark} {key}: {tally.rate:.1%} | ✓ {tally.passes} / ✗ {tally.fails}"
            )
        return lines

    def drain(self) -> Dict[str, List[int]]:
        """
        Entrega los conteos acumulados y los pone a cero.

        Formato serializable ({"grupo::check": [passes, fails]}) para el
        reporte de un worker al master.
        """
        with self._lock:
            data = {k: [v.passes, v.fails] for k, v in self._tallies.items()}
            self._tallies.clear()
        return data

    def merge(self, data: Dict[str, List[int]]) -> None:
        """Suma conteos recibidos de otro proceso (ver drain)."""
        with self._lock:
            for key, (passes, fails) in data.items():
                tally = self._tallies[key]
                tally.passes += passes
                tally.fails += fails

    def reset(self) -> None:
        with self._lock:
            self._tallies.clear()


# Instancia global
check_registry = CheckRegistry()


# ==============================================================================
# CHECK
# ==============================================================================

def _evaluate(predicate: Predicate, response: Any) -> bool:
    try:
        return bool(predicate(response))
    except Exception:
        # Cuerpo no JSON, respuesta vacía, etc.
        return False


# Códigos que el runner cuenta como request exitosa (2xx/3xx)
EXPECTED_STATUSES = range(200, 400)


def request_failed(response: Any, expected_statuses: Container[int] = EXPECTED_STATUSES) -> bool:
    """True si no hubo respuesta HTTP o su código no es el esperado."""
    status_code = getattr(response, "status_code", None)
    return not status_code or status_code not in expected_statuses


def check(
    response: Any,
    checks: Dict[str, Predicate],
    registry: Optional[CheckRegistry] = None,
    expected_statuses: Container[int] = EXPECTED_STATUSES,
) -> bool:
    """
    Evalúa checks sobre una respuesta y reporta el resultado.

    Todos los checks se evalúan aunque alguno falle. Los resultados van
    al CheckRegistry y los fallos al error_registry. La marca en Locust
    (respuestas con `catch_response=True`) no depende de los checks:
    failure solo ante error de red o un código fuera de
    `expected_statuses`, así la tasa de fallos cuenta requests fallidas
    y no aserciones.

    Args:
        response: Respuesta de la sesión HTTP
        checks: Nombre del check -> predicado
        registry: Registro donde contar; por defecto el global
        expected_statuses: Códigos que no cuentan como request fallida

    Returns:
        True si todos los checks pasaron
    """
    registry = registry or check_registry
    group_path = get_group()

    failed = []
    for name, predicate in checks.items():
        passed = _evaluate(predicate, response)
        registry.record(group_path, name, passed)
        if not passed:
            failed.append(name)

    status_code = getattr(response, "status_code", None)
    transport_error = getattr(response, "error", None) if not status_code else None
    http_failed = request_failed(response, expected_statuses)
    problem = problem_summary(response) if failed or http_failed else None

    if failed:
        message = f"checks fallidos: {', '.join(failed)} (HTTP {status_code})"
        if problem:
            message = f"{message}: {problem}"

        if transport_error is not None:
            error_registry.record(wrap_transport_error(transport_error, request_name()))
        else:
            error_registry.record(CheckFailure(
                message,
                failed_checks=failed,
                context=ErrorContext(group=group_path, status_code=status_code),
            ))

    if http_failed:
        if hasattr(response, "failure"):
            if transport_error is not None:
                reason = f"error de red: {transport_error}"
            else:
                reason = f"HTTP {status_code}"
                if problem:
                    reason = f"{reason}: {problem}"
            response.failure(reason)
    elif hasattr(response, "success"):
        response.success()

    return not failed
