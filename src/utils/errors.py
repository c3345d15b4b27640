"""
Sistema Centralizado de Manejo de Errores

Proporciona:
- Tipos de error categorizados (LoadTestError, ConfigurationError, etc.)
- Registro de errores no fatales para el resumen final
- Logging estructurado de excepciones

En la prueba de carga casi ningún error es fatal: los fallos de red y
de checks se registran y la iteración continúa. Solo los errores de
configuración se lanzan, al cargar el escenario.
"""

import logging
from enum import Enum
from threading import Lock
from typing import Optional, Any, Dict, List
from dataclasses import dataclass

from src.utils.logger import get_logger, get_group

logger = get_logger(__name__)


# ============================================================================
# ERROR CATEGORIES
# ============================================================================

class ErrorCategory(str, Enum):
    """Categorías de error para clasificación."""
    TRANSPORT = "TRANSPORT"
    CHECK = "CHECK"
    SETUP = "SETUP"
    TEARDOWN = "TEARDOWN"
    CONFIGURATION = "CONFIGURATION"


# ============================================================================
# ERROR CONTEXT
# ============================================================================

@dataclass
class ErrorContext:
    """Contexto adicional para un error."""
    group: Optional[str] = None
    request_name: Optional[str] = None
    status_code: Optional[int] = None
    event_id: Optional[str] = None
    extra: Optional[Dict[str, Any]] = None


# ============================================================================
# CUSTOM EXCEPTIONS
# ============================================================================

class LoadTestError(Exception):
    """
    Excepción base de la prueba de carga.

    Incluye categoría y contexto para el registro de errores.
    """

    category: ErrorCategory = ErrorCategory.CHECK

    def __init__(
        self,
        message: str,
        context: Optional[ErrorContext] = None,
        original_error: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext(group=get_group())
        self.original_error = original_error

    def to_dict(self) -> Dict[str, Any]:
        """Convierte el error a diccionario para logging."""
        return {
            "message": self.message,
            "category": self.category.value,
            "context": {
                "group": self.context.group,
                "request_name": self.context.request_name,
                "status_code": self.context.status_code,
                "event_id": self.context.event_id,
                "extra": self.context.extra,
            },
            "original_error": str(self.original_error) if self.original_error else None,
        }


class ConfigurationError(LoadTestError):
    """Configuración inválida (escenario, threshold o duración)."""
    category = ErrorCategory.CONFIGURATION

    def __init__(self, message: str, field: Optional[str] = None, **kwargs):
        self.field = field
        super().__init__(message, **kwargs)


class TransportError(LoadTestError):
    """Fallo de red o de conexión al llamar a la API."""
    category = ErrorCategory.TRANSPORT


class CheckFailure(LoadTestError):
    """Uno o más checks fallaron sobre una respuesta."""
    category = ErrorCategory.CHECK

    def __init__(self, message: str, failed_checks: Optional[List[str]] = None, **kwargs):
        self.failed_checks = failed_checks or []
        super().__init__(message, **kwargs)


class SetupError(LoadTestError):
    """No se pudo crear el evento semilla."""
    category = ErrorCategory.SETUP


class TeardownError(LoadTestError):
    """No se pudo limpiar el evento semilla."""
    category = ErrorCategory.TEARDOWN


# ============================================================================
# ERROR CONVERSION UTILITIES
# ============================================================================

def wrap_transport_error(
    error: Exception,
    request_name: Optional[str] = None
) -> TransportError:
    """Envuelve una excepción de red en TransportError."""
    return TransportError(
        message=f"Error de red en {request_name or 'request'}: {error}",
        original_error=error,
        context=ErrorContext(group=get_group(), request_name=request_name)
    )


# ============================================================================
# ERROR REGISTRY (para el resumen)
# ============================================================================

class ErrorRegistry:
    """
    Registro de errores no fatales.

    Cuenta errores por categoría y guarda los más recientes para el
    resumen al detener la prueba.
    """

    def __init__(self, max_recent: int = 100):
        self._counts: Dict[str, int] = {}
        self._recent_errors: List[Dict[str, Any]] = []
        self._max_recent = max_recent
        self._lock = Lock()

    def record(self, error: LoadTestError, log_level: int = logging.DEBUG) -> None:
        """Registra un error y lo loggea."""
        key = error.category.value
        with self._lock:
            self._counts[key] = self._counts.get(key, 0) + 1
            self._recent_errors.append({
                "category": key,
                "group": error.context.group,
                "message": error.message[:200],
            })
            if len(self._recent_errors) > self._max_recent:
                self._recent_errors.pop(0)

        logger.log(
            log_level,
            f"{error.category.value}: {error.message}",
            extra={"extra_data": error.to_dict()},
        )

    def get_counts(self) -> Dict[str, int]:
        """Obtiene conteo de errores por categoría."""
        with self._lock:
            return self._counts.copy()

    def get_recent(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Obtiene los errores más recientes."""
        with self._lock:
            return self._recent_errors[-limit:]

    def reset(self) -> None:
        """Resetea los contadores."""
        with self._lock:
            self._counts.clear()
            self._recent_errors.clear()


# Instancia global del registry
error_registry = ErrorRegistry()


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "LoadTestError",
    "ConfigurationError",
    "TransportError",
    "CheckFailure",
    "SetupError",
    "TeardownError",
    "wrap_transport_error",
    "ErrorRegistry",
    "error_registry",
]
