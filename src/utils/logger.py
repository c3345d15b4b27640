"""
Sistema de Logging Estructurado

Configura el logging de la prueba de carga con:
- Salida a consola (colores en local, JSON en producción)
- Archivo rotativo JSON para procesamiento posterior
- Contexto por registro (run_id, grupo actual, usuario virtual)

Los handlers se instalan sobre el logger "src" y no sobre el root,
porque Locust reconfigura el root logger al arrancar.
"""

import logging
import json
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple
from contextvars import ContextVar, Token

# Context variables para información de contexto
run_id_var: ContextVar[Optional[str]] = ContextVar('run_id', default=None)
group_var: ContextVar[Optional[str]] = ContextVar('group', default=None)
user_id_var: ContextVar[Optional[str]] = ContextVar('user_id', default=None)

LOGGER_NAMESPACE = "src"


# ============================================================================
# FORMATTERS
# ============================================================================

class ColoredFormatter(logging.Formatter):
    """Formato de consola con el nivel coloreado y el grupo actual."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
    }
    RESET = '\033[0m'

    def format(self, record: logging.LogRecord) -> str:
        context = current_context()
        record.run_id = context.get("run_id", "-")
        record.group = context.get("group", "-")
        record.user_id = context.get("user_id", "-")

        # El mismo record lo reciben otros handlers (archivo JSON)
        plain_level = record.levelname
        record.levelname = f"{self.COLORS.get(plain_level, '')}{plain_level}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = plain_level


class JSONFormatter(logging.Formatter):
    """
    Una línea JSON por registro.

    Incluye run_id, group y user_id cuando están definidos, de modo que
    el archivo se puede filtrar por corrida, grupo o usuario virtual.
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update(current_context())

        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
            }

        extra_data = getattr(record, "extra_data", None)
        if extra_data is not None:
            entry["extra"] = extra_data

        return json.dumps(entry, ensure_ascii=False, default=str)


# ============================================================================
# LOGGER CONFIGURATION
# ============================================================================

_configured = False


def setup_logging(
    log_level: str = "INFO",
    log_format: str = "console",
    log_dir: Optional[str] = "logs",
    max_bytes: int = 50 * 1024 * 1024,
    backup_count: int = 10,
    force: bool = False
) -> None:
    """
    Configura el logging de la prueba de carga.

    Args:
        log_level: Nivel de log (DEBUG, INFO, WARNING, ERROR)
        log_format: "console" (colores) o "json"
        log_dir: Directorio para archivos de log; vacío desactiva el archivo
        max_bytes: Tamaño máximo de cada archivo
        backup_count: Número de archivos rotados a conservar
        force: Reconfigurar aunque ya esté configurado
    """
    global _configured

    if _configured and not force:
        return

    level = getattr(logging, log_level.upper(), logging.INFO)

    base_logger = logging.getLogger(LOGGER_NAMESPACE)
    base_logger.setLevel(logging.DEBUG)
    base_logger.propagate = False

    # Limpiar handlers existentes
    for handler in list(base_logger.handlers):
        base_logger.removeHandler(handler)
        handler.close()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)

    if log_format == "json":
        console_handler.setFormatter(JSONFormatter())
    else:
        console_handler.setFormatter(ColoredFormatter(
            '%(asctime)s | %(levelname)-8s | %(group)s | %(name)s:%(lineno)d | %(message)s',
            datefmt='%H:%M:%S'
        ))

    base_logger.addHandler(console_handler)

    # Archivo general (siempre JSON)
    if log_dir:
        logs_path = Path(log_dir)
        logs_path.mkdir(parents=True, exist_ok=True)

        file_handler = RotatingFileHandler(
            logs_path / "load_test.log",
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(JSONFormatter())
        base_logger.addHandler(file_handler)

    _configured = True

    base_logger.debug(
        f"Logging configurado: level={log_level}, format={log_format}, dir={log_dir or '-'}"
    )


def configure_from_settings(force: bool = False) -> None:
    """Configura el logging con los valores de config.settings."""
    from config.settings import settings

    setup_logging(
        log_level=settings.LOG_LEVEL or "INFO",
        log_format=settings.LOG_FORMAT or "console",
        log_dir=settings.LOG_DIR,
        max_bytes=settings.get_max_log_bytes(),
        backup_count=settings.LOG_BACKUP_COUNT,
        force=force,
    )


def get_logger(name: str) -> logging.Logger:
    """Logger del módulo; configura el logging la primera vez."""
    if not _configured:
        configure_from_settings()

    return logging.getLogger(name)


# ============================================================================
# CONTEXT MANAGEMENT
# ============================================================================

_CONTEXT_VARS: Dict[str, ContextVar] = {
    "run_id": run_id_var,
    "group": group_var,
    "user_id": user_id_var,
}


def current_context() -> Dict[str, str]:
    """Campos de contexto definidos en este momento."""
    return {key: var.get() for key, var in _CONTEXT_VARS.items() if var.get()}


def bind_context(
    run_id: Optional[str] = None,
    group: Optional[str] = None,
    user_id: Optional[str] = None
) -> None:
    """
    Fija el contexto de logging hasta que se limpie.

    Args:
        run_id: Identificador de la corrida (TEST_RUN)
        group: Ruta del grupo actual ("Create Event::Get Event")
        user_id: Identificador del usuario virtual
    """
    values = {"run_id": run_id, "group": group, "user_id": user_id}
    for key, value in values.items():
        if value:
            _CONTEXT_VARS[key].set(value)


def clear_context() -> None:
    for var in _CONTEXT_VARS.values():
        var.set(None)


def get_group() -> Optional[str]:
    """Ruta del grupo actual, o None fuera de cualquier grupo."""
    return group_var.get()


class LogContext:
    """
    Contexto temporal para los logs emitidos dentro del bloque.

    Los valores None no cambian el contexto heredado; al salir se
    restaura exactamente el estado anterior.

    Uso:
        with LogContext(group="Health Check", user_id="vu-3"):
            logger.info("Health check enviado")
    """

    def __init__(
        self,
        run_id: Optional[str] = None,
        group: Optional[str] = None,
        user_id: Optional[str] = None
    ):
        self.values = {"run_id": run_id, "group": group, "user_id": user_id}
        self._tokens: List[Tuple[ContextVar, Token]] = []

    def __enter__(self):
        for key, value in self.values.items():
            if value:
                var = _CONTEXT_VARS[key]
                self._tokens.append((var, var.set(value)))
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        while self._tokens:
            var, token = self._tokens.pop()
            var.reset(token)
        return False


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================

def log_exception(logger: logging.Logger, message: str, exc: Exception) -> None:
    """Loggea `exc` con traceback y tipo/mensaje en extra_data."""
    logger.error(
        f"{message}: {type(exc).__name__}: {exc}",
        exc_info=exc,
        extra={"extra_data": {"error_type": type(exc).__name__, "error": str(exc)}},
    )
