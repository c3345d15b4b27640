"""
Utilidades del Sistema

Módulo que exporta:
- Logger: Logging estructurado con contexto de la prueba
- Errors: Taxonomía y registro de errores no fatales
"""

# Logger
from src.utils.logger import (
    get_logger,
    setup_logging,
    configure_from_settings,
    bind_context,
    clear_context,
    get_group,
    current_context,
    LogContext,
    log_exception,
)

# Errors
from src.utils.errors import (
    ErrorCategory,
    ErrorContext,
    LoadTestError,
    ConfigurationError,
    TransportError,
    CheckFailure,
    SetupError,
    TeardownError,
    wrap_transport_error,
    ErrorRegistry,
    error_registry,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "configure_from_settings",
    "bind_context",
    "clear_context",
    "get_group",
    "current_context",
    "LogContext",
    "log_exception",
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
