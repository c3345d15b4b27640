"""
Configuración Multi-Entorno

Define perfiles de ejecución para las pruebas de carga en local,
staging y production.
"""

from enum import Enum
from typing import Dict, Type


class Environment(str, Enum):
    """Entornos disponibles"""
    LOCAL = "local"
    STAGING = "staging"
    PRODUCTION = "production"


class BaseConfig:
    """Configuración base compartida"""
    PROJECT_NAME: str = "Eventos Load Test"
    VERSION: str = "1.0.0"

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "console"

    # Escenario por defecto
    SCENARIO: str = "load"
    ENFORCE_THRESHOLDS: bool = True


class LocalConfig(BaseConfig):
    """Configuración para ejecución local"""
    LOG_LEVEL: str = "DEBUG"


class StagingConfig(BaseConfig):
    """Configuración para staging"""
    LOG_LEVEL: str = "INFO"


class ProductionConfig(BaseConfig):
    """
    Configuración para producción.

    Logs JSON para ingestión y nivel WARNING para no saturar
    el runner con miles de usuarios virtuales.
    """
    LOG_LEVEL: str = "WARNING"
    LOG_FORMAT: str = "json"
    SCENARIO: str = "smoke"


def get_config(env: Environment) -> Type[BaseConfig]:
    """
    Obtiene la configuración según el entorno.

    Args:
        env: Entorno seleccionado

    Returns:
        Clase de configuración correspondiente
    """
    configs: Dict[Environment, Type[BaseConfig]] = {
        Environment.LOCAL: LocalConfig,
        Environment.STAGING: StagingConfig,
        Environment.PRODUCTION: ProductionConfig,
    }
    return configs.get(env, LocalConfig)
