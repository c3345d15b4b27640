"""
Configuración centralizada de las pruebas de carga

Carga variables de entorno (o archivo .env) y proporciona acceso a la
configuración en todo el proyecto.

Uso:
    from config.settings import settings

    base_url = settings.BASE_URL
    test_run = settings.TEST_RUN
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from config.environments import Environment, get_config


class Settings(BaseSettings):
    """
    Configuración de la prueba de carga con soporte multi-entorno.

    Los valores marcados como Optional se completan con el perfil del
    entorno (ver config.environments) cuando no vienen del entorno.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    # =========================================================================
    # ENTORNO
    # =========================================================================
    LOAD_TEST_ENV: Environment = Environment.LOCAL

    # =========================================================================
    # API BAJO PRUEBA
    # =========================================================================
    BASE_URL: str = "http://localhost:7000"
    REQUEST_TIMEOUT: float = Field(default=30.0, gt=0)

    # =========================================================================
    # ESCENARIO
    # =========================================================================
    TEST_RUN: str = "default"  # Tag incluido en la metadata de cada evento
    LOAD_TEST_SCENARIO: Optional[str] = None
    THINK_TIME_SECONDS: float = Field(default=1.0, ge=0)
    VERIFY_UPDATE: bool = False
    ENFORCE_THRESHOLDS: Optional[bool] = None

    # =========================================================================
    # LOGGING
    # =========================================================================
    LOG_LEVEL: Optional[str] = None
    LOG_FORMAT: Optional[str] = None  # json o console
    LOG_DIR: str = "logs"
    LOG_MAX_SIZE_MB: int = 50
    LOG_BACKUP_COUNT: int = 10

    @field_validator("BASE_URL")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Valida el esquema y elimina la barra final"""
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("BASE_URL debe comenzar con http:// o https://")
        return v.rstrip("/")

    @field_validator("TEST_RUN")
    @classmethod
    def validate_test_run(cls, v: str) -> str:
        """Un TEST_RUN vacío equivale a 'default'"""
        return v.strip() or "default"

    @field_validator("LOG_FORMAT")
    @classmethod
    def validate_log_format(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in ("json", "console"):
            raise ValueError("LOG_FORMAT debe ser 'json' o 'console'")
        return v

    def apply_profile(self) -> "Settings":
        """
        Completa los valores no definidos con el perfil del entorno.

        Returns:
            La misma instancia, para encadenar
        """
        profile = get_config(self.LOAD_TEST_ENV)
        if self.LOG_LEVEL is None:
            self.LOG_LEVEL = profile.LOG_LEVEL
        if self.LOG_FORMAT is None:
            self.LOG_FORMAT = profile.LOG_FORMAT
        if self.LOAD_TEST_SCENARIO is None:
            self.LOAD_TEST_SCENARIO = profile.SCENARIO
        if self.ENFORCE_THRESHOLDS is None:
            self.ENFORCE_THRESHOLDS = profile.ENFORCE_THRESHOLDS
        return self

    def is_production(self) -> bool:
        """Verifica si la prueba apunta a producción."""
        return self.LOAD_TEST_ENV == Environment.PRODUCTION

    def get_max_log_bytes(self) -> int:
        """Retorna el tamaño máximo de cada archivo de log en bytes."""
        return self.LOG_MAX_SIZE_MB * 1024 * 1024


def load_settings() -> Settings:
    """Crea la configuración y aplica el perfil del entorno."""
    return Settings().apply_profile()


# Instancia única de configuración
settings = load_settings()
