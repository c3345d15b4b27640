"""
Generadores de payloads para la prueba de carga.

Construye los cuerpos de creación/actualización de eventos y la ventana
de fechas para las consultas. Todas las funciones aceptan `now` para
poder fijar el reloj en tests.
"""

from datetime import datetime, timedelta, timezone
from typing import Dict, Any, Optional, Tuple

from src.scenario.models import EventPayload, format_timestamp


# ==============================================================================
# VALORES FIJOS DEL ESCENARIO
# ==============================================================================

SETUP_STATUS_CODE = 200
SETUP_STATUS_MESSAGE = "Setup test event"

CREATE_STATUS_CODE = 200
CREATE_STATUS_MESSAGE = "Load test event"

UPDATE_STATUS_CODE = 202
UPDATE_STATUS_MESSAGE = "Updated by load test"
UPDATE_METADATA = {"updated": "true"}

# Ventana de consulta: desde 24h antes hasta 1 minuto después de "ahora"
QUERY_LOOKBACK = timedelta(hours=24)
QUERY_LOOKAHEAD = timedelta(minutes=1)
QUERY_STATUS_CODE = 200


# ==============================================================================
# GENERADORES
# ==============================================================================

def utc_now() -> datetime:
    """Fecha actual en UTC."""
    return datetime.now(timezone.utc)


def build_setup_payload(now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Genera el evento semilla creado en setup.

    Returns:
        Dict listo para enviar como JSON
    """
    return EventPayload(
        date=now or utc_now(),
        status_code=SETUP_STATUS_CODE,
        status_message=SETUP_STATUS_MESSAGE,
        metadata={"test": "setup"},
    ).to_json()


def build_create_payload(test_run: str, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Genera un evento nuevo para cada iteración.

    Args:
        test_run: Tag de la corrida (TEST_RUN)
        now: Fecha a usar; por defecto el momento actual

    Returns:
        Dict con date, statusCode, statusMessage y metadata
    """
    now = now or utc_now()
    return EventPayload(
        date=now,
        status_code=CREATE_STATUS_CODE,
        status_message=CREATE_STATUS_MESSAGE,
        metadata={
            "test_run": test_run or "default",
            "timestamp": format_timestamp(now),
        },
    ).to_json()


def build_update_payload(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Genera el cuerpo del PUT sobre un evento recién creado."""
    return EventPayload(
        date=now or utc_now(),
        status_code=UPDATE_STATUS_CODE,
        status_message=UPDATE_STATUS_MESSAGE,
        metadata=dict(UPDATE_METADATA),
    ).to_json()


def find_window(now: Optional[datetime] = None) -> Tuple[str, str]:
    """
    Calcula la ventana móvil de consulta.

    Returns:
        Tupla (startDate, endDate) ya formateada
    """
    now = now or utc_now()
    return format_timestamp(now - QUERY_LOOKBACK), format_timestamp(now + QUERY_LOOKAHEAD)


def build_find_params(now: Optional[datetime] = None) -> Dict[str, Any]:
    """Parámetros de query para GET /eventos."""
    start_date, end_date = find_window(now)
    return {
        "startDate": start_date,
        "endDate": end_date,
        "statusCode": QUERY_STATUS_CODE,
    }
