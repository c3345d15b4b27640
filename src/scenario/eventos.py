# ==============================================================================
# Eventos Scenario
# ==============================================================================
"""
Escenario de carga contra la API de Eventos.

Tres fases, invocadas por el runner:
- setup(): crea un evento semilla y devuelve su id
- iteration(): health, create (+ get/update), find; una vez por ciclo
  de cada usuario virtual
- teardown(): borra el evento semilla

Las funciones reciben una sesión HTTP con la interfaz de
locust.clients.HttpSession (get/post/put/delete con name y
catch_response). Ningún fallo HTTP se propaga: todo termina en checks.
"""

from typing import Any, Dict, Optional

from src.scenario.checks import check, group, has_json_field, json_value, request_name
from src.scenario.payloads import (
    UPDATE_METADATA,
    UPDATE_STATUS_CODE,
    UPDATE_STATUS_MESSAGE,
    build_create_payload,
    build_find_params,
    build_setup_payload,
    build_update_payload,
)
from src.utils.errors import ErrorContext, SetupError, TeardownError, error_registry
from src.utils.logger import get_logger

logger = get_logger(__name__)

SetupContext = Dict[str, Optional[str]]

HEALTH_PATH = "/health"
EVENTOS_PATH = "/eventos"
EVENTO_PATH = "/eventos/{id}"

JSON_HEADERS = {"Content-Type": "application/json"}


def _settings():
    from config.settings import settings
    return settings


# ==============================================================================
# SETUP
# ==============================================================================

def setup(session: Any, timeout: Optional[float] = None) -> SetupContext:
    """
    Crea el evento semilla.

    Returns:
        {"eventId": id} o {"eventId": None} si la creación falló
    """
    timeout = timeout or _settings().REQUEST_TIMEOUT

    try:
        response = session.post(
            EVENTOS_PATH,
            json=build_setup_payload(),
            headers=JSON_HEADERS,
            timeout=timeout,
            name="setup",
        )
    except Exception as e:
        error_registry.record(SetupError(f"No se pudo crear el evento semilla: {e}", original_error=e))
        return {"eventId": None}

    event_id = json_value(response, "id")
    if not event_id:
        error_registry.record(SetupError(
            "La creación del evento semilla no devolvió id",
            context=ErrorContext(request_name="setup", status_code=getattr(response, "status_code", None)),
        ))
        logger.warning(f"Setup sin evento semilla (HTTP {getattr(response, 'status_code', None)})")
        return {"eventId": None}

    logger.info(f"Created test event: {event_id}")
    return {"eventId": event_id}


# ==============================================================================
# ITERATION
# ==============================================================================

def iteration(
    session: Any,
    context: Optional[SetupContext] = None,
    test_run: Optional[str] = None,
    verify_update: Optional[bool] = None,
    timeout: Optional[float] = None,
) -> None:
    """
    Un ciclo de un usuario virtual.

    `context` es el resultado de setup(); se recibe por contrato pero la
    iteración no lo lee ni lo modifica. La pausa entre ciclos la aplica
    el runner (wait_time del usuario).
    """
    settings = _settings()
    test_run = test_run if test_run is not None else settings.TEST_RUN
    verify_update = settings.VERIFY_UPDATE if verify_update is None else verify_update
    timeout = timeout or settings.REQUEST_TIMEOUT

    health_check(session, timeout)
    create_event(session, test_run, verify_update, timeout)
    find_events(session, timeout)


def health_check(session: Any, timeout: float) -> bool:
    with group("Health Check"):
        with session.get(
            HEALTH_PATH, name=request_name(), timeout=timeout, catch_response=True
        ) as res:
            return check(res, {
                "status is 200": lambda r: r.status_code == 200,
                "response is OK": lambda r: r.text == "OK",
            })


def create_event(
    session: Any,
    test_run: str,
    verify_update: bool,
    timeout: float,
) -> Optional[str]:
    """
    Crea un evento y, si la API responde 201, lo consulta y actualiza.

    Returns:
        Id del evento creado, o None
    """
    with group("Create Event"):
        with session.post(
            EVENTOS_PATH,
            json=build_create_payload(test_run),
            headers=JSON_HEADERS,
            name=request_name(),
            timeout=timeout,
            catch_response=True,
        ) as res:
            check(res, {
                "status is 201": lambda r: r.status_code == 201,
                "has event id": lambda r: has_json_field(r, "id"),
                "has expiration": lambda r: has_json_field(r, "expiration"),
            })
            created = res.status_code == 201
            event_id = json_value(res, "id") if created else None

        if not created:
            return None

        # Para limpieza posterior (los eventos expiran por TTL en la API)
        logger.debug(
            f"Evento creado: {event_id}",
            extra={"extra_data": {"event_id": event_id, "test_run": test_run}},
        )

        get_event(session, event_id, timeout)
        update_event(session, event_id, timeout)
        if verify_update:
            verify_event_update(session, event_id, timeout)

    return event_id


def get_event(session: Any, event_id: Any, timeout: float) -> bool:
    with group("Get Event"):
        with session.get(
            EVENTO_PATH.format(id=event_id),
            name=request_name(),
            timeout=timeout,
            catch_response=True,
        ) as res:
            return check(res, {
                "status is 200": lambda r: r.status_code == 200,
                "event id matches": lambda r: json_value(r, "id") == event_id,
            })


def update_event(session: Any, event_id: Any, timeout: float) -> bool:
    with group("Update Event"):
        with session.put(
            EVENTO_PATH.format(id=event_id),
            json=build_update_payload(),
            headers=JSON_HEADERS,
            name=request_name(),
            timeout=timeout,
            catch_response=True,
        ) as res:
            return check(res, {
                "status is 200": lambda r: r.status_code == 200,
                "status code updated": lambda r: json_value(r, "statusCode") == UPDATE_STATUS_CODE,
            })


def verify_event_update(session: Any, event_id: Any, timeout: float) -> bool:
    """Vuelve a leer el evento para confirmar que el PUT persistió."""
    with group("Verify Update"):
        with session.get(
            EVENTO_PATH.format(id=event_id),
            name=request_name(),
            timeout=timeout,
            catch_response=True,
        ) as res:
            return check(res, {
                "status is 200": lambda r: r.status_code == 200,
                "status message persisted": (
                    lambda r: json_value(r, "statusMessage") == UPDATE_STATUS_MESSAGE
                ),
                "metadata persisted": lambda r: _metadata_matches(
                    json_value(r, "metadata"), UPDATE_METADATA
                ),
            })


def _metadata_matches(actual: Any, expected: Dict[str, str]) -> bool:
    if not isinstance(actual, dict):
        return False
    return all(str(actual.get(k)).lower() == v.lower() for k, v in expected.items())


def find_events(session: Any, timeout: float) -> bool:
    with group("Find Events"):
        with session.get(
            EVENTOS_PATH,
            params=build_find_params(),
            name=request_name(),
            timeout=timeout,
            catch_response=True,
        ) as res:
            return check(res, {
                "status is 200": lambda r: r.status_code == 200,
                "has items": lambda r: json_value(r, "items") is not None,
                "has total": lambda r: json_value(r, "total") is not None,
                "items consistent with total": (
                    lambda r: len(json_value(r, "items")) <= json_value(r, "total")
                ),
            })


# ==============================================================================
# TEARDOWN
# ==============================================================================

def teardown(session: Any, context: Optional[SetupContext], timeout: Optional[float] = None) -> None:
    """
    Borra el evento semilla, si setup lo creó.

    Repite el DELETE para comprobar que un id ya borrado responde 404.
    Nunca lanza: es limpieza best-effort.
    """
    event_id = (context or {}).get("eventId")
    if not event_id:
        logger.warning("Teardown sin evento semilla; nada que limpiar")
        return

    timeout = timeout or _settings().REQUEST_TIMEOUT
    path = EVENTO_PATH.format(id=event_id)

    try:
        with group("Teardown"):
            with session.delete(
                path, name=request_name(), timeout=timeout, catch_response=True
            ) as res:
                deleted = check(res, {
                    "deleted successfully": lambda r: r.status_code == 200,
                })

            with session.delete(
                path, name=request_name("repeat"), timeout=timeout, catch_response=True
            ) as res:
                check(
                    res,
                    {"repeated delete is stable": lambda r: r.status_code == 404},
                    expected_statuses=(404,),
                )
    except Exception as e:
        error_registry.record(TeardownError(
            f"Error limpiando el evento semilla {event_id}: {e}",
            context=ErrorContext(event_id=event_id),
            original_error=e,
        ))
        return

    if deleted:
        logger.info(f"Cleaned up test event: {event_id}")
    else:
        logger.warning(f"No se pudo borrar el evento semilla: {event_id}")
