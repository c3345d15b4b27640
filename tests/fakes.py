"""
Dobles de prueba para la sesión HTTP del escenario.

Imitan la interfaz de locust.clients.HttpSession que usa el escenario,
sin red.
"""

import json
from typing import Any, Dict, List, Optional, Tuple, Union


# ============================================================================
# FAKE HTTP SESSION
# ============================================================================

class FakeResponse:
    """
    Respuesta con la interfaz que usa el escenario.

    Imita requests.Response y el ResponseContextManager de Locust
    (catch_response=True): registra success()/failure().
    """

    def __init__(
        self,
        status_code: int = 200,
        body: Any = None,
        text: Optional[str] = None,
        error: Optional[Exception] = None,
    ):
        self.status_code = status_code
        self._body = body
        self.text = text if text is not None else (json.dumps(body) if body is not None else "")
        self.error = error
        self.marked: Optional[str] = None
        self.failure_message: Optional[str] = None

    def json(self) -> Any:
        if self._body is None:
            raise ValueError("Response body is not JSON")
        return self._body

    def success(self) -> None:
        self.marked = "success"

    def failure(self, message: str) -> None:
        self.marked = "failure"
        self.failure_message = message

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        return False


RouteValue = Union[FakeResponse, List[FakeResponse]]


class FakeSession:
    """
    Sesión HTTP en memoria.

    Las rutas se definen como {(METHOD, path): respuesta}. Una lista de
    respuestas se consume en orden (la última se repite). Las rutas sin
    definir responden 404.
    """

    def __init__(self, routes: Optional[Dict[Tuple[str, str], RouteValue]] = None):
        self.routes: Dict[Tuple[str, str], RouteValue] = dict(routes or {})
        self.calls: List[Dict[str, Any]] = []

    def _respond(self, method: str, path: str, **kwargs: Any) -> FakeResponse:
        route = self.routes.get((method, path))
        if isinstance(route, list):
            response = route.pop(0) if len(route) > 1 else route[0]
        elif route is None:
            response = FakeResponse(404, {"title": "Not Found", "detail": "Event not found"})
        else:
            response = route
        self.calls.append({"method": method, "path": path, "response": response, **kwargs})
        return response

    def get(self, path: str, **kwargs: Any) -> FakeResponse:
        return self._respond("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> FakeResponse:
        return self._respond("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> FakeResponse:
        return self._respond("PUT", path, **kwargs)

    def delete(self, path: str, **kwargs: Any) -> FakeResponse:
        return self._respond("DELETE", path, **kwargs)

    def calls_to(self, method: str, path: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["method"] == method and c["path"] == path]
