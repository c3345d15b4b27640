"""
Modelos de la API de Eventos

Schemas Pydantic para los cuerpos que la prueba envía y recibe.
La API es dueña de los registros; estos modelos solo validan la forma.

Uso:
    from src.scenario.models import EventPayload

    payload = EventPayload(date=now, status_code=200, status_message="ok")
    body = payload.to_json()
"""

from typing import Optional, List, Dict, Any, Union
from datetime import datetime, timezone

from pydantic import BaseModel, Field, ConfigDict, field_validator


class BaseSchema(BaseModel):
    """Schema base con configuración común."""
    model_config = ConfigDict(
        populate_by_name=True,
        extra="allow",
    )


class EventPayload(BaseSchema):
    """Cuerpo de POST/PUT /eventos."""
    date: datetime = Field(..., description="Fecha del evento (RFC 3339)")
    status_code: int = Field(..., alias="statusCode", ge=0)
    status_message: str = Field("", alias="statusMessage")
    metadata: Dict[str, str] = Field(default_factory=dict)

    @field_validator("date")
    @classmethod
    def validate_date(cls, v: datetime) -> datetime:
        """La API rechaza fechas sin zona horaria"""
        if v.tzinfo is None:
            raise ValueError("date debe incluir zona horaria")
        return v

    def to_json(self) -> Dict[str, Any]:
        """Serializa con los nombres de la API (camelCase)."""
        data = self.model_dump(by_alias=True, mode="json")
        data["date"] = format_timestamp(self.date)
        return data


class Event(BaseSchema):
    """Registro de evento devuelto por la API."""
    id: str
    date: Optional[str] = None
    status_code: Optional[int] = Field(None, alias="statusCode")
    status_message: Optional[str] = Field(None, alias="statusMessage")
    metadata: Optional[Dict[str, Any]] = None
    expiration: Optional[Union[int, str]] = None


class EventPage(BaseSchema):
    """Resultado de GET /eventos con filtros."""
    items: List[Dict[str, Any]] = Field(default_factory=list)
    total: int = Field(..., ge=0)


class ProblemDetails(BaseSchema):
    """Error estándar de la API (RFC 9457)."""
    type: str = "about:blank"
    status: Optional[int] = None
    title: str = ""
    detail: str = ""
    instance: str = ""
    code: str = ""

    def summary(self) -> str:
        """Texto corto para mensajes de fallo."""
        if self.detail:
            return f"{self.title}: {self.detail}" if self.title else self.detail
        return self.title


def format_timestamp(value: datetime) -> str:
    """
    Formatea una fecha como ISO 8601 en UTC con milisegundos y sufijo Z.

    Es el formato que la API acepta en los filtros startDate/endDate.
    Las fechas sin zona horaria se asumen en UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"
