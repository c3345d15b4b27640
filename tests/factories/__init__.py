"""
Factories para Tests

Proporciona factories para construir cuerpos JSON de la API de Eventos.
Sigue el patrón Factory de factory-boy para testing.

Uso:
    from tests.factories import EventFactory, EventPageFactory

    event = EventFactory()
    page = EventPageFactory(items=EventFactory.build_batch(2))
"""

from tests.factories.event import EventFactory, EventPageFactory, ProblemDetailsFactory

__all__ = [
    "EventFactory",
    "EventPageFactory",
    "ProblemDetailsFactory",
]
