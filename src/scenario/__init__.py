"""
Escenario de carga contra la API de Eventos.

Módulos:
- options: stages, thresholds y escenarios predefinidos
- models: schemas Pydantic de la API
- payloads: generadores de cuerpos y ventanas de consulta
- checks: checks, grupos y registro de resultados
- eventos: fases setup / iteration / teardown
- driver: integración con Locust
- users: usuario virtual de Locust
"""

from src.scenario.eventos import setup, iteration, teardown
from src.scenario.options import configuration

__all__ = ["setup", "iteration", "teardown", "configuration"]
