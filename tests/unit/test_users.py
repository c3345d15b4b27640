"""
Tests para el usuario virtual de Locust.
"""

from unittest.mock import patch

import pytest
from locust.env import Environment

from src.scenario.users import EventosUser
from src.utils.logger import current_context


@pytest.fixture
def user():
    return EventosUser(Environment(user_classes=[EventosUser]))


class TestEventosUser:
    """Tests para EventosUser."""

    def test_pausa_fija_entre_iteraciones(self, user):
        assert user.wait_time() == 1.0
        assert user.wait_time() == 1.0

    def test_host_por_defecto(self, user):
        assert user.host == "http://api.test:7000"

    def test_ids_unicos(self):
        environment = Environment(user_classes=[EventosUser])
        first, second = EventosUser(environment), EventosUser(environment)

        assert first.vu_id.startswith("vu-")
        assert first.vu_id != second.vu_id

    def test_tarea_unica_con_tag(self):
        assert len(EventosUser.tasks) == 1
        assert EventosUser.eventos_iteration.locust_tag_set == {"eventos"}

    def test_iteracion_usa_el_cliente_del_usuario(self, user):
        seen = {}

        def run_iteration(session):
            seen["session"] = session
            seen["context"] = current_context()

        with patch("src.scenario.users.locust_driver") as driver:
            driver.run_iteration.side_effect = run_iteration
            user.eventos_iteration()

        driver.run_iteration.assert_called_once_with(user.client)
        assert seen["context"] == {"run_id": "default", "user_id": user.vu_id}
        assert current_context() == {}
