"""
Base Factory Configuration

Proporciona la configuración base para las factories de cuerpos JSON
de la API de Eventos. No hay persistencia: todo se construye como dict.
"""

import factory


class DictFactory(factory.Factory):
    """
    Factory base para crear diccionarios.

    Útil para simular cuerpos de respuesta de la API.
    """

    class Meta:
        abstract = True
        model = dict

    @classmethod
    def _create(cls, model_class, *args, **kwargs):
        """Retorna un diccionario en lugar de una instancia."""
        return dict(**kwargs)
