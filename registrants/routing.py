"""
WebSocket routing for the registrants app.

The ``<int:tournament_id>`` parameter selects the tournament whose
registrant updates the client receives.
"""
from django.urls import path

from .consumers import RegistrantDashboardConsumer


websocket_urlpatterns = [
    path("ws/tournaments/<int:tournament_id>/registrants/", RegistrantDashboardConsumer.as_asgi()),
]
