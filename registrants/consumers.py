"""
WebSocket consumer for the registrant dashboard.

Staff clients connect to ``ws/tournaments/<tournament_id>/registrants/``
and join the group ``registrants_<tournament_id>``.  The server pushes a
message whenever a registrant in that tournament is registered, paid,
refunded, cancelled or promoted.  The socket is read-only: anything the
client sends is ignored.  Authentication is handled by the JWT middleware.
"""
from channels.generic.websocket import AsyncJsonWebsocketConsumer


class RegistrantDashboardConsumer(AsyncJsonWebsocketConsumer):
    """Pushes registrant updates for one tournament to staff users."""

    async def connect(self) -> None:
        user = self.scope.get("user")
        if not user or user.is_anonymous:
            await self.close(code=4401)
            return
        if not user.is_staff:
            await self.close(code=4403)
            return
        self.tournament_id = self.scope["url_route"]["kwargs"]["tournament_id"]
        self.group_name = f"registrants_{self.tournament_id}"
        await self.channel_layer.group_add(self.group_name, self.channel_name)
        await self.accept()
        await self.send_json({"type": "welcome", "tournament_id": self.tournament_id})

    async def disconnect(self, code: int) -> None:
        if hasattr(self, "group_name"):
            await self.channel_layer.group_discard(self.group_name, self.channel_name)

    async def receive_json(self, content: dict, **kwargs) -> None:
        return

    async def registrant_update(self, event: dict) -> None:
        await self.send_json(
            {
                "type": "registrant.update",
                "action": event["action"],
                "registrant": event["registrant"],
            }
        )
