# mines/consumers.py
import logging

from django.core.exceptions import ValidationError

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from . import services
from .errors import Forbidden, GameNotFound, MinesError
from .models import MinesGame
from .serializers import MinesGameSerializer

logger = logging.getLogger(__name__)


class MinesConsumer(AsyncJsonWebsocketConsumer):
    """
    Websocket front for the same reveal / cashout operations as the REST
    views. The socket is bound to one game via a "join" message.
    """

    # ===============================
    # CONNECTION
    # ===============================

    async def connect(self):
        user = self.scope.get("user")
        if user is None or not user.is_authenticated:
            await self.close(code=4001)
            return

        self.user_id = user.id
        self.game_id = None

        await self.accept()
        await self.send_json({"type": "connected"})

    async def disconnect(self, close_code):
        self.game_id = None

    # ===============================
    # MESSAGE ROUTER
    # ===============================

    async def receive_json(self, content, **kwargs):
        msg_type = content.get("type")

        if msg_type == "ping":
            await self.send_json({"type": "pong"})
            return

        handlers = {
            "join": self.handle_join,
            "reveal": self.handle_reveal,
            "cashout": self.handle_cashout,
        }
        handler = handlers.get(msg_type)
        if handler is None:
            await self.send_error("invalid_message_type", "Unknown message type")
            return

        if msg_type != "join" and self.game_id is None:
            await self.send_error("not_joined", "Join a game first")
            return

        try:
            await handler(content)
        except MinesError as e:
            logger.warning("ws %s rejected for user %s: %s", msg_type, self.user_id, e.code)
            await self.send_error(e.code, e.message)

    # ===============================
    # HANDLERS
    # ===============================

    async def handle_join(self, content):
        game = await self.load_game(content.get("game_id"))
        self.game_id = str(game.id)
        await self.send_game("joined", game)

    async def handle_reveal(self, content):
        tile_index = content.get("tile_index")
        game = await database_sync_to_async(services.reveal_tile)(
            self.user_id, self.game_id, tile_index
        )
        await self.send_game("reveal_result", game)

    async def handle_cashout(self, content):
        game = await database_sync_to_async(services.cashout)(self.user_id, self.game_id)
        await self.send_game("cashout_result", game)

    # ===============================
    # HELPERS
    # ===============================

    @database_sync_to_async
    def load_game(self, game_id):
        try:
            game = MinesGame.objects.get(id=game_id)
        except (MinesGame.DoesNotExist, ValidationError, ValueError):
            raise GameNotFound()
        if game.user_id != self.user_id:
            raise Forbidden()
        return game

    async def send_game(self, msg_type, game):
        await self.send_json({"type": msg_type, "game": MinesGameSerializer(game).data})

    async def send_error(self, code, message):
        await self.send_json({
            "type": "error",
            "code": code,
            "message": message,
        })
