# mines/views.py
import logging

from django.conf import settings

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response

from . import services
from .errors import MinesError
from .models import MinesGame
from .provably_fair import verify_game
from .serializers import (
    CashoutIn,
    MinesGameSerializer,
    PlaceBetIn,
    RevealIn,
    VerifyIn,
    VerifyOut,
)

logger = logging.getLogger(__name__)


def error_response(exc: MinesError):
    return Response({"error": exc.code, "detail": exc.message}, status=exc.status_code)


def game_response(game, http_status=status.HTTP_200_OK):
    data = MinesGameSerializer(game).data
    data["currency"] = settings.CURRENCY
    return Response(data, status=http_status)


# =====================================================
# PLACE BET
# =====================================================

@api_view(["POST"])
@permission_classes([IsAuthenticated])
def place_bet(request):
    serializer = PlaceBetIn(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        game = services.place_bet(
            request.user.id,
            serializer.validated_data["bet_amount"],
            serializer.validated_data["mine_count"],
            serializer.validated_data["client_seed"],
        )
    except MinesError as e:
        logger.warning("place_bet rejected for user %s: %s", request.user.id, e.code)
        return error_response(e)

    return game_response(game, status.HTTP_201_CREATED)


# =====================================================
# REVEAL
# =====================================================

@api_view(["POST"])
@permission_classes([IsAuthenticated])
def reveal_tile(request):
    serializer = RevealIn(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        game = services.reveal_tile(
            request.user.id,
            serializer.validated_data["game_id"],
            serializer.validated_data["tile_index"],
        )
    except MinesError as e:
        logger.warning("reveal_tile rejected for user %s: %s", request.user.id, e.code)
        return error_response(e)

    return game_response(game)


# =====================================================
# CASHOUT
# =====================================================

@api_view(["POST"])
@permission_classes([IsAuthenticated])
def cashout(request):
    serializer = CashoutIn(data=request.data)
    serializer.is_valid(raise_exception=True)

    try:
        game = services.cashout(request.user.id, serializer.validated_data["game_id"])
    except MinesError as e:
        logger.warning("cashout rejected for user %s: %s", request.user.id, e.code)
        return error_response(e)

    return game_response(game)


# =====================================================
# READS
# =====================================================

@api_view(["GET"])
@permission_classes([IsAuthenticated])
def game_state(request, game_id):
    try:
        game = MinesGame.objects.get(id=game_id)
    except MinesGame.DoesNotExist:
        return Response({"error": "not_found", "detail": "Game not found"}, status=404)

    if game.user_id != request.user.id:
        return Response({"error": "forbidden", "detail": "Game belongs to another user"}, status=403)

    return game_response(game)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def active_game(request):
    game = MinesGame.objects.filter(
        user=request.user, status=MinesGame.STATUS_ACTIVE
    ).order_by("-created_at").first()

    if not game:
        return Response({"error": "not_found", "detail": "No active game"}, status=404)

    return game_response(game)


@api_view(["GET"])
@permission_classes([IsAuthenticated])
def history(request):
    games = MinesGame.objects.filter(user=request.user).order_by("-created_at")[:50]
    return Response(MinesGameSerializer(games, many=True).data)


# =====================================================
# VERIFY (public)
# =====================================================

@api_view(["POST"])
@permission_classes([AllowAny])
def verify(request):
    serializer = VerifyIn(data=request.data)
    serializer.is_valid(raise_exception=True)
    data = serializer.validated_data

    result = verify_game(
        data["server_seed"],
        data["client_seed"],
        data["nonce"],
        data["mine_count"],
        grid_size=services.grid_size(),
    )
    result["matches_game"] = None

    game_id = data.get("game_id")
    if game_id:
        game = MinesGame.objects.filter(id=game_id).first()
        if not game:
            return Response({"error": "not_found", "detail": "Game not found"}, status=404)
        if not game.is_terminal:
            return Response(
                {"error": "invalid_state", "detail": "Game is still active"}, status=409
            )
        result["matches_game"] = (
            game.server_seed_hash == result["server_seed_hash"]
            and sorted(game.mine_locations) == result["mine_locations"]
        )

    return Response(VerifyOut(result).data)
