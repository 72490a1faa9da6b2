# mines/serializers.py
from rest_framework import serializers

from .models import MinesGame


class PlaceBetIn(serializers.Serializer):
    bet_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    mine_count = serializers.IntegerField()
    client_seed = serializers.CharField(max_length=64)


class RevealIn(serializers.Serializer):
    game_id = serializers.UUIDField()
    tile_index = serializers.IntegerField()


class CashoutIn(serializers.Serializer):
    game_id = serializers.UUIDField()


class VerifyIn(serializers.Serializer):
    server_seed = serializers.CharField(max_length=128)
    client_seed = serializers.CharField(max_length=64)
    nonce = serializers.IntegerField(min_value=0)
    mine_count = serializers.IntegerField(min_value=1, max_value=24)
    game_id = serializers.UUIDField(required=False)


class MinesGameSerializer(serializers.ModelSerializer):
    """
    Public view of a game. The server seed and mine layout stay hidden
    until the game is over.
    """

    game_id = serializers.UUIDField(source="id", read_only=True)

    class Meta:
        model = MinesGame
        fields = [
            "game_id",
            "bet_amount",
            "grid_size",
            "mine_count",
            "revealed_tiles",
            "status",
            "payout_multiplier",
            "cashed_out_amount",
            "server_seed_hash",
            "client_seed",
            "nonce",
            "created_at",
            "finished_at",
            "server_seed",
            "mine_locations",
        ]
        read_only_fields = fields

    def to_representation(self, instance):
        data = super().to_representation(instance)
        if not instance.is_terminal:
            data.pop("server_seed")
            data.pop("mine_locations")
        return data


class VerifyOut(serializers.Serializer):
    server_seed_hash = serializers.CharField()
    mine_locations = serializers.ListField(child=serializers.IntegerField())
    matches_game = serializers.BooleanField(allow_null=True, required=False)
