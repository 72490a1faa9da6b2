# mines/admin.py
from django.contrib import admin
from .models import MinesGame, MinesStats, SeedNonce


@admin.register(MinesGame)
class MinesGameAdmin(admin.ModelAdmin):
    list_display = ("id", "user", "bet_amount", "mine_count", "status", "payout_multiplier", "cashed_out_amount", "created_at")
    list_filter = ("status", "mine_count")
    search_fields = ("id", "user__email", "user__username", "server_seed_hash")
    readonly_fields = ("server_seed_hash", "server_seed", "client_seed", "nonce", "mine_locations", "version", "created_at", "finished_at")


@admin.register(SeedNonce)
class SeedNonceAdmin(admin.ModelAdmin):
    list_display = ("server_seed_hash", "client_seed", "nonce", "updated_at")
    search_fields = ("server_seed_hash", "client_seed")


@admin.register(MinesStats)
class MinesStatsAdmin(admin.ModelAdmin):
    list_display = ("user", "total_games", "total_wagered", "total_won", "highest_multiplier", "updated_at")
