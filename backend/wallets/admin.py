from django.contrib import admin
from .models import Wallet, WalletTransaction


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
    list_display = ("user", "balance", "updated_at")
    search_fields = ("user__email", "user__username")


@admin.register(WalletTransaction)
class WalletTransactionAdmin(admin.ModelAdmin):
    list_display = ("reference", "user", "tx_type", "amount", "balance_after", "created_at")
    list_filter = ("tx_type",)
    search_fields = ("reference", "user__email")
    readonly_fields = ("user", "amount", "tx_type", "reference", "balance_after", "meta", "created_at")
