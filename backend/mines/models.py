# mines/models.py
import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.core.validators import MinValueValidator, MaxValueValidator

User = settings.AUTH_USER_MODEL


class MinesGame(models.Model):
    STATUS_ACTIVE = "active"
    STATUS_BUSTED = "busted"
    STATUS_CASHED = "cashed_out"
    STATUS_REFUNDED = "refunded"

    STATUS_CHOICES = [
        (STATUS_ACTIVE, "Active"),
        (STATUS_BUSTED, "Busted"),
        (STATUS_CASHED, "Cashed Out"),
        (STATUS_REFUNDED, "Refunded"),
    ]
    TERMINAL_STATUSES = (STATUS_BUSTED, STATUS_CASHED, STATUS_REFUNDED)

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user = models.ForeignKey(User, on_delete=models.CASCADE, related_name="mines_games")

    bet_amount = models.DecimalField(
        max_digits=14, decimal_places=2, validators=[MinValueValidator(Decimal("0.01"))]
    )
    grid_size = models.PositiveSmallIntegerField(default=25)
    mine_count = models.PositiveSmallIntegerField(
        validators=[MinValueValidator(1), MaxValueValidator(24)]
    )

    # write-once
    mine_locations = models.JSONField(default=list)
    # append-only while active
    revealed_tiles = models.JSONField(default=list, blank=True)

    status = models.CharField(
        max_length=16, choices=STATUS_CHOICES, default=STATUS_ACTIVE, db_index=True
    )
    payout_multiplier = models.DecimalField(
        max_digits=18, decimal_places=4, default=Decimal("0.99")
    )
    cashed_out_amount = models.DecimalField(
        max_digits=14, decimal_places=2, null=True, blank=True
    )
    version = models.PositiveIntegerField(default=0)

    # Provably fair commitment; server_seed is disclosed only once terminal
    server_seed = models.CharField(max_length=128)
    server_seed_hash = models.CharField(max_length=64, db_index=True)
    client_seed = models.CharField(max_length=64)
    nonce = models.PositiveBigIntegerField()

    created_at = models.DateTimeField(auto_now_add=True)
    finished_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["user", "status"], name="mines_mines_user_id_8a4b1d_idx"),
            models.Index(fields=["status", "created_at"], name="mines_mines_status_3c9e7f_idx"),
        ]

    def __str__(self):
        return f"Mines {self.id} ({self.status})"

    @property
    def is_active(self):
        return self.status == self.STATUS_ACTIVE

    @property
    def is_terminal(self):
        return self.status in self.TERMINAL_STATUSES


class SeedNonce(models.Model):
    """Last nonce handed out for a (server seed, client seed) pairing."""

    server_seed_hash = models.CharField(max_length=64)
    client_seed = models.CharField(max_length=64)
    nonce = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = [("server_seed_hash", "client_seed")]

    def __str__(self):
        return f"{self.server_seed_hash[:12]}:{self.client_seed} @ {self.nonce}"


class MinesStats(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="mines_stats")
    total_games = models.PositiveIntegerField(default=0)
    total_wagered = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    total_won = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    highest_multiplier = models.DecimalField(max_digits=18, decimal_places=4, default=Decimal("0"))
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name_plural = "mines stats"

    def __str__(self):
        return f"MinesStats({self.user_id})"
