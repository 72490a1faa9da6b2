import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="MinesGame",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("bet_amount", models.DecimalField(decimal_places=2, max_digits=14, validators=[django.core.validators.MinValueValidator(Decimal("0.01"))])),
                ("grid_size", models.PositiveSmallIntegerField(default=25)),
                ("mine_count", models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(24)])),
                ("mine_locations", models.JSONField(default=list)),
                ("revealed_tiles", models.JSONField(blank=True, default=list)),
                ("status", models.CharField(choices=[("active", "Active"), ("busted", "Busted"), ("cashed_out", "Cashed Out"), ("refunded", "Refunded")], db_index=True, default="active", max_length=16)),
                ("payout_multiplier", models.DecimalField(decimal_places=4, default=Decimal("0.99"), max_digits=18)),
                ("cashed_out_amount", models.DecimalField(blank=True, decimal_places=2, max_digits=14, null=True)),
                ("version", models.PositiveIntegerField(default=0)),
                ("server_seed", models.CharField(max_length=128)),
                ("server_seed_hash", models.CharField(db_index=True, max_length=64)),
                ("client_seed", models.CharField(max_length=64)),
                ("nonce", models.PositiveBigIntegerField()),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("finished_at", models.DateTimeField(blank=True, null=True)),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="mines_games", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["user", "status"], name="mines_mines_user_id_8a4b1d_idx"),
                    models.Index(fields=["status", "created_at"], name="mines_mines_status_3c9e7f_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="SeedNonce",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("server_seed_hash", models.CharField(max_length=64)),
                ("client_seed", models.CharField(max_length=64)),
                ("nonce", models.PositiveBigIntegerField(default=0)),
                ("updated_at", models.DateTimeField(auto_now=True)),
            ],
            options={
                "unique_together": {("server_seed_hash", "client_seed")},
            },
        ),
        migrations.CreateModel(
            name="MinesStats",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("total_games", models.PositiveIntegerField(default=0)),
                ("total_wagered", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("total_won", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=18)),
                ("highest_multiplier", models.DecimalField(decimal_places=4, default=Decimal("0"), max_digits=18)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("user", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="mines_stats", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "verbose_name_plural": "mines stats",
            },
        ),
    ]
