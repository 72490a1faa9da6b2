# mines/management/commands/resolve_stale_mines.py
import logging
from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from mines import services
from mines.errors import MinesError
from mines.models import MinesGame
from mines.reaper_lock import LockLost, ReaperLock

logger = logging.getLogger(__name__)

LOCK_KEY = "mines:reaper"


class Command(BaseCommand):
    help = "Resolve abandoned active Mines games with an explicit policy"

    def add_arguments(self, parser):
        parser.add_argument(
            "--older-than-hours",
            type=float,
            required=True,
            help="Only touch active games created more than this many hours ago",
        )
        parser.add_argument(
            "--policy",
            choices=services.STALE_POLICIES,
            required=True,
            help="forfeit: bust the game, no credit. refund: return the stake",
        )
        parser.add_argument(
            "--limit",
            type=int,
            default=500,
            help="Maximum games to resolve in one run (default: 500)",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="List the games that would be resolved without changing them",
        )
        parser.add_argument(
            "--lock-ttl",
            type=int,
            default=None,
            help="Reaper lock TTL in seconds (default: MINES_REAPER_LOCK_TTL)",
        )

    def handle(self, *args, **options):
        hours = options["older_than_hours"]
        if hours <= 0:
            raise CommandError("--older-than-hours must be positive")

        policy = options["policy"]
        cutoff = timezone.now() - timedelta(hours=hours)
        game_ids = list(
            MinesGame.objects.filter(
                status=MinesGame.STATUS_ACTIVE, created_at__lt=cutoff
            ).order_by("created_at").values_list("id", flat=True)[: options["limit"]]
        )

        if not game_ids:
            self.stdout.write(self.style.SUCCESS("No stale games found."))
            return

        self.stdout.write(f"Found {len(game_ids)} stale game(s) older than {hours}h")

        if options["dry_run"]:
            for game_id in game_ids:
                self.stdout.write(f"  {game_id}")
            self.stdout.write(
                self.style.SUCCESS(f"DRY RUN: would {policy} {len(game_ids)} game(s)")
            )
            return

        lock_ttl = options["lock_ttl"] or settings.MINES_REAPER_LOCK_TTL
        lock = ReaperLock(LOCK_KEY, lock_ttl)
        if not lock.acquire():
            self.stdout.write(self.style.WARNING("Another reaper is already running. Exiting."))
            return

        resolved = skipped = 0

        try:
            for game_id in game_ids:
                lock.keep_alive()
                try:
                    services.resolve_stale_game(game_id, policy)
                    resolved += 1
                except MinesError as e:
                    # resolved by the player between listing and locking
                    skipped += 1
                    logger.info("Skipped stale game %s: %s", game_id, e.code)
        except LockLost as e:
            raise CommandError(str(e))
        finally:
            lock.release()

        self.stdout.write(
            self.style.SUCCESS(f"Resolved {resolved} game(s) with policy {policy}, skipped {skipped}")
        )
