# mines/services.py
import logging
import uuid
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import transaction
from django.db.models import F
from django.utils import timezone

from wallets import services as wallet_services

from . import errors
from .models import MinesGame, MinesStats, SeedNonce
from .multipliers import HOUSE_EDGE, calculate_multiplier
from .provably_fair import (
    generate_mine_locations,
    generate_server_seed,
    hash_server_seed,
)

logger = logging.getLogger(__name__)

STALE_POLICY_FORFEIT = "forfeit"
STALE_POLICY_REFUND = "refund"
STALE_POLICIES = (STALE_POLICY_FORFEIT, STALE_POLICY_REFUND)


def q2(x: Decimal) -> Decimal:
    return x.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def grid_size() -> int:
    return getattr(settings, "MINES_GRID_SIZE", 25)


def house_edge_factor() -> Decimal:
    return Decimal("1") - Decimal(str(getattr(settings, "MINES_HOUSE_EDGE", HOUSE_EDGE)))


def multiplier_for(game: MinesGame, revealed_count: int) -> Decimal:
    return calculate_multiplier(
        revealed_count,
        game.mine_count,
        grid_size=game.grid_size,
        house_edge_factor=house_edge_factor(),
    )


# ======================================================
# VALIDATION
# ======================================================
def _validate_bet(bet_amount, mine_count, client_seed):
    if not isinstance(bet_amount, Decimal):
        try:
            bet_amount = Decimal(str(bet_amount))
        except InvalidOperation:
            raise errors.InvalidAmount()

    if not bet_amount.is_finite() or bet_amount <= 0:
        raise errors.InvalidAmount()
    try:
        cents = bet_amount.quantize(Decimal("0.01"))
    except InvalidOperation:
        # too many digits for the decimal context
        raise errors.InvalidAmount()
    if bet_amount != cents:
        raise errors.InvalidAmount("Bet amount has more than 2 decimal places")

    min_bet = Decimal(str(getattr(settings, "MINES_MIN_BET", "0.01")))
    if bet_amount < min_bet:
        raise errors.InvalidAmount(f"Minimum bet is {min_bet}")

    max_bet = getattr(settings, "MINES_MAX_BET", None)
    if max_bet is not None and bet_amount > Decimal(str(max_bet)):
        raise errors.InvalidAmount(f"Maximum bet is {max_bet}")

    max_mines = grid_size() - 1
    if (
        isinstance(mine_count, bool)
        or not isinstance(mine_count, int)
        or not 1 <= mine_count <= max_mines
    ):
        raise errors.InvalidMineCount(f"Mine count must be between 1 and {max_mines}")

    if not isinstance(client_seed, str) or not 1 <= len(client_seed) <= 64:
        raise errors.InvalidClientSeed()

    return bet_amount


def _lock_game(user_id, game_id) -> MinesGame:
    """
    Row-lock the game for the rest of the enclosing transaction.
    Must be called inside transaction.atomic().
    """
    try:
        game = MinesGame.objects.select_for_update().get(pk=game_id)
    except (MinesGame.DoesNotExist, ValidationError, ValueError):
        raise errors.GameNotFound()

    if game.user_id != user_id:
        raise errors.Forbidden()
    if not game.is_active:
        raise errors.InvalidState(f"Game is {game.status}")
    return game


def _commit(game: MinesGame, **fields) -> MinesGame:
    """
    Compare-and-set write keyed on `version`; losing the race aborts the
    whole transaction.
    """
    expected_version = game.version
    fields["version"] = expected_version + 1

    updated = MinesGame.objects.filter(
        pk=game.pk, version=expected_version, status=MinesGame.STATUS_ACTIVE
    ).update(**fields)

    if updated == 0:
        raise errors.StateConflict()

    for name, value in fields.items():
        setattr(game, name, value)
    return game


def _record_stats(game: MinesGame, won: Decimal):
    stats, _ = MinesStats.objects.select_for_update().get_or_create(user_id=game.user_id)
    stats.total_games = F("total_games") + 1
    stats.total_wagered = F("total_wagered") + game.bet_amount
    stats.total_won = F("total_won") + won
    if won > 0 and game.payout_multiplier > stats.highest_multiplier:
        stats.highest_multiplier = game.payout_multiplier
    stats.save()


def next_nonce(server_seed_hash: str, client_seed: str) -> int:
    """
    Hand out the next nonce for a seed pairing. Server-assigned and
    strictly increasing; the first game on a pairing gets 1.
    """
    counter, _ = SeedNonce.objects.select_for_update().get_or_create(
        server_seed_hash=server_seed_hash, client_seed=client_seed
    )
    counter.nonce = F("nonce") + 1
    counter.save(update_fields=["nonce", "updated_at"])
    counter.refresh_from_db(fields=["nonce"])
    return counter.nonce


# ======================================================
# PLACE BET
# ======================================================
def place_bet(user_id, bet_amount, mine_count, client_seed) -> MinesGame:
    bet_amount = _validate_bet(bet_amount, mine_count, client_seed)
    size = grid_size()

    game_id = uuid.uuid4()
    server_seed = generate_server_seed()
    server_seed_hash = hash_server_seed(server_seed)

    with transaction.atomic():
        try:
            wallet_services.debit_for_bet(
                user_id,
                bet_amount,
                ref=f"mines:{game_id}:bet",
                meta={"reason": "mines_bet", "game_id": str(game_id), "mine_count": mine_count},
            )
        except wallet_services.InsufficientFunds:
            logger.warning("Mines bet rejected for user %s: insufficient funds", user_id)
            raise errors.InsufficientFunds()

        nonce = next_nonce(server_seed_hash, client_seed)
        mine_locations = generate_mine_locations(
            server_seed, client_seed, nonce, size, mine_count
        )

        game = MinesGame.objects.create(
            id=game_id,
            user_id=user_id,
            bet_amount=bet_amount,
            grid_size=size,
            mine_count=mine_count,
            mine_locations=mine_locations,
            revealed_tiles=[],
            status=MinesGame.STATUS_ACTIVE,
            payout_multiplier=calculate_multiplier(
                0, mine_count, grid_size=size, house_edge_factor=house_edge_factor()
            ),
            server_seed=server_seed,
            server_seed_hash=server_seed_hash,
            client_seed=client_seed,
            nonce=nonce,
        )

    logger.info(
        "Mines game %s started: user=%s bet=%s mines=%s", game.id, user_id, bet_amount, mine_count
    )
    return game


# ======================================================
# REVEAL
# ======================================================
def _check_tile(tile_index, size):
    if (
        isinstance(tile_index, bool)
        or not isinstance(tile_index, int)
        or not 0 <= tile_index < size
    ):
        raise errors.InvalidTile(f"Tile index must be between 0 and {size - 1}")


def reveal_tile(user_id, game_id, tile_index) -> MinesGame:
    # bad input is reported before any game state is looked at
    _check_tile(tile_index, grid_size())

    with transaction.atomic():
        game = _lock_game(user_id, game_id)
        _check_tile(tile_index, game.grid_size)

        revealed = list(game.revealed_tiles or [])
        if tile_index in revealed:
            raise errors.AlreadyRevealed()

        if tile_index in game.mine_locations:
            game = _commit(
                game,
                status=MinesGame.STATUS_BUSTED,
                finished_at=timezone.now(),
            )
            _record_stats(game, Decimal("0.00"))
            logger.info("Mines game %s busted on tile %s", game.id, tile_index)
            return game

        revealed.append(tile_index)
        game = _commit(
            game,
            revealed_tiles=revealed,
            payout_multiplier=multiplier_for(game, len(revealed)),
        )

    logger.debug("Mines game %s revealed tile %s (x%s)", game.id, tile_index, game.payout_multiplier)
    return game


# ======================================================
# CASHOUT
# ======================================================
def cashout(user_id, game_id) -> MinesGame:
    with transaction.atomic():
        game = _lock_game(user_id, game_id)

        if not game.revealed_tiles:
            raise errors.NothingToCashOut()

        winnings = q2(game.bet_amount * game.payout_multiplier)

        game = _commit(
            game,
            status=MinesGame.STATUS_CASHED,
            cashed_out_amount=winnings,
            finished_at=timezone.now(),
        )

        wallet_services.credit_payout(
            game.user_id,
            winnings,
            ref=f"mines:{game.id}:cashout",
            meta={
                "reason": "mines_cashout",
                "game_id": str(game.id),
                "multiplier": str(game.payout_multiplier),
            },
        )
        _record_stats(game, winnings)

    logger.info(
        "Mines game %s cashed out: %s at x%s", game.id, winnings, game.payout_multiplier
    )
    return game


# ======================================================
# STALE GAMES (external reaper hook)
# ======================================================
def resolve_stale_game(game_id, policy) -> MinesGame:
    """
    Close an abandoned active game under the same lock discipline as play.

    forfeit: bust, nothing credited.
    refund:  status `refunded`, stake credited back.
    """
    if policy not in STALE_POLICIES:
        raise ValueError(f"Unknown stale game policy: {policy}")

    with transaction.atomic():
        try:
            owner_id = MinesGame.objects.values_list("user_id", flat=True).get(pk=game_id)
        except MinesGame.DoesNotExist:
            raise errors.GameNotFound()
        game = _lock_game(owner_id, game_id)

        if policy == STALE_POLICY_FORFEIT:
            game = _commit(
                game,
                status=MinesGame.STATUS_BUSTED,
                finished_at=timezone.now(),
            )
            _record_stats(game, Decimal("0.00"))
        else:
            game = _commit(
                game,
                status=MinesGame.STATUS_REFUNDED,
                cashed_out_amount=game.bet_amount,
                finished_at=timezone.now(),
            )
            wallet_services.credit_payout(
                game.user_id,
                game.bet_amount,
                ref=f"mines:{game.id}:refund",
                meta={"reason": "mines_refund", "game_id": str(game.id)},
            )

    logger.info("Stale mines game %s resolved with policy %s", game.id, policy)
    return game
