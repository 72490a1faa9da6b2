import uuid
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.test import TestCase, override_settings

from mines import errors, services
from mines.models import MinesGame, MinesStats
from mines.provably_fair import generate_mine_locations, hash_server_seed
from mines.serializers import MinesGameSerializer
from wallets.models import Wallet, WalletTransaction
from wallets.services import WalletError

User = get_user_model()


def safe_tiles(game):
    return [i for i in range(game.grid_size) if i not in game.mine_locations]


class MinesServiceTestCase(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(
            username="player", email="player@example.com", password="pass12345"
        )
        self.other = User.objects.create_user(
            username="other", email="other@example.com", password="pass12345"
        )
        Wallet.objects.create(user=self.user, balance=Decimal("100.00"))

    def balance(self, user=None):
        return Wallet.objects.get(user=user or self.user).balance

    def new_game(self, bet="10.00", mines=5, client_seed="client-seed"):
        return services.place_bet(self.user.id, Decimal(bet), mines, client_seed)


class PlaceBetTests(MinesServiceTestCase):
    def test_place_bet_debits_and_creates_active_game(self):
        game = self.new_game()

        self.assertEqual(game.status, MinesGame.STATUS_ACTIVE)
        self.assertEqual(game.revealed_tiles, [])
        self.assertEqual(game.payout_multiplier, Decimal("0.99"))
        self.assertIsNone(game.cashed_out_amount)
        self.assertEqual(game.grid_size, 25)
        self.assertEqual(self.balance(), Decimal("90.00"))

        tx = WalletTransaction.objects.get(user=self.user)
        self.assertEqual(tx.tx_type, WalletTransaction.DEBIT)
        self.assertEqual(tx.amount, Decimal("10.00"))
        self.assertEqual(tx.reference, f"mines:{game.id}:bet")
        self.assertEqual(tx.balance_after, Decimal("90.00"))

    def test_layout_comes_from_committed_seeds(self):
        game = self.new_game(mines=7)

        self.assertEqual(game.nonce, 1)
        self.assertEqual(game.server_seed_hash, hash_server_seed(game.server_seed))
        self.assertEqual(
            game.mine_locations,
            generate_mine_locations(game.server_seed, "client-seed", 1, 25, 7),
        )

    def test_each_game_gets_a_fresh_server_seed(self):
        first = self.new_game()
        second = self.new_game()
        self.assertNotEqual(first.server_seed, second.server_seed)
        self.assertNotEqual(first.server_seed_hash, second.server_seed_hash)

    def test_insufficient_funds_creates_nothing(self):
        with self.assertRaises(errors.InsufficientFunds):
            self.new_game(bet="100.01")

        self.assertEqual(self.balance(), Decimal("100.00"))
        self.assertFalse(MinesGame.objects.exists())
        self.assertFalse(WalletTransaction.objects.exists())

    def test_only_one_of_two_bets_fits_the_balance(self):
        Wallet.objects.filter(user=self.user).update(balance=Decimal("15.00"))

        self.new_game(bet="10.00")
        with self.assertRaises(errors.InsufficientFunds):
            self.new_game(bet="10.00")

        self.assertEqual(MinesGame.objects.count(), 1)
        self.assertEqual(self.balance(), Decimal("5.00"))

    def test_user_without_wallet_has_no_funds(self):
        with self.assertRaises(errors.InsufficientFunds):
            services.place_bet(self.other.id, Decimal("1.00"), 3, "seed")

    def test_invalid_amounts(self):
        for amount in ("0", "-5", "0.001", "NaN", "abc", "1E+30", Decimal("1E+30")):
            with self.subTest(amount=amount), self.assertRaises(errors.InvalidAmount):
                services.place_bet(self.user.id, amount, 5, "seed")
        self.assertEqual(self.balance(), Decimal("100.00"))

    @override_settings(MINES_MIN_BET=Decimal("1.00"), MINES_MAX_BET=Decimal("50.00"))
    def test_bet_limits_from_settings(self):
        with self.assertRaises(errors.InvalidAmount):
            self.new_game(bet="0.50")
        with self.assertRaises(errors.InvalidAmount):
            self.new_game(bet="50.01")
        self.new_game(bet="50.00")

    def test_invalid_mine_counts(self):
        for mines in (0, 25, -1, "5", True):
            with self.subTest(mines=mines), self.assertRaises(errors.InvalidMineCount):
                services.place_bet(self.user.id, Decimal("1.00"), mines, "seed")

    def test_invalid_client_seed(self):
        for seed in ("", "x" * 65, None):
            with self.subTest(seed=seed), self.assertRaises(errors.InvalidClientSeed):
                services.place_bet(self.user.id, Decimal("1.00"), 5, seed)

    @override_settings(MINES_HOUSE_EDGE=Decimal("0.03"))
    def test_house_edge_from_settings(self):
        game = self.new_game()
        self.assertEqual(game.payout_multiplier, Decimal("0.97"))

    def test_active_game_hides_seed_and_layout(self):
        data = MinesGameSerializer(self.new_game()).data
        self.assertNotIn("server_seed", data)
        self.assertNotIn("mine_locations", data)
        self.assertIn("server_seed_hash", data)


class NonceTests(MinesServiceTestCase):
    def test_nonce_increases_per_seed_pair(self):
        self.assertEqual(services.next_nonce("hash-a", "client"), 1)
        self.assertEqual(services.next_nonce("hash-a", "client"), 2)
        self.assertEqual(services.next_nonce("hash-a", "other-client"), 1)
        self.assertEqual(services.next_nonce("hash-b", "client"), 1)


class RevealTests(MinesServiceTestCase):
    def test_safe_reveal_updates_multiplier(self):
        game = self.new_game()
        tile = safe_tiles(game)[0]

        game = services.reveal_tile(self.user.id, game.id, tile)

        self.assertEqual(game.status, MinesGame.STATUS_ACTIVE)
        self.assertEqual(game.revealed_tiles, [tile])
        self.assertEqual(game.payout_multiplier, Decimal("1.2375"))

        stored = MinesGame.objects.get(pk=game.pk)
        self.assertEqual(stored.revealed_tiles, [tile])
        self.assertEqual(stored.payout_multiplier, Decimal("1.2375"))
        self.assertEqual(stored.version, 1)

    def test_multiplier_follows_revealed_count(self):
        game = self.new_game()
        tiles = safe_tiles(game)[:3]
        for tile in tiles:
            game = services.reveal_tile(self.user.id, game.id, tile)

        self.assertEqual(game.revealed_tiles, tiles)
        self.assertEqual(game.payout_multiplier, services.multiplier_for(game, 3))

    def test_mine_busts_without_credit(self):
        game = self.new_game()

        with self.assertLogs("mines.services", level="INFO"):
            game = services.reveal_tile(self.user.id, game.id, game.mine_locations[0])

        game.refresh_from_db()
        self.assertEqual(game.status, MinesGame.STATUS_BUSTED)
        self.assertIsNone(game.cashed_out_amount)
        self.assertIsNotNone(game.finished_at)
        self.assertEqual(self.balance(), Decimal("90.00"))
        self.assertEqual(WalletTransaction.objects.filter(tx_type="CREDIT").count(), 0)

        data = MinesGameSerializer(game).data
        self.assertEqual(data["server_seed"], game.server_seed)
        self.assertEqual(data["mine_locations"], game.mine_locations)

    def test_double_reveal_rejected(self):
        game = self.new_game()
        tile = safe_tiles(game)[0]
        services.reveal_tile(self.user.id, game.id, tile)

        with self.assertRaises(errors.AlreadyRevealed):
            services.reveal_tile(self.user.id, game.id, tile)

        stored = MinesGame.objects.get(pk=game.pk)
        self.assertEqual(stored.revealed_tiles, [tile])
        self.assertEqual(stored.version, 1)

    def test_tile_out_of_range(self):
        game = self.new_game()
        for tile in (-1, 25, "3", None, True):
            with self.subTest(tile=tile), self.assertRaises(errors.InvalidTile):
                services.reveal_tile(self.user.id, game.id, tile)

    def test_bad_tile_on_finished_game_is_invalid_tile(self):
        game = self.new_game()
        services.reveal_tile(self.user.id, game.id, game.mine_locations[0])

        with self.assertRaises(errors.InvalidTile):
            services.reveal_tile(self.user.id, game.id, 25)
        with self.assertRaises(errors.InvalidTile):
            services.reveal_tile(self.user.id, uuid.uuid4(), -1)

    def test_unknown_game(self):
        with self.assertRaises(errors.GameNotFound):
            services.reveal_tile(self.user.id, uuid.uuid4(), 0)
        with self.assertRaises(errors.GameNotFound):
            services.reveal_tile(self.user.id, "not-a-uuid", 0)

    def test_other_users_game(self):
        game = self.new_game()
        with self.assertRaises(errors.Forbidden):
            services.reveal_tile(self.other.id, game.id, 0)

    def test_stale_version_is_a_conflict(self):
        game = self.new_game()
        MinesGame.objects.filter(pk=game.pk).update(version=3)

        with self.assertRaises(errors.StateConflict):
            services._commit(game, revealed_tiles=[0])

        self.assertEqual(MinesGame.objects.get(pk=game.pk).revealed_tiles, [])


class CashoutTests(MinesServiceTestCase):
    def test_safe_run_scenario(self):
        game = self.new_game(bet="10.00", mines=5)
        services.reveal_tile(self.user.id, game.id, safe_tiles(game)[0])

        game = services.cashout(self.user.id, game.id)

        self.assertEqual(game.status, MinesGame.STATUS_CASHED)
        # 10.00 * 1.2375 = 12.375, rounded half up to currency precision
        self.assertEqual(game.cashed_out_amount, Decimal("12.38"))
        self.assertEqual(self.balance(), Decimal("102.38"))

        credit = WalletTransaction.objects.get(tx_type=WalletTransaction.CREDIT)
        self.assertEqual(credit.amount, Decimal("12.38"))
        self.assertEqual(credit.reference, f"mines:{game.id}:cashout")

        stats = MinesStats.objects.get(user=self.user)
        self.assertEqual(stats.total_games, 1)
        self.assertEqual(stats.total_wagered, Decimal("10.00"))
        self.assertEqual(stats.total_won, Decimal("12.38"))
        self.assertEqual(stats.highest_multiplier, Decimal("1.2375"))

    def test_cashout_before_reveal_rejected(self):
        game = self.new_game()
        with self.assertRaises(errors.NothingToCashOut):
            services.cashout(self.user.id, game.id)
        self.assertEqual(MinesGame.objects.get(pk=game.pk).status, MinesGame.STATUS_ACTIVE)

    def test_failed_credit_leaves_game_active(self):
        game = self.new_game()
        services.reveal_tile(self.user.id, game.id, safe_tiles(game)[0])

        with patch("wallets.services.credit_payout", side_effect=WalletError("ledger down")):
            with self.assertRaises(WalletError):
                services.cashout(self.user.id, game.id)

        stored = MinesGame.objects.get(pk=game.pk)
        self.assertEqual(stored.status, MinesGame.STATUS_ACTIVE)
        self.assertIsNone(stored.cashed_out_amount)
        self.assertEqual(stored.version, 1)
        self.assertEqual(self.balance(), Decimal("90.00"))

    def test_other_users_game(self):
        game = self.new_game()
        services.reveal_tile(self.user.id, game.id, safe_tiles(game)[0])
        with self.assertRaises(errors.Forbidden):
            services.cashout(self.other.id, game.id)


class TerminalStateTests(MinesServiceTestCase):
    def assert_frozen(self, game):
        before = MinesGame.objects.get(pk=game.pk)
        balance = self.balance()

        with self.assertRaises(errors.InvalidState):
            services.reveal_tile(self.user.id, game.id, safe_tiles(game)[-1])
        with self.assertRaises(errors.InvalidState):
            services.cashout(self.user.id, game.id)
        with self.assertRaises(errors.InvalidState):
            services.resolve_stale_game(game.id, services.STALE_POLICY_REFUND)

        after = MinesGame.objects.get(pk=game.pk)
        self.assertEqual(after.version, before.version)
        self.assertEqual(after.status, before.status)
        self.assertEqual(after.revealed_tiles, before.revealed_tiles)
        self.assertEqual(self.balance(), balance)

    def test_busted_game_is_frozen(self):
        game = self.new_game()
        game = services.reveal_tile(self.user.id, game.id, game.mine_locations[0])
        self.assert_frozen(game)

    def test_cashed_out_game_is_frozen(self):
        game = self.new_game()
        services.reveal_tile(self.user.id, game.id, safe_tiles(game)[0])
        game = services.cashout(self.user.id, game.id)
        self.assert_frozen(game)


class StaleGameTests(MinesServiceTestCase):
    def test_forfeit_busts_without_credit(self):
        game = self.new_game()
        game = services.resolve_stale_game(game.id, services.STALE_POLICY_FORFEIT)

        self.assertEqual(game.status, MinesGame.STATUS_BUSTED)
        self.assertEqual(self.balance(), Decimal("90.00"))

    def test_refund_returns_stake(self):
        game = self.new_game()
        game = services.resolve_stale_game(game.id, services.STALE_POLICY_REFUND)

        self.assertEqual(game.status, MinesGame.STATUS_REFUNDED)
        self.assertEqual(game.cashed_out_amount, Decimal("10.00"))
        self.assertEqual(self.balance(), Decimal("100.00"))
        self.assertTrue(
            WalletTransaction.objects.filter(reference=f"mines:{game.id}:refund").exists()
        )

    def test_unknown_policy(self):
        game = self.new_game()
        with self.assertRaises(ValueError):
            services.resolve_stale_game(game.id, "coinflip")

    def test_unknown_game(self):
        with self.assertRaises(errors.GameNotFound):
            services.resolve_stale_game(uuid.uuid4(), services.STALE_POLICY_FORFEIT)
