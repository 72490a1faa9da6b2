import logging
from decimal import Decimal

from django.db import transaction

from .models import Wallet, WalletTransaction

logger = logging.getLogger(__name__)


class WalletError(Exception):
    pass


class InsufficientFunds(WalletError):
    pass


# ======================================================
# INTERNAL
# ======================================================
def _get_wallet_for_update(user_id):
    wallet, _ = Wallet.objects.select_for_update().get_or_create(user_id=user_id)
    return wallet


def _record(user_id, tx_type, amount, reference, balance_after, meta):
    return WalletTransaction.objects.create(
        user_id=user_id,
        amount=amount,
        tx_type=tx_type,
        reference=reference,
        balance_after=balance_after,
        meta=meta or {},
    )


# ======================================================
# DEBIT (bet stake)
# ======================================================
@transaction.atomic
def debit_for_bet(user_id, amount: Decimal, ref: str, meta=None):
    """
    Take `amount` off the user's balance and append a DEBIT ledger row.

    Runs in its own atomic block; called inside a caller's transaction it
    becomes a savepoint and commits or rolls back with the caller.
    """
    if amount <= 0:
        raise WalletError("Invalid bet amount")

    wallet = _get_wallet_for_update(user_id)

    if wallet.balance < amount:
        raise InsufficientFunds("Insufficient funds")

    wallet.balance -= amount
    wallet.save(update_fields=["balance", "updated_at"])

    tx = _record(user_id, WalletTransaction.DEBIT, amount, ref, wallet.balance, meta)
    logger.info("Debited %s from user %s (ref=%s)", amount, user_id, ref)
    return tx


# ======================================================
# CREDIT (winnings / refunds)
# ======================================================
@transaction.atomic
def credit_payout(user_id, payout: Decimal, ref: str, meta=None):
    if payout < 0:
        raise WalletError("Invalid payout amount")

    wallet = _get_wallet_for_update(user_id)

    wallet.balance += payout
    wallet.save(update_fields=["balance", "updated_at"])

    tx = _record(user_id, WalletTransaction.CREDIT, payout, ref, wallet.balance, meta)
    logger.info("Credited %s to user %s (ref=%s)", payout, user_id, ref)
    return tx
