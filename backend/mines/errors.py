# mines/errors.py
from rest_framework import status


class MinesError(Exception):
    code = "mines_error"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Mines request failed"

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


# ---- validation ----

class InvalidAmount(MinesError):
    code = "invalid_amount"
    default_message = "Invalid bet amount"


class InvalidMineCount(MinesError):
    code = "invalid_mine_count"
    default_message = "Mine count must be between 1 and 24"


class InvalidTile(MinesError):
    code = "invalid_tile"
    default_message = "Tile index out of range"


class InvalidClientSeed(MinesError):
    code = "invalid_client_seed"
    default_message = "Client seed must be 1 to 64 characters"


# ---- resources ----

class InsufficientFunds(MinesError):
    code = "insufficient_funds"
    default_message = "Insufficient balance"


# ---- state ----

class GameNotFound(MinesError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Game not found"


class Forbidden(MinesError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Game belongs to another user"


class InvalidState(MinesError):
    code = "invalid_state"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Game is not active"


class AlreadyRevealed(MinesError):
    code = "already_revealed"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Tile already revealed"


class NothingToCashOut(MinesError):
    code = "nothing_to_cash_out"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Reveal at least one tile before cashing out"


class StateConflict(MinesError):
    code = "state_conflict"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Game changed concurrently, retry"
