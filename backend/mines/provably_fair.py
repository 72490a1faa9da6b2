import hmac
import hashlib
import secrets

HASH_ALGORITHM = hashlib.sha256
HMAC_ALGORITHM = hashlib.sha512
SERVER_SEED_BYTES = 32


def generate_server_seed() -> str:
    return secrets.token_hex(SERVER_SEED_BYTES)


def hash_server_seed(server_seed: str) -> str:
    return HASH_ALGORITHM(server_seed.encode("utf-8")).hexdigest()


def hmac_sha512(server_seed: str, message: str) -> bytes:
    return hmac.new(
        key=server_seed.encode("utf-8"),
        msg=message.encode("utf-8"),
        digestmod=HMAC_ALGORITHM,
    ).digest()


def generate_mine_locations(
    server_seed: str, client_seed: str, nonce: int, grid_size: int, mine_count: int
) -> list:
    """
    Deterministic mine layout for one game.

    buffer = HMAC_SHA512(server_seed, f"{client_seed}:{nonce}")
    A Fisher-Yates shuffle of [0, grid_size) picks swap partner
    j = floor(buffer[i] / 256 * (i + 1)); the first mine_count entries,
    sorted, are the mines.
    """
    if not 1 <= mine_count <= grid_size - 1:
        raise ValueError("mine_count must be between 1 and grid_size - 1")

    buffer = hmac_sha512(server_seed, f"{client_seed}:{nonce}")
    # every index gets its own byte, no reuse
    if grid_size > len(buffer):
        raise ValueError(f"grid_size may not exceed {len(buffer)}")

    numbers = list(range(grid_size))
    for i in range(grid_size - 1, 0, -1):
        j = buffer[i % len(buffer)] * (i + 1) // 256
        numbers[i], numbers[j] = numbers[j], numbers[i]

    return sorted(numbers[:mine_count])


def verify_game(
    server_seed: str, client_seed: str, nonce: int, mine_count: int, grid_size: int = 25
) -> dict:
    return {
        "server_seed_hash": hash_server_seed(server_seed),
        "mine_locations": generate_mine_locations(
            server_seed, client_seed, nonce, grid_size, mine_count
        ),
    }
