# mines/multipliers.py
from decimal import Decimal, ROUND_HALF_UP

HOUSE_EDGE = Decimal("0.01")
HOUSE_EDGE_FACTOR = Decimal("1") - HOUSE_EDGE

D0 = Decimal("0")


def q4(x: Decimal) -> Decimal:
    return x.quantize(Decimal("0.0001"), rounding=ROUND_HALF_UP)


def combinations(n: int, k: int) -> int:
    """
    n choose k, built up one factor at a time.
    Every intermediate value is itself a binomial coefficient so the
    integer division is exact.
    """
    if k < 0 or k > n:
        return 0
    if k == 0 or k == n:
        return 1
    if k > n - k:
        k = n - k

    res = 1
    for i in range(1, k + 1):
        res = res * (n - i + 1) // i
    return res


def calculate_multiplier(
    revealed_count: int,
    mine_count: int,
    grid_size: int = 25,
    house_edge_factor: Decimal = HOUSE_EDGE_FACTOR,
) -> Decimal:
    """
    Fair odds of surviving `revealed_count` picks, less the house edge:

        edge_factor * C(grid, k) / C(grid - mines, k)

    k = 0 gives exactly `house_edge_factor`. More reveals than safe tiles
    gives 0.
    """
    safe_ways = combinations(grid_size - mine_count, revealed_count)
    if safe_ways == 0:
        return D0

    total_ways = combinations(grid_size, revealed_count)
    return q4(house_edge_factor * Decimal(total_ways) / Decimal(safe_ways))
