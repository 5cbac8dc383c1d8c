from decimal import Decimal, ROUND_HALF_UP

CENT = Decimal("0.01")


def round_currency(amount: float) -> float:
    """Round half-up to cents. Goes through str() so 1.005 rounds to 1.01."""
    return float(Decimal(str(amount)).quantize(CENT, rounding=ROUND_HALF_UP))


def round_whole(amount: float) -> int:
    return int(Decimal(str(amount)).quantize(Decimal(1), rounding=ROUND_HALF_UP))
