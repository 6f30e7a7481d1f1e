"""
Number rounding and rendering used in scores and narratives.

Reasoning strings are hashed for external attestation, so the rendering
must be stable: ties round half up for scores and half away from zero for
fixed-point text.
"""
import math
from decimal import ROUND_HALF_UP, Decimal


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def to_fixed(value: float, digits: int) -> str:
    """Fixed-point text of the exact binary value, ties away from zero"""
    if value == 0:
        value = 0.0
    quantum = Decimal(1).scaleb(-digits)
    return f"{Decimal(value).quantize(quantum, rounding=ROUND_HALF_UP):f}"


def signed_fixed(value: float, digits: int) -> str:
    """Like to_fixed, with an explicit '+' on positive values"""
    return ("+" if value > 0 else "") + to_fixed(value, digits)


def shortest_number(value: float) -> str:
    """Shortest round-trip text: 72.0 -> '72', 72.5 -> '72.5'"""
    if isinstance(value, int):
        return str(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)
