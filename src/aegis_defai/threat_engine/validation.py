"""
Input guards for the threat engine.

Malformed snapshots are rejected before scoring: a NaN would fail every
breakpoint comparison and silently land in the worst step of each factor.
"""
import math

from web3 import Web3

from .types import InvalidMarketSnapshotError, MarketSnapshot, PositionContext

_SIGNED_FIELDS = ("price_change_24h", "volume_change", "liquidity_change")
_NON_NEGATIVE_FIELDS = ("volume_24h", "liquidity", "holders")


def _require_finite(name: str, value) -> None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidMarketSnapshotError(name, value, "must be a number")
    if not math.isfinite(value):
        raise InvalidMarketSnapshotError(name, value, "must be finite")


def validate_snapshot(snapshot: MarketSnapshot) -> MarketSnapshot:
    """
    Check a market snapshot against its documented domain.

    Raises:
        InvalidMarketSnapshotError: first offending field
    """
    _require_finite("price", snapshot.price)
    if snapshot.price <= 0:
        raise InvalidMarketSnapshotError("price", snapshot.price, "must be positive")

    for name in _SIGNED_FIELDS:
        _require_finite(name, getattr(snapshot, name))

    for name in _NON_NEGATIVE_FIELDS:
        value = getattr(snapshot, name)
        _require_finite(name, value)
        if value < 0:
            raise InvalidMarketSnapshotError(name, value, "must not be negative")

    # rendered into hashed reasoning, so 1520000.0 must not pass as a count
    if not float(snapshot.holders).is_integer():
        raise InvalidMarketSnapshotError("holders", snapshot.holders, "must be a whole number")

    top = snapshot.top_holder_percent
    _require_finite("top_holder_percent", top)
    if not 0 <= top <= 100:
        raise InvalidMarketSnapshotError("top_holder_percent", top, "must be within [0, 100]")

    return snapshot


def validate_address(name: str, address: str | None) -> str | None:
    if address is not None and not Web3.is_address(address):
        raise InvalidMarketSnapshotError(name, address, "must be a 20-byte hex address")
    return address


def validate_position(position: PositionContext | None) -> PositionContext | None:
    if position is None:
        return None

    _require_finite("deposited_amount", position.deposited_amount)
    if position.deposited_amount < 0:
        raise InvalidMarketSnapshotError(
            "deposited_amount", position.deposited_amount, "must not be negative"
        )
    validate_address("user_address", position.user_address)
    return position


def validate_positions(positions: dict[str, PositionContext]) -> dict[str, PositionContext]:
    """Check every watched position and the address it is keyed by"""
    for user, position in positions.items():
        validate_address("user_address", user)
        validate_position(position)
    return positions
