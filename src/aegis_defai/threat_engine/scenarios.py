"""Canned market scenarios for demos and dry runs."""
from dataclasses import dataclass

from .types import MarketSnapshot


@dataclass(frozen=True)
class Scenario:
    name: str
    snapshot: MarketSnapshot
    expected: str


DEMO_SCENARIOS: list[Scenario] = [
    Scenario(
        name="Normal market",
        snapshot=MarketSnapshot(
            price=585,
            price_change_24h=1.2,
            volume_24h=600_000_000,
            volume_change=15,
            liquidity=2_100_000_000,
            liquidity_change=2.5,
            holders=1_520_000,
            top_holder_percent=8.3,
        ),
        expected="No threats, passive monitoring",
    ),
    Scenario(
        name="Moderate volatility",
        snapshot=MarketSnapshot(
            price=560,
            price_change_24h=-6.5,
            volume_24h=900_000_000,
            volume_change=180,
            liquidity=1_900_000_000,
            liquidity_change=-8,
            holders=1_510_000,
            top_holder_percent=9.1,
        ),
        expected="No threat pattern, medium composite risk",
    ),
    Scenario(
        name="Price crash",
        snapshot=MarketSnapshot(
            price=465,
            price_change_24h=-22,
            volume_24h=2_500_000_000,
            volume_change=450,
            liquidity=1_400_000_000,
            liquidity_change=-18,
            holders=1_480_000,
            top_holder_percent=11.5,
        ),
        expected="HIGH price crash, stop-loss when auto-withdraw is allowed",
    ),
    Scenario(
        name="Rug pull pattern",
        snapshot=MarketSnapshot(
            price=180,
            price_change_24h=-68,
            volume_24h=5_000_000_000,
            volume_change=1200,
            liquidity=200_000_000,
            liquidity_change=-85,
            holders=1_200_000,
            top_holder_percent=45,
        ),
        expected="CRITICAL rug pull, emergency withdrawal",
    ),
    Scenario(
        name="Whale concentration",
        snapshot=MarketSnapshot(
            price=575,
            price_change_24h=-2,
            volume_24h=700_000_000,
            volume_change=60,
            liquidity=1_800_000_000,
            liquidity_change=-3,
            holders=800_000,
            top_holder_percent=72,
        ),
        expected="HIGH whale concentration, reduce exposure",
    ),
]
