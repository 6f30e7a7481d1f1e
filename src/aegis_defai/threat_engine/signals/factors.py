"""
Market risk factor signals - PURE RULES, NO MODEL FITTING.

Each factor maps one market metric onto a 0-100 score through fixed
breakpoints. All functions are deterministic and unit-testable.
"""
from dataclasses import dataclass
from typing import Callable

from ..formatting import round_half_up, signed_fixed, to_fixed
from ..types import MarketSnapshot, RiskFactor

FactorScorer = Callable[[MarketSnapshot], tuple[int, str]]

FACTOR_ORDER = (
    "price_volatility",
    "liquidity_health",
    "volume_analysis",
    "holder_concentration",
    "momentum",
)


def step_below(value: float, steps: list[list[float]], default: float) -> float:
    """Score of the first step whose bound is strictly above value"""
    for bound, score in steps:
        if value < bound:
            return score
    return default


def step_above(value: float, steps: list[list[float]], default: float) -> float:
    """Score of the first step whose bound is strictly below value"""
    for bound, score in steps:
        if value > bound:
            return score
    return default


@dataclass(frozen=True)
class FactorSpec:
    """One entry of the ordered factor table"""
    key: str
    name: str
    weight: float
    scorer: FactorScorer

    def evaluate(self, snapshot: MarketSnapshot) -> RiskFactor:
        score, description = self.scorer(snapshot)
        return RiskFactor(
            name=self.name,
            score=score,
            weight=self.weight,
            description=description,
        )


class MarketFactorSignals:
    """Calculate the five market risk factor scores"""

    def __init__(self, config: dict):
        self.config = config

    def price_volatility(self, snapshot: MarketSnapshot) -> tuple[int, str]:
        """
        Step on abs(24h price change); drops weigh more than rallies.

        Returns:
            (score, description)
        """
        cfg = self.config["price_volatility"]
        change = snapshot.price_change_24h
        score = step_below(abs(change), cfg["steps"], cfg["default"])

        if change < 0:
            score = min(100, score * cfg["downside_multiplier"])

        return round_half_up(score), f"24h price change: {signed_fixed(change, 2)}%"

    def liquidity_health(self, snapshot: MarketSnapshot) -> tuple[int, str]:
        cfg = self.config["liquidity_health"]
        change = snapshot.liquidity_change
        score = step_above(change, cfg["steps"], cfg["default"])

        total_m = to_fixed(snapshot.liquidity / 1e6, 2)
        description = f"Liquidity change: {signed_fixed(change, 2)}% | Total: ${total_m}M"
        return round_half_up(score), description

    def volume_analysis(self, snapshot: MarketSnapshot) -> tuple[int, str]:
        cfg = self.config["volume_analysis"]
        change = snapshot.volume_change
        score = step_below(change, cfg["steps"], cfg["default"])

        volume_m = to_fixed(snapshot.volume_24h / 1e6, 2)
        description = f"Volume change: {signed_fixed(change, 0)}% | 24h: ${volume_m}M"
        return round_half_up(score), description

    def holder_concentration(self, snapshot: MarketSnapshot) -> tuple[int, str]:
        cfg = self.config["holder_concentration"]
        top = snapshot.top_holder_percent
        score = step_below(top, cfg["steps"], cfg["default"])

        description = (
            f"Top holder: {to_fixed(top, 1)}% | Total holders: {int(snapshot.holders)}"
        )
        return round_half_up(score), description

    def momentum(self, snapshot: MarketSnapshot) -> tuple[int, str]:
        """
        Combined price/volume/liquidity trend.

        Falling price on rising volume reads as panic selling; falling price
        with draining liquidity reads as a cascade.
        """
        cfg = self.config["momentum"]
        price_down = snapshot.price_change_24h < cfg["price_down_below"]
        volume_up = snapshot.volume_change > cfg["volume_up_above"]
        liquidity_down = snapshot.liquidity_change < cfg["liquidity_down_below"]
        panic_selling = price_down and volume_up

        score = cfg["base"]
        if price_down:
            score += cfg["price_down_points"]
        if panic_selling:
            score += cfg["panic_selling_points"]
        if liquidity_down:
            score += cfg["liquidity_down_points"]
        if price_down and liquidity_down:
            score += cfg["cascade_points"]

        description = (
            f"Trend: {'Bearish' if price_down else 'Neutral/Bullish'} | "
            f"Selling pressure: {'High' if panic_selling else 'Normal'}"
        )
        return min(100, round_half_up(score)), description

    def factor_specs(self) -> list[FactorSpec]:
        """Ordered factor table: evaluation order, display name, weight, scorer"""
        return [
            FactorSpec(
                key=key,
                name=self.config[key]["name"],
                weight=float(self.config[key]["weight"]),
                scorer=getattr(self, key),
            )
            for key in FACTOR_ORDER
        ]
