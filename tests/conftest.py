"""
Pytest configuration and shared fixtures for the threat engine tests.

Snapshots are built from a calm baseline market and overridden per test.
"""

import dataclasses
from typing import Callable

import pytest

from aegis_defai.ai.analyst import RiskAnalyst
from aegis_defai.threat_engine.engine.risk_engine import RiskEngine
from aegis_defai.threat_engine.scenarios import DEMO_SCENARIOS
from aegis_defai.threat_engine.types import MarketSnapshot, PositionContext, RiskProfile

DEAD_ADDRESS = "0x000000000000000000000000000000000000dEaD"

CALM_MARKET = MarketSnapshot(
    price=585,
    price_change_24h=1.2,
    volume_24h=600_000_000,
    volume_change=15,
    liquidity=2_100_000_000,
    liquidity_change=2.5,
    holders=1_520_000,
    top_holder_percent=8.3,
)


# =============================================================================
# SNAPSHOT FIXTURES
# =============================================================================

@pytest.fixture
def make_snapshot() -> Callable[..., MarketSnapshot]:
    """Factory: calm market with the given fields overridden."""
    def _make(**overrides) -> MarketSnapshot:
        return dataclasses.replace(CALM_MARKET, **overrides)
    return _make


@pytest.fixture
def scenarios() -> dict[str, MarketSnapshot]:
    """Demo scenarios keyed by name."""
    return {s.name: s.snapshot for s in DEMO_SCENARIOS}


@pytest.fixture
def calm_market() -> MarketSnapshot:
    return CALM_MARKET


@pytest.fixture
def rug_pull_market(scenarios) -> MarketSnapshot:
    return scenarios["Rug pull pattern"]


@pytest.fixture
def whale_market(scenarios) -> MarketSnapshot:
    return scenarios["Whale concentration"]


# =============================================================================
# POSITION FIXTURES
# =============================================================================

@pytest.fixture
def auto_withdraw_position() -> PositionContext:
    return PositionContext(
        deposited_amount=10**18,
        risk_profile=RiskProfile(allow_auto_withdraw=True),
        user_address=DEAD_ADDRESS,
    )


@pytest.fixture
def manual_position() -> PositionContext:
    return PositionContext(
        deposited_amount=10**18,
        risk_profile=RiskProfile(allow_auto_withdraw=False),
        user_address=DEAD_ADDRESS,
    )


# =============================================================================
# ENGINE FIXTURES
# =============================================================================

@pytest.fixture
def engine() -> RiskEngine:
    """Fresh engine with its own empty history."""
    return RiskEngine()


@pytest.fixture
def analyst() -> RiskAnalyst:
    """Heuristic-only analyst (no LLM provider)."""
    return RiskAnalyst(provider=None, symbol="BNB")
