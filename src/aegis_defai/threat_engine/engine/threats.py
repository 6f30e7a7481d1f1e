"""
Threat classification - ordered rule chain.

Rules run from most to least severe and the first match wins, so a market
showing several symptoms is attributed to its worst explanation.
"""
from dataclasses import dataclass
from typing import Callable

from ..formatting import shortest_number, to_fixed
from ..types import (
    MarketSnapshot,
    PositionContext,
    RiskLevel,
    SuggestedAction,
    ThreatAssessment,
    ThreatType,
)

ALL_CLEAR_REASONING = "All monitored metrics within normal parameters. No threats detected."


@dataclass(frozen=True)
class ThreatRule:
    threat_type: ThreatType
    matches: Callable[[MarketSnapshot], bool]
    assess: Callable[[MarketSnapshot, PositionContext | None], ThreatAssessment]


def _detected(
    threat_type: ThreatType,
    severity: RiskLevel,
    confidence: int,
    action: SuggestedAction,
    reasoning: str,
    impact: float,
) -> ThreatAssessment:
    return ThreatAssessment(
        threat_detected=True,
        threat_type=threat_type,
        severity=severity,
        confidence=confidence,
        suggested_action=action,
        reasoning=reasoning,
        estimated_impact=impact,
    )


def all_clear() -> ThreatAssessment:
    return ThreatAssessment(
        threat_detected=False,
        threat_type=ThreatType.NONE,
        severity=RiskLevel.NONE,
        confidence=95,
        suggested_action=SuggestedAction.NONE,
        reasoning=ALL_CLEAR_REASONING,
        estimated_impact=0.0,
    )


def _rug_pull(m: MarketSnapshot, position: PositionContext | None) -> ThreatAssessment:
    return _detected(
        ThreatType.RUG_PULL,
        RiskLevel.CRITICAL,
        92,
        SuggestedAction.EMERGENCY_WITHDRAW,
        f"CRITICAL: Liquidity dropped {to_fixed(m.liquidity_change, 1)}% with "
        f"{to_fixed(m.price_change_24h, 1)}% price decline. "
        "High probability rug pull pattern detected.",
        abs(m.liquidity_change),
    )


def _flash_loan(m: MarketSnapshot, position: PositionContext | None) -> ThreatAssessment:
    return _detected(
        ThreatType.FLASH_LOAN_ATTACK,
        RiskLevel.CRITICAL,
        78,
        SuggestedAction.EMERGENCY_WITHDRAW,
        f"CRITICAL: Volume spike of {to_fixed(m.volume_change, 0)}% detected. "
        "Possible flash loan attack or market manipulation.",
        30.0,
    )


def _whale(m: MarketSnapshot, position: PositionContext | None) -> ThreatAssessment:
    return _detected(
        ThreatType.WHALE_MOVEMENT,
        RiskLevel.HIGH,
        85,
        SuggestedAction.REDUCE_EXPOSURE,
        f"HIGH: Top holder controls {shortest_number(m.top_holder_percent)}% of supply. "
        "Extreme centralization risk.",
        m.top_holder_percent,
    )


def _price_crash(m: MarketSnapshot, position: PositionContext | None) -> ThreatAssessment:
    auto_withdraw = position is not None and position.risk_profile.allow_auto_withdraw
    return _detected(
        ThreatType.PRICE_CRASH,
        RiskLevel.HIGH,
        90,
        SuggestedAction.STOP_LOSS if auto_withdraw else SuggestedAction.ALERT,
        f"HIGH: Price dropped {to_fixed(m.price_change_24h, 1)}% in 24h. "
        "Stop-loss threshold likely breached.",
        abs(m.price_change_24h),
    )


def _liquidity_drain(m: MarketSnapshot, position: PositionContext | None) -> ThreatAssessment:
    return _detected(
        ThreatType.LIQUIDITY_DRAIN,
        RiskLevel.MEDIUM,
        80,
        SuggestedAction.ALERT,
        f"MEDIUM: Liquidity decreased {to_fixed(abs(m.liquidity_change), 1)}%. "
        "Monitor closely for further drain.",
        abs(m.liquidity_change) * 0.5,
    )


def _abnormal_volume(m: MarketSnapshot, position: PositionContext | None) -> ThreatAssessment:
    return _detected(
        ThreatType.ABNORMAL_VOLUME,
        RiskLevel.LOW,
        70,
        SuggestedAction.MONITOR,
        f"LOW: Unusual volume increase of {to_fixed(m.volume_change, 0)}%. "
        "Monitoring for further anomalies.",
        5.0,
    )


def build_rule_chain(thresholds: dict) -> list[ThreatRule]:
    """
    Build the priority-ordered rule chain from the `threats` parameters.

    Args:
        thresholds: Threat thresholds (percent values)

    Returns:
        Rules, most severe first
    """
    t = thresholds
    return [
        ThreatRule(
            ThreatType.RUG_PULL,
            lambda m: (
                m.liquidity_change < t["rug_pull_liquidity_below"]
                and m.price_change_24h < t["rug_pull_price_below"]
            ),
            _rug_pull,
        ),
        ThreatRule(
            ThreatType.FLASH_LOAN_ATTACK,
            lambda m: m.volume_change > t["flash_loan_volume_above"],
            _flash_loan,
        ),
        ThreatRule(
            ThreatType.WHALE_MOVEMENT,
            lambda m: m.top_holder_percent > t["whale_top_holder_above"],
            _whale,
        ),
        ThreatRule(
            ThreatType.PRICE_CRASH,
            lambda m: m.price_change_24h < t["price_crash_below"],
            _price_crash,
        ),
        ThreatRule(
            ThreatType.LIQUIDITY_DRAIN,
            lambda m: m.liquidity_change < t["liquidity_drain_below"],
            _liquidity_drain,
        ),
        ThreatRule(
            ThreatType.ABNORMAL_VOLUME,
            lambda m: m.volume_change > t["abnormal_volume_above"],
            _abnormal_volume,
        ),
    ]


def classify(
    rules: list[ThreatRule],
    snapshot: MarketSnapshot,
    position: PositionContext | None = None,
) -> ThreatAssessment:
    for rule in rules:
        if rule.matches(snapshot):
            return rule.assess(snapshot, position)
    return all_clear()
