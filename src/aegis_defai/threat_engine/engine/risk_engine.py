"""
Risk Engine - scores market snapshots and classifies threats.
PURE RULES, NO I/O.
"""
import math
import threading
from collections import deque
from pathlib import Path

import numpy as np
import structlog
import yaml
from web3 import Web3

from ..formatting import round_half_up
from ..signals.factors import FactorSpec, MarketFactorSignals
from ..types import (
    EngineConfigurationError,
    MarketSnapshot,
    PositionContext,
    RiskFactor,
    RiskLevel,
    RiskSnapshot,
    ThreatAssessment,
)
from ..validation import validate_position, validate_snapshot
from .threats import build_rule_chain, classify

logger = structlog.get_logger(__name__)

DEFAULT_PARAMETERS_PATH = Path(__file__).parent.parent / "config" / "parameters.yaml"


def reasoning_hash(text: str) -> str:
    """Keccak-256 of the UTF-8 reasoning text, as 0x-prefixed hex"""
    return Web3.to_hex(Web3.keccak(text=text))


class RiskEngine:
    """
    Main risk and threat engine.

    Produces:
    1. A weighted composite RiskSnapshot (five factors, sub-scores,
       level, confidence, narrative)
    2. An independent ThreatAssessment from a first-match rule chain

    Each instance owns its own snapshot history; nothing is shared
    between engines.
    """

    def __init__(self, config_path: str | Path | None = None, history_limit: int | None = None):
        """
        Args:
            config_path: Path to parameters.yaml
            history_limit: Keep at most this many snapshots (None = unbounded)
        """
        if not config_path:
            config_path = DEFAULT_PARAMETERS_PATH

        with open(config_path) as f:
            self.config = yaml.safe_load(f)

        self.signals = MarketFactorSignals(self.config["factors"])
        self.factor_specs: list[FactorSpec] = self.signals.factor_specs()
        self.threat_rules = build_rule_chain(self.config["threats"])

        total_weight = sum(spec.weight for spec in self.factor_specs)
        if not math.isclose(total_weight, 1.0, abs_tol=1e-9):
            raise EngineConfigurationError(
                f"factor weights must sum to 1.0, got {total_weight}"
            )

        self._history: deque[RiskSnapshot] = deque(maxlen=history_limit)
        self._lock = threading.Lock()

        logger.debug(
            "risk_engine_initialized",
            config_path=str(config_path),
            factors=[spec.name for spec in self.factor_specs],
            history_limit=history_limit,
        )

    def score_risk(
        self,
        snapshot: MarketSnapshot,
        position: PositionContext | None = None,
    ) -> RiskSnapshot:
        """
        Score a market snapshot and record it in history.

        Args:
            snapshot: Market indicators
            position: Optional position context (does not change the scores)

        Returns:
            RiskSnapshot with factor breakdown and narrative

        Raises:
            InvalidMarketSnapshotError: non-finite or out-of-range input
        """
        validate_snapshot(snapshot)
        validate_position(position)

        # 1. Factor scores, in table order
        factors = tuple(spec.evaluate(snapshot) for spec in self.factor_specs)
        by_key = {spec.key: factor for spec, factor in zip(self.factor_specs, factors)}

        volatility = by_key["price_volatility"].score
        liquidity = by_key["liquidity_health"].score
        holders = by_key["holder_concentration"].score

        # 2. Composite sub-scores
        composite = self.config["composite"]
        liquidation_risk = round_half_up(
            volatility * composite["liquidation_volatility_weight"]
            + liquidity * composite["liquidation_liquidity_weight"]
        )
        protocol_risk = round_half_up((liquidity + holders) / 2)
        # Proxy only: no contract-analysis signal feeds this engine
        smart_contract_risk = min(composite["smart_contract_cap"], holders)

        # 3. Overall score, level, confidence
        total_weight = sum(f.weight for f in factors)
        overall_risk = round_half_up(sum(f.contribution for f in factors) / total_weight)
        risk_level = self.score_to_level(overall_risk)
        confidence = self._calculate_confidence(factors)
        reasoning = self._generate_reasoning(factors, risk_level, overall_risk)

        result = RiskSnapshot(
            liquidation_risk=liquidation_risk,
            volatility_risk=volatility,
            protocol_risk=protocol_risk,
            smart_contract_risk=smart_contract_risk,
            overall_risk=overall_risk,
            risk_level=risk_level,
            confidence=confidence,
            reasoning=reasoning,
            factors=factors,
        )

        with self._lock:
            self._history.append(result)

        logger.debug(
            "risk_scored",
            overall_risk=overall_risk,
            risk_level=risk_level.name,
            confidence=confidence,
        )
        return result

    def detect_threats(
        self,
        snapshot: MarketSnapshot,
        position: PositionContext | None = None,
    ) -> ThreatAssessment:
        """
        Classify the dominant threat pattern, if any.

        Does not touch history.

        Raises:
            InvalidMarketSnapshotError: non-finite or out-of-range input
        """
        validate_snapshot(snapshot)
        validate_position(position)

        assessment = classify(self.threat_rules, snapshot, position)

        if assessment.threat_detected:
            logger.info(
                "threat_detected",
                threat_type=assessment.threat_type.value,
                severity=assessment.severity.name,
                suggested_action=assessment.suggested_action.value,
            )
        return assessment

    def get_history(self) -> list[RiskSnapshot]:
        """Snapshots in call order; the returned list is a copy"""
        with self._lock:
            return list(self._history)

    @staticmethod
    def reasoning_hash(text: str) -> str:
        return reasoning_hash(text)

    def score_to_level(self, score: int) -> RiskLevel:
        none_below, low_below, medium_below, high_below = self.config["composite"]["level_thresholds"]
        if score < none_below:
            return RiskLevel.NONE
        if score < low_below:
            return RiskLevel.LOW
        if score < medium_below:
            return RiskLevel.MEDIUM
        if score < high_below:
            return RiskLevel.HIGH
        return RiskLevel.CRITICAL

    def _calculate_confidence(self, factors: tuple[RiskFactor, ...]) -> int:
        """
        Confidence from inter-factor agreement.

        Formula: min(max, base + max(0, ceiling - σ(scores))), σ = population std
        """
        cfg = self.config["confidence"]
        std_dev = float(np.std([f.score for f in factors]))
        agreement_bonus = max(0.0, cfg["agreement_ceiling"] - std_dev)
        return min(cfg["max"], round_half_up(cfg["base"] + agreement_bonus))

    def _generate_reasoning(
        self,
        factors: tuple[RiskFactor, ...],
        level: RiskLevel,
        overall: int,
    ) -> str:
        # sorted() is stable: ties keep evaluation order
        ranked = sorted(factors, key=lambda f: f.contribution, reverse=True)
        primary, secondary = ranked[0], ranked[1]

        reasoning = f"Overall risk: {level.name} ({overall}/100). "
        reasoning += (
            f"Primary factor: {primary.name} ({primary.score}/100) — {primary.description}. "
        )

        if secondary.score > self.config["composite"]["secondary_factor_min_score"]:
            reasoning += (
                f"Secondary concern: {secondary.name} ({secondary.score}/100) — "
                f"{secondary.description}. "
            )

        if level >= RiskLevel.HIGH:
            reasoning += "RECOMMENDATION: Immediate protective action advised. "
        elif level >= RiskLevel.MEDIUM:
            reasoning += "RECOMMENDATION: Increased monitoring frequency suggested. "

        return reasoning
