"""
Type definitions for the threat engine.
All engine inputs and outputs are plain, immutable values.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum, IntEnum
from typing import Any


class RiskLevel(IntEnum):
    """Ordinal severity scale shared by risk snapshots and threat assessments"""
    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3
    CRITICAL = 4


class ThreatType(str, Enum):
    NONE = "NONE"
    PRICE_CRASH = "PRICE_CRASH"
    LIQUIDITY_DRAIN = "LIQUIDITY_DRAIN"
    RUG_PULL = "RUG_PULL"
    FLASH_LOAN_ATTACK = "FLASH_LOAN_ATTACK"
    ABNORMAL_VOLUME = "ABNORMAL_VOLUME"
    WHALE_MOVEMENT = "WHALE_MOVEMENT"
    CONTRACT_EXPLOIT = "CONTRACT_EXPLOIT"
    GOVERNANCE_ATTACK = "GOVERNANCE_ATTACK"


class SuggestedAction(str, Enum):
    NONE = "NONE"
    MONITOR = "MONITOR"
    ALERT = "ALERT"
    REDUCE_EXPOSURE = "REDUCE_EXPOSURE"
    EMERGENCY_WITHDRAW = "EMERGENCY_WITHDRAW"
    STOP_LOSS = "STOP_LOSS"
    TAKE_PROFIT = "TAKE_PROFIT"
    REBALANCE = "REBALANCE"


class DecisionType(IntEnum):
    """Decision categories recorded in the external decision ledger"""
    RISK_ASSESSMENT = 0
    THREAT_DETECTED = 1
    PROTECTION_TRIGGERED = 2
    ALL_CLEAR = 3
    MARKET_ANALYSIS = 4
    POSITION_REVIEW = 5


class ThreatEngineError(Exception):
    """Base error for the threat engine"""


class InvalidMarketSnapshotError(ThreatEngineError, ValueError):
    """Raised when a snapshot or position carries non-finite or out-of-range numbers"""

    def __init__(self, field_name: str, value: Any, reason: str):
        self.field_name = field_name
        self.value = value
        super().__init__(f"{field_name}={value!r}: {reason}")


class EngineConfigurationError(ThreatEngineError):
    """Raised when the heuristic parameters are inconsistent"""


@dataclass(frozen=True)
class MarketSnapshot:
    """
    Market indicators for one observation.

    Attributes:
        price: Spot price in USD (> 0)
        price_change_24h: Signed 24h price change in percent
        volume_24h: 24h traded volume in USD
        volume_change: Signed volume change in percent (can exceed 1000)
        liquidity: Pool/ecosystem liquidity in USD
        liquidity_change: Signed liquidity change in percent
        holders: Holder count
        top_holder_percent: Share of supply held by the largest holder, 0-100
    """
    price: float
    price_change_24h: float
    volume_24h: float
    volume_change: float
    liquidity: float
    liquidity_change: float
    holders: int
    top_holder_percent: float


@dataclass(frozen=True)
class RiskProfile:
    """User-configured protection limits stored with the vault position"""
    max_slippage_percent: float = 1.0
    stop_loss_percent: float = 10.0
    max_single_action_value: int = 0
    allow_auto_withdraw: bool = False
    allow_auto_swap: bool = False


@dataclass(frozen=True)
class PositionContext:
    deposited_amount: int
    risk_profile: RiskProfile = field(default_factory=RiskProfile)
    user_address: str | None = None


@dataclass(frozen=True)
class RiskFactor:
    name: str
    score: int
    weight: float
    description: str

    @property
    def contribution(self) -> float:
        return self.score * self.weight

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "score": self.score,
            "weight": self.weight,
            "description": self.description,
        }


@dataclass(frozen=True)
class RiskSnapshot:
    """
    Output of the composite risk scorer.

    Sub-scores and overall risk are integers in [0, 100]. Factors keep
    evaluation order: Price Volatility, Liquidity Health, Volume Analysis,
    Holder Concentration, Momentum Analysis.
    """
    liquidation_risk: int
    volatility_risk: int
    protocol_risk: int
    smart_contract_risk: int
    overall_risk: int
    risk_level: RiskLevel
    confidence: int
    reasoning: str
    factors: tuple[RiskFactor, ...]
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "liquidation_risk": self.liquidation_risk,
            "volatility_risk": self.volatility_risk,
            "protocol_risk": self.protocol_risk,
            "smart_contract_risk": self.smart_contract_risk,
            "overall_risk": self.overall_risk,
            "risk_level": self.risk_level.name,
            "confidence": self.confidence,
            "reasoning": self.reasoning,
            "factors": [f.to_dict() for f in self.factors],
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ThreatAssessment:
    """
    Output of the threat classifier. At most one threat type per assessment.

    estimated_impact is the approximate percent of value at risk if no
    action is taken.
    """
    threat_detected: bool
    threat_type: ThreatType
    severity: RiskLevel
    confidence: int
    suggested_action: SuggestedAction
    reasoning: str
    estimated_impact: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "threat_detected": self.threat_detected,
            "threat_type": self.threat_type.value,
            "severity": self.severity.name,
            "confidence": self.confidence,
            "suggested_action": self.suggested_action.value,
            "reasoning": self.reasoning,
            "estimated_impact": self.estimated_impact,
        }
