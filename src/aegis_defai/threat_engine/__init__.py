from .engine.risk_engine import RiskEngine, reasoning_hash
from .types import (
    DecisionType,
    EngineConfigurationError,
    InvalidMarketSnapshotError,
    MarketSnapshot,
    PositionContext,
    RiskFactor,
    RiskLevel,
    RiskProfile,
    RiskSnapshot,
    SuggestedAction,
    ThreatAssessment,
    ThreatEngineError,
    ThreatType,
)

__all__ = [
    "DecisionType",
    "EngineConfigurationError",
    "InvalidMarketSnapshotError",
    "MarketSnapshot",
    "PositionContext",
    "RiskEngine",
    "RiskFactor",
    "RiskLevel",
    "RiskProfile",
    "RiskSnapshot",
    "SuggestedAction",
    "ThreatAssessment",
    "ThreatEngineError",
    "ThreatType",
    "reasoning_hash",
]
