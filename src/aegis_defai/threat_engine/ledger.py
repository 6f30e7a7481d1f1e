"""
Encoding of engine outputs for the on-chain decision ledger.

The executor submits these records; this module only maps engine enums
onto the contract's ordinals and decides which threats warrant a
protective action.
"""
from dataclasses import asdict, dataclass
from typing import Any

from web3 import Web3
from web3.constants import ADDRESS_ZERO

from .engine.risk_engine import reasoning_hash
from .types import (
    DecisionType,
    PositionContext,
    RiskLevel,
    RiskSnapshot,
    SuggestedAction,
    ThreatAssessment,
)

# Vault ActionType enum. Actions missing here cannot be executed on-chain.
ACTION_TYPE_ORDINALS: dict[SuggestedAction, int] = {
    SuggestedAction.EMERGENCY_WITHDRAW: 0,
    SuggestedAction.REBALANCE: 1,
    SuggestedAction.ALERT: 2,
    SuggestedAction.STOP_LOSS: 3,
    SuggestedAction.TAKE_PROFIT: 4,
}

RISK_LEVEL_ORDINALS: dict[RiskLevel, int] = {level: int(level) for level in RiskLevel}

DECISION_TYPE_ORDINALS: dict[DecisionType, int] = {kind: int(kind) for kind in DecisionType}

# Actions that only notify; anything else is a protective intervention
_PASSIVE_ACTIONS = frozenset(
    {SuggestedAction.NONE, SuggestedAction.MONITOR, SuggestedAction.ALERT}
)

PROTECTION_MIN_SEVERITY = RiskLevel.HIGH


@dataclass(frozen=True)
class DecisionRecord:
    agent_id: int
    decision_type: int
    risk_level: int
    confidence_bps: int
    target_user: str
    reasoning_hash: str

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class RiskSnapshotRecord:
    agent_id: int
    liquidation_risk: int
    volatility_risk: int
    protocol_risk: int
    smart_contract_risk: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class ProtectionOrder:
    user_address: str
    action: SuggestedAction
    action_type: int
    value: int
    reason: str

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["action"] = self.action.value
        return data


def action_type_for(action: SuggestedAction) -> int | None:
    return ACTION_TYPE_ORDINALS.get(action)


def classify_decision(threat: ThreatAssessment) -> DecisionType:
    if not threat.threat_detected:
        return DecisionType.ALL_CLEAR
    if threat.suggested_action in _PASSIVE_ACTIONS:
        return DecisionType.THREAT_DETECTED
    return DecisionType.PROTECTION_TRIGGERED


def _target(user: str | None) -> str:
    return Web3.to_checksum_address(user or ADDRESS_ZERO)


def build_decision_record(
    threat: ThreatAssessment,
    agent_id: int,
    target_user: str | None = None,
) -> DecisionRecord:
    """
    Args:
        threat: Assessment to log
        agent_id: Registry token id of the acting agent
        target_user: Watched address; zero address when nobody is watched

    Returns:
        DecisionRecord with confidence scaled to basis points
    """
    return DecisionRecord(
        agent_id=agent_id,
        decision_type=DECISION_TYPE_ORDINALS[classify_decision(threat)],
        risk_level=RISK_LEVEL_ORDINALS[threat.severity],
        confidence_bps=threat.confidence * 100,
        target_user=_target(target_user),
        reasoning_hash=reasoning_hash(threat.reasoning),
    )


def build_snapshot_record(snapshot: RiskSnapshot, agent_id: int) -> RiskSnapshotRecord:
    return RiskSnapshotRecord(
        agent_id=agent_id,
        liquidation_risk=snapshot.liquidation_risk,
        volatility_risk=snapshot.volatility_risk,
        protocol_risk=snapshot.protocol_risk,
        smart_contract_risk=snapshot.smart_contract_risk,
    )


def plan_protection(
    threat: ThreatAssessment,
    position: PositionContext | None,
    user_address: str | None = None,
) -> ProtectionOrder | None:
    """
    Decide whether a protective transaction should be sent for one position.

    Requires a detected threat of at least HIGH severity, a funded position
    and an action the vault can execute.
    """
    if not threat.threat_detected or threat.severity < PROTECTION_MIN_SEVERITY:
        return None
    if position is None or position.deposited_amount <= 0:
        return None

    action_type = action_type_for(threat.suggested_action)
    if action_type is None:
        return None

    user = user_address or position.user_address
    return ProtectionOrder(
        user_address=_target(user),
        action=threat.suggested_action,
        action_type=action_type,
        value=position.deposited_amount,
        reason=threat.reasoning,
    )
