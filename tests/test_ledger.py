"""
Unit tests for ledger record encoding and protection planning.
"""

import pytest

from aegis_defai.threat_engine.engine.risk_engine import reasoning_hash
from aegis_defai.threat_engine.engine.threats import all_clear
from aegis_defai.threat_engine.ledger import (
    ACTION_TYPE_ORDINALS,
    action_type_for,
    build_decision_record,
    build_snapshot_record,
    classify_decision,
    plan_protection,
)
from aegis_defai.threat_engine.types import (
    DecisionType,
    PositionContext,
    RiskProfile,
    SuggestedAction,
)

DEAD_ADDRESS = "0x000000000000000000000000000000000000dEaD"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class TestOrdinals:

    @pytest.mark.unit
    def test_vault_action_types(self):
        assert ACTION_TYPE_ORDINALS == {
            SuggestedAction.EMERGENCY_WITHDRAW: 0,
            SuggestedAction.REBALANCE: 1,
            SuggestedAction.ALERT: 2,
            SuggestedAction.STOP_LOSS: 3,
            SuggestedAction.TAKE_PROFIT: 4,
        }

    @pytest.mark.unit
    @pytest.mark.parametrize("action", [
        SuggestedAction.NONE,
        SuggestedAction.MONITOR,
        SuggestedAction.REDUCE_EXPOSURE,
    ])
    def test_unmapped_actions(self, action):
        assert action_type_for(action) is None

    @pytest.mark.unit
    def test_decision_type_ordinals(self):
        assert [int(d) for d in DecisionType] == [0, 1, 2, 3, 4, 5]


class TestDecisionRecord:

    @pytest.mark.unit
    def test_classify_decision(self, engine, calm_market, make_snapshot, rug_pull_market):
        assert classify_decision(engine.detect_threats(calm_market)) == DecisionType.ALL_CLEAR
        assert (
            classify_decision(engine.detect_threats(make_snapshot(volume_change=250)))
            == DecisionType.THREAT_DETECTED
        )
        assert (
            classify_decision(engine.detect_threats(rug_pull_market))
            == DecisionType.PROTECTION_TRIGGERED
        )

    @pytest.mark.unit
    def test_rug_pull_record(self, engine, rug_pull_market):
        threat = engine.detect_threats(rug_pull_market)
        record = build_decision_record(threat, agent_id=7, target_user=DEAD_ADDRESS.lower())

        assert record.agent_id == 7
        assert record.decision_type == 2
        assert record.risk_level == 4
        assert record.confidence_bps == 9200
        assert record.target_user == DEAD_ADDRESS
        assert record.reasoning_hash == reasoning_hash(threat.reasoning)

    @pytest.mark.unit
    def test_all_clear_defaults_to_zero_address(self):
        record = build_decision_record(all_clear(), agent_id=0)

        assert record.decision_type == 3
        assert record.risk_level == 0
        assert record.confidence_bps == 9500
        assert record.target_user == ZERO_ADDRESS

    @pytest.mark.unit
    def test_snapshot_record(self, engine, rug_pull_market):
        record = build_snapshot_record(engine.score_risk(rug_pull_market), agent_id=3)

        assert record.to_dict() == {
            "agent_id": 3,
            "liquidation_risk": 99,
            "volatility_risk": 100,
            "protocol_risk": 77,
            "smart_contract_risk": 30,
        }


class TestProtectionPlanning:

    @pytest.mark.unit
    def test_rug_pull_withdraws_deposit(self, engine, rug_pull_market, auto_withdraw_position):
        threat = engine.detect_threats(rug_pull_market, auto_withdraw_position)
        order = plan_protection(threat, auto_withdraw_position)

        assert order is not None
        assert order.action == SuggestedAction.EMERGENCY_WITHDRAW
        assert order.action_type == 0
        assert order.value == 10**18
        assert order.user_address == DEAD_ADDRESS
        assert order.reason == threat.reasoning
        assert order.to_dict()["action"] == "EMERGENCY_WITHDRAW"

    @pytest.mark.unit
    def test_crash_with_auto_withdraw_stops_loss(self, engine, scenarios, auto_withdraw_position):
        threat = engine.detect_threats(scenarios["Price crash"], auto_withdraw_position)
        order = plan_protection(threat, auto_withdraw_position)

        assert order.action_type == 3

    @pytest.mark.unit
    def test_crash_alert_is_still_submitted(self, engine, scenarios, manual_position):
        threat = engine.detect_threats(scenarios["Price crash"], manual_position)
        order = plan_protection(threat, manual_position)

        assert order.action == SuggestedAction.ALERT
        assert order.action_type == 2

    @pytest.mark.unit
    def test_whale_has_no_vault_action(self, engine, whale_market, auto_withdraw_position):
        threat = engine.detect_threats(whale_market, auto_withdraw_position)
        assert plan_protection(threat, auto_withdraw_position) is None

    @pytest.mark.unit
    def test_medium_severity_is_ignored(self, engine, make_snapshot, auto_withdraw_position):
        threat = engine.detect_threats(make_snapshot(liquidity_change=-30))
        assert plan_protection(threat, auto_withdraw_position) is None

    @pytest.mark.unit
    def test_requires_funded_position(self, engine, rug_pull_market):
        threat = engine.detect_threats(rug_pull_market)
        empty = PositionContext(
            deposited_amount=0,
            risk_profile=RiskProfile(allow_auto_withdraw=True),
            user_address=DEAD_ADDRESS,
        )

        assert plan_protection(threat, None) is None
        assert plan_protection(threat, empty) is None

    @pytest.mark.unit
    def test_explicit_user_overrides_position(self, engine, rug_pull_market):
        threat = engine.detect_threats(rug_pull_market)
        anonymous = PositionContext(deposited_amount=5)
        order = plan_protection(threat, anonymous, user_address=DEAD_ADDRESS.lower())

        assert order.user_address == DEAD_ADDRESS
        assert order.value == 5
