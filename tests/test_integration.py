"""
Tests for the full observe -> analyse -> decide cycle.
"""

import json

import pytest

from aegis_defai.ai.analyst import RiskAnalyst
from aegis_defai.threat_engine.engine.risk_engine import reasoning_hash
from aegis_defai.threat_engine.integration import ThreatAnalysisIntegration
from aegis_defai.threat_engine.scenarios import DEMO_SCENARIOS
from aegis_defai.threat_engine.types import (
    InvalidMarketSnapshotError,
    PositionContext,
    RiskLevel,
    SuggestedAction,
    ThreatType,
)

DEAD_ADDRESS = "0x000000000000000000000000000000000000dEaD"
ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


@pytest.fixture
def integration(engine, analyst) -> ThreatAnalysisIntegration:
    return ThreatAnalysisIntegration(engine=engine, analyst=analyst, agent_id=1)


class TestCycle:

    @pytest.mark.unit
    def test_calm_cycle(self, integration, calm_market):
        report = integration.analyze(calm_market)

        assert report.cycle == 1
        assert report.risk.overall_risk == 8
        assert not report.threat.threat_detected
        assert report.decision.decision_type == 3
        assert report.decision.target_user == ZERO_ADDRESS
        assert report.decision.reasoning_hash == reasoning_hash(report.threat.reasoning)
        assert report.snapshot_record.agent_id == 1
        assert report.protections == []
        assert report.threat_report.startswith("All Clear")

    @pytest.mark.unit
    def test_rug_pull_cycle_protects_every_funded_position(
        self, integration, rug_pull_market, auto_withdraw_position, manual_position
    ):
        other = "0x00000000000000000000000000000000000000aa"
        positions = {DEAD_ADDRESS: auto_withdraw_position, other: manual_position}

        report = integration.analyze(rug_pull_market, positions)

        assert report.threat.threat_type == ThreatType.RUG_PULL
        assert report.decision.decision_type == 2
        assert report.decision.confidence_bps == 9200
        assert report.decision.target_user == DEAD_ADDRESS
        assert [p.action for p in report.protections] == [SuggestedAction.EMERGENCY_WITHDRAW] * 2
        assert report.protections[1].user_address.lower() == other

    @pytest.mark.unit
    def test_first_position_decides_crash_action(
        self, integration, scenarios, auto_withdraw_position, manual_position
    ):
        crash = scenarios["Price crash"]

        manual_first = integration.analyze(crash, {DEAD_ADDRESS: manual_position})
        auto_first = integration.analyze(crash, {DEAD_ADDRESS: auto_withdraw_position})

        assert manual_first.threat.suggested_action == SuggestedAction.ALERT
        assert auto_first.threat.suggested_action == SuggestedAction.STOP_LOSS
        assert auto_first.protections[0].action_type == 3

    @pytest.mark.unit
    def test_cycles_accumulate(self, integration, engine, analyst):
        for scenario in DEMO_SCENARIOS:
            integration.analyze(scenario.snapshot)

        assert integration.cycle_count == len(DEMO_SCENARIOS)
        assert len(engine.get_history()) == len(DEMO_SCENARIOS)
        assert len(analyst.get_history()) == len(DEMO_SCENARIOS)
        assert [r.risk_level for r in engine.get_history()] == [
            RiskLevel.NONE,
            RiskLevel.MEDIUM,
            RiskLevel.HIGH,
            RiskLevel.CRITICAL,
            RiskLevel.LOW,
        ]

    @pytest.mark.unit
    def test_report_is_json_serialisable(self, integration, rug_pull_market, auto_withdraw_position):
        report = integration.analyze(rug_pull_market, {DEAD_ADDRESS: auto_withdraw_position})
        payload = json.loads(json.dumps(report.to_dict()))

        assert payload["risk"]["risk_level"] == "CRITICAL"
        assert payload["threat"]["threat_type"] == "RUG_PULL"
        assert payload["protections"][0]["action"] == "EMERGENCY_WITHDRAW"
        assert payload["protections"][0]["value"] == 10**18
        assert len(payload["risk"]["factors"]) == 5

    @pytest.mark.unit
    def test_default_construction_uses_settings(self):
        integration = ThreatAnalysisIntegration(analyst=RiskAnalyst(provider=None))
        assert integration.engine.get_history() == []
        assert integration.cycle_count == 0


class TestFormatResponse:

    @pytest.mark.unit
    def test_threat_summary(self, integration, whale_market):
        text = ThreatAnalysisIntegration.format_response(integration.analyze(whale_market))

        assert text.startswith("**Cycle #1 Risk Assessment**")
        assert "**Overall Risk:** 32/100 (LOW)" in text
        assert "- Holder Concentration: 95/100 (w=0.15)" in text
        assert "**Threat:** WHALE_MOVEMENT (HIGH, 85% confidence)" in text
        assert "_Protections queued" not in text

    @pytest.mark.unit
    def test_all_clear_summary(self, integration, calm_market):
        text = ThreatAnalysisIntegration.format_response(integration.analyze(calm_market))
        assert "**Status:** All clear." in text


class TestRejectedCycles:

    @pytest.mark.unit
    @pytest.mark.parametrize("positions", [
        {DEAD_ADDRESS: PositionContext(deposited_amount=-1)},
        {"alice": PositionContext(deposited_amount=1)},
        {DEAD_ADDRESS: PositionContext(deposited_amount=1, user_address="0x1234")},
    ])
    def test_bad_position_leaves_state_untouched(self, integration, engine, calm_market, positions):
        with pytest.raises(InvalidMarketSnapshotError):
            integration.analyze(calm_market, positions)

        assert integration.cycle_count == 0
        assert engine.get_history() == []

    @pytest.mark.unit
    def test_bad_position_after_a_good_one(
        self, integration, engine, rug_pull_market, auto_withdraw_position
    ):
        positions = {
            DEAD_ADDRESS: auto_withdraw_position,
            "0x00000000000000000000000000000000000000aa": PositionContext(deposited_amount=-5),
        }
        with pytest.raises(InvalidMarketSnapshotError):
            integration.analyze(rug_pull_market, positions)

        assert engine.get_history() == []

    @pytest.mark.unit
    def test_bad_market_leaves_state_untouched(self, integration, engine, make_snapshot):
        with pytest.raises(InvalidMarketSnapshotError):
            integration.analyze(make_snapshot(price=0))

        assert integration.cycle_count == 0
        assert engine.get_history() == []
