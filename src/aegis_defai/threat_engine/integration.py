"""
Integration layer between the monitoring loop and the RiskEngine.

One call runs a full observe -> analyse -> decide cycle on a snapshot the
caller already fetched:
1. Composite risk scoring (engine)
2. Threat classification (engine)
3. Narrative analysis (analyst; LLM optional)
4. Ledger records and protection orders for the executor

ALL DECISIONS ARE MADE BY THE ENGINE. Nothing here sends transactions.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import structlog

from aegis_defai.ai.analyst import MarketAnalysis, RiskAnalyst
from aegis_defai.settings import settings

from .engine.risk_engine import RiskEngine
from .ledger import (
    DecisionRecord,
    ProtectionOrder,
    RiskSnapshotRecord,
    build_decision_record,
    build_snapshot_record,
    plan_protection,
)
from .types import MarketSnapshot, PositionContext, RiskSnapshot, ThreatAssessment
from .validation import validate_positions, validate_snapshot

logger = structlog.get_logger(__name__)


@dataclass
class CycleReport:
    cycle: int
    market: MarketSnapshot
    risk: RiskSnapshot
    threat: ThreatAssessment
    analysis: MarketAnalysis
    threat_report: str
    decision: DecisionRecord
    snapshot_record: RiskSnapshotRecord
    protections: list[ProtectionOrder] = field(default_factory=list)
    completed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        """Dashboard payload"""
        return {
            "cycle": self.cycle,
            "market": {
                "price": self.market.price,
                "price_change_24h": self.market.price_change_24h,
                "volume_24h": self.market.volume_24h,
                "volume_change": self.market.volume_change,
                "liquidity": self.market.liquidity,
                "liquidity_change": self.market.liquidity_change,
                "holders": self.market.holders,
                "top_holder_percent": self.market.top_holder_percent,
            },
            "risk": self.risk.to_dict(),
            "threat": self.threat.to_dict(),
            "analysis": self.analysis.to_dict(),
            "threat_report": self.threat_report,
            "decision": self.decision.to_dict(),
            "snapshot_record": self.snapshot_record.to_dict(),
            "protections": [p.to_dict() for p in self.protections],
            "completed_at": self.completed_at.isoformat(),
        }


class ThreatAnalysisIntegration:
    """
    Glue between the monitoring loop, the engine and the analyst.

    Market data and positions are supplied by the caller; this class never
    performs I/O.
    """

    def __init__(
        self,
        engine: RiskEngine | None = None,
        analyst: RiskAnalyst | None = None,
        agent_id: int | None = None,
    ):
        self.engine = engine or RiskEngine(
            config_path=settings.parameters_path or None,
            history_limit=settings.history_limit,
        )
        self.analyst = analyst or RiskAnalyst()
        self.agent_id = settings.agent_id if agent_id is None else agent_id
        self.cycle_count = 0

    def analyze(
        self,
        market: MarketSnapshot,
        positions: dict[str, PositionContext] | None = None,
    ) -> CycleReport:
        """
        Run one monitoring cycle.

        Args:
            market: Latest market snapshot
            positions: Watched positions keyed by user address

        Returns:
            CycleReport with engine output, narrative and executor payloads

        Raises:
            InvalidMarketSnapshotError: malformed market or position, raised
                before the cycle counter or engine history move
        """
        positions = positions or {}
        validate_snapshot(market)
        validate_positions(positions)

        self.cycle_count += 1
        log = logger.bind(cycle=self.cycle_count)

        log.info(
            "cycle_observe",
            price=market.price,
            price_change_24h=market.price_change_24h,
            liquidity_change=market.liquidity_change,
        )

        risk = self.engine.score_risk(market)
        log.info(
            "cycle_analyze",
            overall_risk=risk.overall_risk,
            risk_level=risk.risk_level.name,
            confidence=risk.confidence,
        )

        # The first watched position decides STOP_LOSS vs ALERT on a crash
        primary_user = next(iter(positions), None)
        primary_position = positions.get(primary_user) if primary_user else None
        threat = self.engine.detect_threats(market, primary_position)
        log.info(
            "cycle_decide",
            threat_detected=threat.threat_detected,
            threat_type=threat.threat_type.value,
            severity=threat.severity.name,
            suggested_action=threat.suggested_action.value,
        )

        previous = self.analyst.get_history()
        analysis = self.analyst.analyze_market(market, risk)
        report_text = self.analyst.threat_report(threat, market, previous)

        decision = build_decision_record(threat, self.agent_id, primary_user)
        snapshot_record = build_snapshot_record(risk, self.agent_id)

        protections = []
        for user, position in positions.items():
            order = plan_protection(threat, position, user)
            if order is not None:
                protections.append(order)

        if protections:
            log.warning(
                "protection_triggered",
                action=threat.suggested_action.value,
                users=[p.user_address for p in protections],
            )

        log.info(
            "cycle_complete",
            decision_type=decision.decision_type,
            reasoning_hash=decision.reasoning_hash,
            protections=len(protections),
        )

        return CycleReport(
            cycle=self.cycle_count,
            market=market,
            risk=risk,
            threat=threat,
            analysis=analysis,
            threat_report=report_text,
            decision=decision,
            snapshot_record=snapshot_record,
            protections=protections,
        )

    @staticmethod
    def format_response(report: CycleReport) -> str:
        """
        Format a cycle report as human-readable text.

        Args:
            report: Output of analyze()

        Returns:
            Formatted multi-line summary
        """
        risk = report.risk
        threat = report.threat

        parts = [
            f"**Cycle #{report.cycle} Risk Assessment**",
            "",
            f"**Overall Risk:** {risk.overall_risk}/100 ({risk.risk_level.name})",
            f"**Confidence:** {risk.confidence}%",
            f"**Liquidation / Volatility / Protocol / Contract:** "
            f"{risk.liquidation_risk} / {risk.volatility_risk} / "
            f"{risk.protocol_risk} / {risk.smart_contract_risk}",
            "",
        ]
        parts += [
            f"- {f.name}: {f.score}/100 (w={f.weight}) {f.description}"
            for f in risk.factors
        ]
        parts += ["", f"**Reasoning:** {risk.reasoning.strip()}", ""]

        if threat.threat_detected:
            parts += [
                f"**Threat:** {threat.threat_type.value} ({threat.severity.name}, "
                f"{threat.confidence}% confidence)",
                f"**Suggested Action:** {threat.suggested_action.value}",
                f"**Details:** {threat.reasoning}",
            ]
        else:
            parts.append(f"**Status:** All clear. {threat.reasoning}")

        parts += [
            "",
            f"**Report:** {report.threat_report}",
            f"_Reasoning hash: {report.decision.reasoning_hash}_",
        ]
        if report.protections:
            parts.append(f"_Protections queued: {len(report.protections)}_")

        return "\n".join(parts)
