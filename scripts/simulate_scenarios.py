#!/usr/bin/env python3

"""
Run the demo market scenarios through a full monitoring cycle and write the
last cycle payload to settings.latest_update_path for the dashboard.

This script is the ONLY writer of the dashboard JSON.
Every score and decision comes from the deterministic RiskEngine.
"""
import json
import os
from pathlib import Path

import structlog

from aegis_defai.settings import settings
from aegis_defai.threat_engine.integration import ThreatAnalysisIntegration
from aegis_defai.threat_engine.scenarios import DEMO_SCENARIOS
from aegis_defai.threat_engine.types import PositionContext, RiskLevel, RiskProfile

logger = structlog.get_logger(__name__)

DEMO_USER = "0x000000000000000000000000000000000000dEaD"


def atomic_write_json(path: Path, payload: dict) -> None:
    """
    Atomically write JSON so readers never see a partial file.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(path.suffix + ".tmp")
    tmp.write_text(json.dumps(payload, indent=2), encoding="utf-8")
    os.replace(tmp, path)


def main() -> None:
    integration = ThreatAnalysisIntegration()
    positions = {
        DEMO_USER: PositionContext(
            deposited_amount=10**18,
            risk_profile=RiskProfile(allow_auto_withdraw=True),
            user_address=DEMO_USER,
        )
    }

    report = None
    for scenario in DEMO_SCENARIOS:
        logger.info("scenario_start", name=scenario.name, expected=scenario.expected)
        report = integration.analyze(scenario.snapshot, positions)
        print(ThreatAnalysisIntegration.format_response(report))
        print()

    history = integration.engine.get_history()
    logger.info(
        "simulation_complete",
        scenarios=len(DEMO_SCENARIOS),
        assessments=len(history),
        critical=sum(1 for r in history if r.risk_level >= RiskLevel.CRITICAL),
        high_or_worse=sum(1 for r in history if r.risk_level >= RiskLevel.HIGH),
    )

    if report is not None:
        out = Path(settings.latest_update_path)
        atomic_write_json(out, report.to_dict())
        logger.info("latest_update_written", path=str(out))


if __name__ == "__main__":
    main()
