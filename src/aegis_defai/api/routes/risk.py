"""
Risk Router Module

HTTP surface for the threat engine, consumed by the dashboard and by
external executors. Every route is a thin wrapper: scoring, classification
and hashing all happen in the engine.
"""

from typing import Any

import structlog
from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from web3 import Web3

from aegis_defai.threat_engine.engine.risk_engine import reasoning_hash
from aegis_defai.threat_engine.integration import ThreatAnalysisIntegration
from aegis_defai.threat_engine.types import (
    InvalidMarketSnapshotError,
    MarketSnapshot,
    PositionContext,
    RiskProfile,
)

logger = structlog.get_logger(__name__)


class MarketSnapshotModel(BaseModel):
    price: float
    price_change_24h: float
    volume_24h: float
    volume_change: float
    liquidity: float
    liquidity_change: float
    holders: int
    top_holder_percent: float

    def to_snapshot(self) -> MarketSnapshot:
        return MarketSnapshot(**self.model_dump())


class RiskProfileModel(BaseModel):
    max_slippage_percent: float = 1.0
    stop_loss_percent: float = 10.0
    max_single_action_value: int = 0
    allow_auto_withdraw: bool = False
    allow_auto_swap: bool = False


class PositionModel(BaseModel):
    deposited_amount: int = Field(0)
    risk_profile: RiskProfileModel = Field(default_factory=RiskProfileModel)
    user_address: str | None = None

    def to_position(self) -> PositionContext:
        return PositionContext(
            deposited_amount=self.deposited_amount,
            risk_profile=RiskProfile(**self.risk_profile.model_dump()),
            user_address=self.user_address,
        )


class AssessmentRequest(BaseModel):
    market: MarketSnapshotModel
    position: PositionModel | None = None


class CycleRequest(BaseModel):
    market: MarketSnapshotModel
    positions: list[PositionModel] = Field(default_factory=list)


class ReasoningHashRequest(BaseModel):
    text: str


class RiskRouter:
    """
    Routes for scoring, threat detection and full monitoring cycles.

    Attributes:
        integration (ThreatAnalysisIntegration): Engine + analyst glue
        logger (BoundLogger): Structured logger for the router
    """

    def __init__(self, integration: ThreatAnalysisIntegration) -> None:
        self._router = APIRouter()
        self.integration = integration
        self.logger = logger.bind(router="risk")
        self._setup_routes()

    @property
    def router(self) -> APIRouter:
        return self._router

    def _setup_routes(self) -> None:
        engine = self.integration.engine

        @self._router.post("/score")
        async def score(request: AssessmentRequest) -> dict[str, Any]:  # pyright: ignore [reportUnusedFunction]
            position = request.position.to_position() if request.position else None
            try:
                snapshot = engine.score_risk(request.market.to_snapshot(), position)
            except InvalidMarketSnapshotError as e:
                self.logger.warning("invalid_snapshot", route="score", error=str(e))
                raise HTTPException(status_code=422, detail=str(e)) from e
            return snapshot.to_dict()

        @self._router.post("/threats")
        async def threats(request: AssessmentRequest) -> dict[str, Any]:  # pyright: ignore [reportUnusedFunction]
            position = request.position.to_position() if request.position else None
            try:
                assessment = engine.detect_threats(request.market.to_snapshot(), position)
            except InvalidMarketSnapshotError as e:
                self.logger.warning("invalid_snapshot", route="threats", error=str(e))
                raise HTTPException(status_code=422, detail=str(e)) from e
            return assessment.to_dict()

        @self._router.post("/cycle")
        async def cycle(request: CycleRequest) -> dict[str, Any]:  # pyright: ignore [reportUnusedFunction]
            positions = {}
            for model in request.positions:
                if not model.user_address:
                    raise HTTPException(status_code=422, detail="position.user_address is required")
                if not Web3.is_address(model.user_address):
                    raise HTTPException(
                        status_code=422,
                        detail=f"position.user_address is not a valid address: {model.user_address!r}",
                    )
                positions[model.user_address] = model.to_position()
            try:
                report = self.integration.analyze(request.market.to_snapshot(), positions)
            except InvalidMarketSnapshotError as e:
                self.logger.warning("invalid_snapshot", route="cycle", error=str(e))
                raise HTTPException(status_code=422, detail=str(e)) from e
            return report.to_dict()

        @self._router.get("/history")
        async def history() -> list[dict[str, Any]]:  # pyright: ignore [reportUnusedFunction]
            return [snapshot.to_dict() for snapshot in engine.get_history()]

        @self._router.post("/reasoning-hash")
        async def hash_reasoning(request: ReasoningHashRequest) -> dict[str, str]:  # pyright: ignore [reportUnusedFunction]
            return {"hash": reasoning_hash(request.text)}
