import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from aegis_defai.ai.analyst import RiskAnalyst
from aegis_defai.ai.gemini import provider_from_settings
from aegis_defai.api.routes.risk import RiskRouter
from aegis_defai.settings import settings
from aegis_defai.threat_engine.integration import ThreatAnalysisIntegration

logger = structlog.get_logger(__name__)


def create_app(integration: ThreatAnalysisIntegration | None = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        integration: Pre-built engine/analyst glue; built from settings when None

    Returns:
        FastAPI app with the risk routes mounted under /api/<version>/risk
    """
    app = FastAPI(title="Aegis DeFi Guardian", version=settings.api_version)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    if integration is None:
        integration = ThreatAnalysisIntegration(analyst=RiskAnalyst(provider=provider_from_settings()))

    risk = RiskRouter(integration)
    app.include_router(risk.router, prefix=f"/api/{settings.api_version}/risk", tags=["risk"])

    logger.info("app_created", api_version=settings.api_version)
    return app
