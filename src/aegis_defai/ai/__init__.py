from aegis_defai.ai.analyst import MarketAnalysis, RiskAnalyst, TokenAnalysis
from aegis_defai.ai.base import BaseAIProvider, ModelResponse

__all__ = [
    "BaseAIProvider",
    "MarketAnalysis",
    "ModelResponse",
    "RiskAnalyst",
    "TokenAnalysis",
]
