"""
Risk analyst - narrative layer on top of the deterministic engine.

This is where the LLM is ALLOWED to operate, but ONLY for:
1. Writing market commentary from engine numbers
2. Summarising threats for humans

Without a provider (or when the provider fails) every method falls back to
a deterministic heuristic, so the monitoring loop never depends on the LLM.
"""
import json
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

import structlog

from aegis_defai.ai.base import BaseAIProvider, ModelResponse
from aegis_defai.settings import settings
from aegis_defai.threat_engine.formatting import shortest_number, signed_fixed, to_fixed
from aegis_defai.threat_engine.types import MarketSnapshot, RiskSnapshot, ThreatAssessment

logger = structlog.get_logger(__name__)


class MarketSentiment(str, Enum):
    BULLISH = "bullish"
    BEARISH = "bearish"
    NEUTRAL = "neutral"
    EXTREME_FEAR = "extreme_fear"
    EXTREME_GREED = "extreme_greed"


@dataclass
class MarketAnalysis:
    reasoning: str
    risk_score: int
    confidence: int
    threats: list[str]
    suggested_actions: list[str]
    market_sentiment: MarketSentiment
    key_insights: list[str]
    source: str = "heuristic"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> dict[str, Any]:
        return {
            "reasoning": self.reasoning,
            "risk_score": self.risk_score,
            "confidence": self.confidence,
            "threats": list(self.threats),
            "suggested_actions": list(self.suggested_actions),
            "market_sentiment": self.market_sentiment.value,
            "key_insights": list(self.key_insights),
            "source": self.source,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass
class TokenAnalysis:
    symbol: str
    address: str
    risk_score: int
    analysis: str
    flags: list[str]
    recommendation: str


def coerce_json(text: str) -> dict[str, Any]:
    """
    Accepts:
      - raw JSON
      - ```json ... ``` fenced JSON
      - extra text around a JSON object (best-effort extraction)
    """
    t = text.strip()

    m = re.search(r"```(?:json)?\s*(\{.*?\})\s*```", t, flags=re.S)
    if m:
        t = m.group(1).strip()

    if not (t.startswith("{") and t.endswith("}")):
        m2 = re.search(r"(\{.*\})", t, flags=re.S)
        if m2:
            t = m2.group(1).strip()

    return json.loads(t)


def _clamp_score(value: Any, default: int) -> int:
    try:
        number = float(value) if value else default
    except (TypeError, ValueError):
        number = default
    return int(min(100, max(0, number)))


class RiskAnalyst:
    """
    Narrative analysis of engine output.

    Attributes:
        provider: Optional LLM provider; None means heuristic-only
        symbol: Asset symbol used in narratives
    """

    def __init__(self, provider: BaseAIProvider | None = None, symbol: str | None = None):
        self.provider = provider
        self.symbol = symbol or settings.asset_symbol
        self._history: list[MarketAnalysis] = []
        self.logger = logger.bind(service="risk_analyst")

    @property
    def enabled(self) -> bool:
        return self.provider is not None

    def get_history(self) -> list[MarketAnalysis]:
        return list(self._history)

    def latest(self) -> MarketAnalysis | None:
        return self._history[-1] if self._history else None

    def _generate(self, prompt: str, response_mime_type: str | None = None) -> ModelResponse | None:
        """Provider call; None when the provider only simulated a response"""
        response = self.provider.generate(prompt=prompt, response_mime_type=response_mime_type)
        if response.metadata.get("simulated"):
            self.logger.debug("simulated_response_ignored")
            return None
        return response

    # ─── Market analysis ───────────────────────────────────────

    def analyze_market(self, market: MarketSnapshot, risk: RiskSnapshot) -> MarketAnalysis:
        """
        Analyze market conditions for one cycle.

        Args:
            market: Market snapshot the engine scored
            risk: Engine output for that snapshot

        Returns:
            MarketAnalysis (LLM-written when available, heuristic otherwise)
        """
        analysis = None
        if self.provider is not None:
            try:
                analysis = self._llm_market_analysis(market, risk)
            except Exception as e:
                self.logger.warning("llm_market_analysis_failed", error=str(e))

        if analysis is None:
            analysis = self.heuristic_market_analysis(market, risk)

        self._history.append(analysis)
        return analysis

    def _llm_market_analysis(
        self, market: MarketSnapshot, risk: RiskSnapshot
    ) -> MarketAnalysis | None:
        prompt = f"""
Analyze this {self.symbol} market snapshot:

PRICE DATA:
- Price: ${to_fixed(market.price, 2)}
- 24h Change: {signed_fixed(market.price_change_24h, 2)}%
- 24h Volume: ${to_fixed(market.volume_24h / 1e6, 1)}M
- Volume Change: {signed_fixed(market.volume_change, 1)}%

LIQUIDITY:
- Total Liquidity: ${to_fixed(market.liquidity / 1e9, 2)}B
- Liquidity Change: {signed_fixed(market.liquidity_change, 2)}%

ON-CHAIN:
- Holder Count: {market.holders:,}
- Top Holder Concentration: {to_fixed(market.top_holder_percent, 1)}%

RISK ENGINE SCORES:
- Overall Risk: {risk.overall_risk}/100
- Liquidation Risk: {risk.liquidation_risk}/100
- Volatility Risk: {risk.volatility_risk}/100
- Protocol Risk: {risk.protocol_risk}/100

Respond in this exact JSON format:
{{
  "reasoning": "Your detailed analysis paragraph",
  "riskScore": <0-100>,
  "confidence": <0-100>,
  "threats": ["threat1", "threat2"],
  "suggestedActions": ["action1", "action2"],
  "marketSentiment": "bullish|bearish|neutral|extreme_fear|extreme_greed",
  "keyInsights": ["insight1", "insight2", "insight3"]
}}
"""
        response = self._generate(prompt, response_mime_type="application/json")
        if response is None:
            return None
        parsed = coerce_json(response.text)

        try:
            sentiment = MarketSentiment(parsed.get("marketSentiment", "neutral"))
        except ValueError:
            sentiment = MarketSentiment.NEUTRAL

        self.logger.debug("llm_market_analysis", metadata=response.metadata)
        return MarketAnalysis(
            reasoning=parsed.get("reasoning") or "Analysis unavailable",
            risk_score=_clamp_score(parsed.get("riskScore"), risk.overall_risk),
            confidence=_clamp_score(parsed.get("confidence"), 80),
            threats=list(parsed.get("threats") or []),
            suggested_actions=list(parsed.get("suggestedActions") or []),
            market_sentiment=sentiment,
            key_insights=list(parsed.get("keyInsights") or []),
            source="llm",
        )

    def heuristic_market_analysis(self, market: MarketSnapshot, risk: RiskSnapshot) -> MarketAnalysis:
        change = market.price_change_24h
        if change < -15:
            sentiment = MarketSentiment.EXTREME_FEAR
        elif change < -5:
            sentiment = MarketSentiment.BEARISH
        elif change > 10:
            sentiment = MarketSentiment.EXTREME_GREED
        elif change > 3:
            sentiment = MarketSentiment.BULLISH
        else:
            sentiment = MarketSentiment.NEUTRAL

        threats: list[str] = []
        actions: list[str] = []
        insights: list[str] = []

        if change < -10:
            threats.append("significant_price_decline")
        if market.liquidity_change < -20:
            threats.append("liquidity_drain")
        if market.volume_change > 300:
            threats.append("abnormal_volume")
        if market.top_holder_percent > 40:
            threats.append("whale_concentration")

        price = to_fixed(market.price, 2)
        if not threats:
            actions.append("continue_monitoring")
            insights.append(
                f"{self.symbol} stable at ${price} with {signed_fixed(change, 2)}% 24h change"
            )
        else:
            if "significant_price_decline" in threats:
                actions.append("evaluate_stop_loss")
            if "liquidity_drain" in threats:
                actions.append("reduce_exposure")
            actions.append("increase_monitoring_frequency")

        direction = "up" if market.volume_change > 0 else "down"
        liquidity_b = to_fixed(market.liquidity / 1e9, 2)
        insights.append(f"Volume {direction} {to_fixed(abs(market.volume_change), 0)}% from baseline")
        insights.append(f"Liquidity: ${liquidity_b}B ({signed_fixed(market.liquidity_change, 1)}%)")
        insights.append(f"Risk engine composite: {risk.overall_risk}/100")

        reasoning = (
            f"{self.symbol} trading at ${price} with {signed_fixed(change, 2)}% 24h movement. "
            f"Volume at ${to_fixed(market.volume_24h / 1e6, 0)}M "
            f"({signed_fixed(market.volume_change, 0)}% change). "
            f"Ecosystem liquidity at ${liquidity_b}B. "
            f"Risk engine scores: Liquidation {risk.liquidation_risk}/100, "
            f"Volatility {risk.volatility_risk}/100, Protocol {risk.protocol_risk}/100. "
        )
        if threats:
            reasoning += (
                f"Identified concerns: {', '.join(threats)}. "
                f"Recommending {', '.join(actions)}."
            )
        else:
            reasoning += "No significant threats detected. All metrics within normal parameters."

        return MarketAnalysis(
            reasoning=reasoning,
            risk_score=risk.overall_risk,
            confidence=risk.confidence,
            threats=threats,
            suggested_actions=actions,
            market_sentiment=sentiment,
            key_insights=insights,
        )

    # ─── Token analysis ────────────────────────────────────────

    def analyze_token(
        self,
        symbol: str,
        address: str,
        price_change: float,
        volume: float,
        liquidity: float,
        holder_concentration: float,
    ) -> TokenAnalysis:
        if self.provider is not None:
            prompt = f"""
Analyze this BSC token for DeFi risks:

Token: {symbol} ({address})
Price Change 24h: {signed_fixed(price_change, 2)}%
24h Volume: ${to_fixed(volume / 1e6, 2)}M
Liquidity: ${to_fixed(liquidity / 1e6, 2)}M
Top Holder %: {to_fixed(holder_concentration, 1)}%

Identify red flags: rug pull risk, honeypot patterns, wash trading, low liquidity risks, whale manipulation.

Respond in JSON:
{{
  "riskScore": <0-100>,
  "analysis": "Detailed analysis paragraph",
  "flags": ["flag1", "flag2"],
  "recommendation": "SAFE|CAUTION|AVOID|CRITICAL_RISK"
}}
"""
            try:
                response = self._generate(prompt, response_mime_type="application/json")
                if response is not None:
                    parsed = coerce_json(response.text)
                    return TokenAnalysis(
                        symbol=symbol,
                        address=address,
                        risk_score=_clamp_score(parsed.get("riskScore"), 50),
                        analysis=parsed.get("analysis") or "Analysis unavailable",
                        flags=list(parsed.get("flags") or []),
                        recommendation=parsed.get("recommendation") or "CAUTION",
                    )
            except Exception as e:
                self.logger.warning("llm_token_analysis_failed", symbol=symbol, error=str(e))

        return self.heuristic_token_analysis(
            symbol, address, price_change, volume, liquidity, holder_concentration
        )

    @staticmethod
    def heuristic_token_analysis(
        symbol: str,
        address: str,
        price_change: float,
        volume: float,
        liquidity: float,
        holder_concentration: float,
    ) -> TokenAnalysis:
        flags: list[str] = []
        risk_score = 20

        if abs(price_change) > 30:
            flags.append("extreme_volatility")
            risk_score += 25
        if liquidity < 50_000:
            flags.append("low_liquidity")
            risk_score += 30
        if holder_concentration > 50:
            flags.append("whale_dominated")
            risk_score += 20
        if volume < 10_000:
            flags.append("low_volume")
            risk_score += 15

        if risk_score > 70:
            recommendation = "CRITICAL_RISK"
        elif risk_score > 50:
            recommendation = "AVOID"
        elif risk_score > 30:
            recommendation = "CAUTION"
        else:
            recommendation = "SAFE"

        analysis = (
            f"{symbol} shows {len(flags)} risk flags. "
            f"Price change: {signed_fixed(price_change, 2)}%. "
            f"Liquidity: ${to_fixed(liquidity / 1e6, 2)}M. "
            f"Top holder: {to_fixed(holder_concentration, 1)}%."
        )
        return TokenAnalysis(
            symbol=symbol,
            address=address,
            risk_score=min(100, risk_score),
            analysis=analysis,
            flags=flags,
            recommendation=recommendation,
        )

    # ─── Threat report ─────────────────────────────────────────

    def threat_report(
        self,
        threat: ThreatAssessment,
        market: MarketSnapshot,
        previous: list[MarketAnalysis] | None = None,
    ) -> str:
        """2-3 sentence executive summary of the current threat"""
        if self.provider is not None:
            trend = "\n".join(
                f"  T-{3 - i}: Risk={a.risk_score}, Sentiment={a.market_sentiment.value}"
                for i, a in enumerate((previous or [])[-3:])
            )
            prompt = f"""
Generate a concise threat report for this DeFi position:

CURRENT THREAT:
- Detected: {str(threat.threat_detected).lower()}
- Type: {threat.threat_type.value}
- Severity: {threat.severity.name}
- Confidence: {threat.confidence}%
- Suggested Action: {threat.suggested_action.value}
- Est. Impact: {shortest_number(threat.estimated_impact)}%

MARKET STATE:
- {self.symbol}: ${to_fixed(market.price, 2)} ({signed_fixed(market.price_change_24h, 2)}%)
- Volume: ${to_fixed(market.volume_24h / 1e6, 1)}M
- Liquidity: ${to_fixed(market.liquidity / 1e9, 2)}B

TREND (last 3 analyses):
{trend or "  No history available"}

Write a 2-3 sentence executive summary of the threat and recommended action. Be specific with data.
"""
            try:
                response = self._generate(prompt)
                if response is not None:
                    return response.text
            except Exception as e:
                self.logger.warning("llm_threat_report_failed", error=str(e))

        return self.heuristic_threat_report(threat, market)

    def heuristic_threat_report(self, threat: ThreatAssessment, market: MarketSnapshot) -> str:
        price = to_fixed(market.price, 2)
        if not threat.threat_detected:
            return (
                f"All Clear: {self.symbol} at ${price} with no significant threats. "
                "All risk vectors within normal parameters. Continuing automated monitoring."
            )

        return (
            f"{threat.severity.name} ALERT: {threat.threat_type.value} detected with "
            f"{threat.confidence}% confidence. "
            f"{self.symbol} at ${price} ({signed_fixed(market.price_change_24h, 2)}%). "
            f"Estimated impact: {shortest_number(threat.estimated_impact)}%. "
            f"Recommended action: {threat.suggested_action.value}. "
            f"{threat.reasoning}"
        )
