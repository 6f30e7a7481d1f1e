"""
Gemini AI Provider Module

This module implements the Gemini provider used by the risk analyst to turn
deterministic engine output into narrative threat analysis. The LLM never
produces scores that drive protective actions; those come from the engine.
"""

import json
from typing import Any, override

import google.generativeai as genai
import structlog
from google.generativeai.types import GenerationConfig

from aegis_defai.ai.base import BaseAIProvider, ModelResponse
from aegis_defai.settings import settings

logger = structlog.get_logger(__name__)


SYSTEM_INSTRUCTION = """
You are Aegis, the risk analysis engine for DeFi positions on BNB Chain.
You analyze market data and produce structured risk assessments.

- Be precise, data-driven, and actionable
- Use specific numbers from the data provided
- Your analysis informs autonomous on-chain protection actions
- Keep responses under 200 words; be direct and technical
- When asked for JSON, return only the JSON object
"""


class GeminiProvider(BaseAIProvider):
    """
    Provider class for Google's Gemini AI service.

    Attributes:
        model (genai.GenerativeModel): Configured Gemini model instance
        logger (BoundLogger): Structured logger for the provider
    """

    def __init__(self, api_key: str, model: str, **kwargs: str) -> None:
        """
        Initialize the Gemini provider with API credentials and model configuration.

        Args:
            api_key (str): Google API key for authentication
            model (str): Gemini model identifier to use
            **kwargs (str): Additional configuration parameters including:
                - system_instruction: Custom system prompt
        """
        genai.configure(api_key=api_key)  # pyright: ignore [reportPrivateImportUsage]
        self.model = genai.GenerativeModel(  # pyright: ignore [reportPrivateImportUsage]
            model_name=model,
            system_instruction=kwargs.get("system_instruction", SYSTEM_INSTRUCTION),
        )
        self.logger = logger.bind(service="gemini")

    @override
    def reset(self) -> None:
        self.logger.debug("reset_gemini")

    @override
    def generate(
        self,
        prompt: str,
        response_mime_type: str | None = None,
        response_schema: Any | None = None,
    ) -> ModelResponse:
        """
        Generate content using the Gemini model.

        Args:
            prompt (str): Input prompt for content generation
            response_mime_type (str | None): Expected MIME type for the response
            response_schema (Any | None): Schema defining the response structure

        Returns:
            ModelResponse: Generated content with candidate metadata
        """
        if settings.simulate_ai:
            self.logger.debug("simulate_ai_generate", prompt=prompt[:80])
            if response_mime_type == "application/json":
                text = json.dumps({"simulated": True})
            else:
                text = "Simulated response: no analysis was generated."
            return ModelResponse(
                text=text,
                raw_response=None,
                metadata={"simulated": True},
            )

        response = self.model.generate_content(
            prompt,
            generation_config=GenerationConfig(
                temperature=0.3,
                max_output_tokens=500,
                response_mime_type=response_mime_type,
                response_schema=response_schema,
            ),
        )

        return ModelResponse(
            text=response.text,
            raw_response=response,
            metadata={
                "candidate_count": len(response.candidates),
                "prompt_feedback": response.prompt_feedback,
            },
        )


def provider_from_settings() -> GeminiProvider | None:
    """Gemini provider when an API key is configured, else None (heuristic mode)"""
    if not settings.gemini_api_key and not settings.simulate_ai:
        logger.info("ai_provider_disabled", reason="no gemini_api_key")
        return None

    logger.info("ai_provider_enabled", model=settings.gemini_model)
    return GeminiProvider(api_key=settings.gemini_api_key, model=settings.gemini_model)
