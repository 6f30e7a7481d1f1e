import structlog
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger(__name__)

class Settings(BaseSettings):
    # Flags
    simulate_ai: bool = False

    # CORS
    cors_origins: list[str] = ["*"]

    # Gemini
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-flash"

    # API
    api_version: str = "v1"

    # Agent
    agent_id: int = 0
    asset_symbol: str = "BNB"

    # Threat engine
    history_limit: int | None = None
    parameters_path: str = ""

    # Dashboard JSON
    latest_update_path: str = "shared/latest_update.json"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

def _redact_settings(d: dict) -> dict:
    redacted = dict(d)
    for k in ("gemini_api_key",):
        if k in redacted and redacted[k]:
            redacted[k] = "***REDACTED***"
    return redacted

settings = Settings()
logger.debug("settings", settings=_redact_settings(settings.model_dump()))
