"""
Application configuration.
All sensitive values loaded from environment variables.
"""
from typing import List, Optional
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    # AI Provider Configuration
    # Supported providers: anthropic, openai, openrouter
    AI_PROVIDER: str = "anthropic"
    AI_API_KEY: str = ""
    AI_BASE_URL: Optional[str] = None  # Custom base URL if needed
    AI_MODEL: Optional[str] = None  # Custom model name
    AI_MAX_TOKENS: int = 8192
    AI_REQUEST_TIMEOUT: float = 120.0

    # Provider-specific API keys (optional, falls back to AI_API_KEY)
    ANTHROPIC_API_KEY: Optional[str] = None
    OPENAI_API_KEY: Optional[str] = None
    OPENROUTER_API_KEY: Optional[str] = None

    # Agent loop
    AGENT_MAX_ROUNDS: int = 10
    GENERATION_SESSION_TTL_MINUTES: int = 60

    # Model catalog cache (seconds)
    MODEL_CATALOG_TTL_SECONDS: int = 300

    # Weather tool
    WEATHER_API_URL: str = "https://api.open-meteo.com/v1/forecast"
    WEATHER_REQUEST_TIMEOUT: float = 15.0

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # CORS
    CORS_ORIGINS: List[str] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"  # json or console

    # AI Debug Logging - enables detailed message content logging
    # WARNING: Set to True only for debugging, logs may contain sensitive data
    AI_DEBUG_LOG: bool = False
    # Maximum length of message content to log (0 = unlimited)
    AI_DEBUG_LOG_MAX_LENGTH: int = 2000

    # Agent Decision Logging - traces every round of the agent loop
    AGENT_DECISION_LOG: bool = False

    def get_api_key(self, provider: str) -> str:
        """Get API key for a specific provider."""
        provider_keys = {
            "anthropic": self.ANTHROPIC_API_KEY,
            "openai": self.OPENAI_API_KEY,
            "openrouter": self.OPENROUTER_API_KEY,
        }
        # Return provider-specific key if set, otherwise fall back to AI_API_KEY
        return provider_keys.get(provider.lower()) or self.AI_API_KEY

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
