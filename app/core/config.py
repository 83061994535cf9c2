from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # -------------------------
    # App core settings
    # -------------------------
    APP_NAME: str = "Loan Intake Advisor"
    ENV: str = "dev"

    # -------------------------
    # Database (persistence boundary)
    # -------------------------
    DATABASE_URL: str = "sqlite:///./advisor.db"

    # -------------------------
    # Language model providers
    # -------------------------
    LLM_PROVIDER: str = "openrouter"  # "openrouter" | "gemini"
    OPENROUTER_API_KEY: Optional[str] = None
    OPENROUTER_MODELS: List[str] = [
        "openai/gpt-4o-mini",
        "mistralai/mistral-7b-instruct:free",
    ]
    GOOGLE_API_KEY: Optional[str] = None
    GOOGLE_MODEL: str = "gemini-1.5-flash"

    # -------------------------
    # Suspension point timeouts (seconds)
    # -------------------------
    EXTRACTION_TIMEOUT_SECONDS: float = 20.0
    GENERATION_TIMEOUT_SECONDS: float = 20.0
    PERSISTENCE_TIMEOUT_SECONDS: float = 10.0

    # -------------------------
    # Conversation tuning
    # -------------------------
    CONFIDENCE_THRESHOLD: float = 0.7
    HISTORY_WINDOW: int = 10
    SESSION_TTL_MINUTES: int = 120

    # -------------------------
    # Pydantic v2 config
    # -------------------------
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="forbid"
    )


# Singleton
settings = Settings()
