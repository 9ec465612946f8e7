"""
RepairCheck Configuration

Central settings loaded from environment variables.
"""

import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _csv(value: str) -> frozenset:
    return frozenset(part.strip() for part in value.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Immutable application settings."""

    # --- Versioning ---
    APP_VERSION: str = "1.0.0"
    API_VERSION: str = "1"

    # --- LLM Provider (second-opinion review) ---
    LLM_PROVIDER: str = os.getenv("REPAIRCHECK_LLM_PROVIDER", "gemini")
    GEMINI_API_KEY: str = os.getenv("GEMINI_API_KEY", "")
    GEMINI_MODEL: str = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
    AI_TIMEOUT_SECONDS: float = float(os.getenv("REPAIRCHECK_AI_TIMEOUT", "30"))
    AI_TEMPERATURE: float = float(os.getenv("REPAIRCHECK_AI_TEMPERATURE", "0.7"))

    # --- AI review throttling ---
    AI_RATE_PER_MINUTE: int = int(os.getenv("REPAIRCHECK_AI_RATE_PER_MINUTE", "30"))
    AI_RATE_PER_HOUR: int = int(os.getenv("REPAIRCHECK_AI_RATE_PER_HOUR", "600"))

    # --- Feature flags ---
    FEATURES: frozenset = _csv(
        os.getenv("REPAIRCHECK_FEATURES", "document_review,safety_review")
    )

    # --- Server ---
    HOST: str = os.getenv("REPAIRCHECK_HOST", "0.0.0.0")
    PORT: int = int(os.getenv("REPAIRCHECK_PORT", "8000"))

    # --- CORS ---
    CORS_ORIGINS: str = os.getenv("REPAIRCHECK_CORS_ORIGINS", "*")

    def feature_enabled(self, name: str) -> bool:
        return name in self.FEATURES


settings = Settings()
