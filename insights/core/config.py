"""
Application configuration settings.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Self


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "Prep Insights API"
    APP_VERSION: str = "0.1.0"
    ENV: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # API
    API_V1_PREFIX: str = "/v1"

    # CORS
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 8000

    # Insights
    # Number of numbered practice tests offered per product
    PRACTICE_TEST_COUNT: int = Field(default=5, ge=1, le=20)
    # Size of the strengths / weaknesses lists on the diagnostic result
    INSIGHTS_TOP_N_SUB_SKILLS: int = Field(default=5, ge=1)

    # Drills
    # Accuracy (percent) at a difficulty level that unlocks the next level
    DRILL_MASTERY_THRESHOLD: int = Field(default=80, ge=0, le=100)
    DRILL_RECENT_ACTIVITY_LIMIT: int = Field(default=10, ge=1)

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=True,
        extra="ignore",
    )

    @model_validator(mode="after")
    def validate_environment(self) -> Self:
        """Validate cross-field settings."""
        if self.ENV not in ("development", "test", "staging", "production"):
            raise ValueError(
                f"ENV must be one of development, test, staging, production "
                f"(got {self.ENV!r})"
            )
        if self.ENV == "production" and self.DEBUG:
            raise ValueError("DEBUG must be disabled when ENV is production")
        if not self.API_V1_PREFIX.startswith("/"):
            raise ValueError("API_V1_PREFIX must start with '/'")
        return self


settings = Settings()
