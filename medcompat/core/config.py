from typing import Literal
from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict

from medcompat.core.exceptions import ConfigurationError


class ScoringPolicy(BaseModel):
    """
    Numeric knobs of the compatibility score.
    Immutable so a single policy can be shared by every engine instance.
    """
    base_score: int = 85
    safe_threshold: int = 85
    caution_threshold: int = 70
    min_score: int = 45
    max_score: int = 99
    unknown_medicine_score: int = 50

    model_config = ConfigDict(frozen=True)

    def check(self) -> "ScoringPolicy":
        if self.safe_threshold <= self.caution_threshold:
            raise ConfigurationError(
                "safe threshold must be above caution threshold",
                context={"safe_threshold": self.safe_threshold, "caution_threshold": self.caution_threshold},
            )
        if not 0 <= self.min_score <= self.max_score <= 100:
            raise ConfigurationError(
                "score bounds must satisfy 0 <= min <= max <= 100",
                context={"min_score": self.min_score, "max_score": self.max_score},
            )
        return self


class Settings(BaseSettings):
    # App Config
    PROJECT_NAME: str = "MedCompat"
    PROJECT_VERSION: str = "0.1.0"
    ENVIRONMENT: Literal["development", "production", "testing"] = "development"
    DEBUG: bool = False
    API_V1_STR: str = "/v1"

    # Scoring policy
    BASE_SCORE: int = 85
    SAFE_THRESHOLD: int = 85
    CAUTION_THRESHOLD: int = 70
    MIN_SCORE: int = 45
    MAX_SCORE: int = 99
    UNKNOWN_MEDICINE_SCORE: int = 50

    @property
    def SCORING_POLICY(self) -> ScoringPolicy:
        return ScoringPolicy(
            base_score=self.BASE_SCORE,
            safe_threshold=self.SAFE_THRESHOLD,
            caution_threshold=self.CAUTION_THRESHOLD,
            min_score=self.MIN_SCORE,
            max_score=self.MAX_SCORE,
            unknown_medicine_score=self.UNKNOWN_MEDICINE_SCORE,
        )

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

settings = Settings()
