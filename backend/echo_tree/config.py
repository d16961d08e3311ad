"""Application settings and configuration helpers."""
from functools import lru_cache
import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()

DEFAULT_HARMFUL_TERMS = ("hate", "kill you", "violence", "abuse", "threat")
DEFAULT_CRISIS_TERMS = (
    "suicide",
    "kill myself",
    "end my life",
    "want to die",
    "self-harm",
    "cutting",
    "overdose",
)


def _split_terms(raw: str | None, default: tuple[str, ...]) -> list[str]:
    if raw is None:
        return list(default)
    return [term.strip().lower() for term in raw.split(",") if term.strip()]


class Settings(BaseModel):
    """Runtime configuration loaded from environment variables."""

    database_url: str = Field(
        default="sqlite+aiosqlite:///./echo_tree.db", alias="DATABASE_URL"
    )
    secret_key: str = Field(default="change-me", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")
    session_expires_days: int = Field(default=7, alias="SESSION_EXPIRES_DAYS")

    max_failed_logins: int = Field(default=5, alias="MAX_FAILED_LOGINS")
    lockout_minutes: int = Field(default=15, alias="LOCKOUT_MINUTES")

    quiz_pass_score: int = Field(default=80, alias="QUIZ_PASS_SCORE")
    quiz_retake_hours: int = Field(default=24, alias="QUIZ_RETAKE_HOURS")

    penalty_alert_threshold: int = Field(default=5, alias="PENALTY_ALERT_THRESHOLD")
    penalty_removal_threshold: int = Field(
        default=10, alias="PENALTY_REMOVAL_THRESHOLD"
    )

    harmful_terms: list[str] = Field(default_factory=lambda: list(DEFAULT_HARMFUL_TERMS))
    crisis_terms: list[str] = Field(default_factory=lambda: list(DEFAULT_CRISIS_TERMS))

    reply_max_length: int = Field(default=2000, alias="REPLY_MAX_LENGTH")
    message_max_length: int = Field(default=5000, alias="MESSAGE_MAX_LENGTH")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance."""

    overrides = {
        field.alias: os.environ[field.alias]
        for field in Settings.model_fields.values()
        if field.alias and field.alias in os.environ
    }
    return Settings(
        **overrides,
        harmful_terms=_split_terms(os.getenv("HARMFUL_TERMS"), DEFAULT_HARMFUL_TERMS),
        crisis_terms=_split_terms(os.getenv("CRISIS_TERMS"), DEFAULT_CRISIS_TERMS),
    )
