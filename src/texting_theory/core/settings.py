"""Application settings and configuration.

This module defines all configuration options for the Texting Theory consensus
service. Settings are loaded from environment variables with sensible defaults.
"""

from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    Vote thresholds are independently tunable but must stay ordered:
    ``rating_flair_min_votes <= rating_visible_min_votes <= owner_flair_min_votes``.
    The ordering is checked when the settings object is built so a bad deployment
    fails at startup instead of producing inconsistent flair.
    """

    # Application metadata
    app_name: str = Field(default="Texting Theory", alias="APP_NAME")
    app_version: str = Field(default="0.1.0", alias="APP_VERSION")
    debug: bool = Field(default=False, alias="DEBUG")

    # Security and authentication
    secret_key: str = Field(default="development-secret", alias="SECRET_KEY")
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    # Database configuration (posts and targets)
    database_url: str = Field(default="sqlite:///./texting_theory.db", alias="DATABASE_URL")
    sql_debug: bool = Field(default=False, alias="SQL_DEBUG")

    # Key-value backend for votes, markers and caches
    kv_backend: Literal["redis", "memory"] = Field(default="redis", alias="KV_BACKEND")
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Host platform integration
    platform_base_url: str = Field(default="http://localhost:8080", alias="PLATFORM_BASE_URL")
    platform_api_token: str | None = Field(default=None, alias="PLATFORM_API_TOKEN")
    platform_timeout_seconds: float = Field(default=5.0, alias="PLATFORM_TIMEOUT_SECONDS")
    community_name: str = Field(default="TextingTheory", alias="COMMUNITY_NAME")

    # Badge consensus
    badge_consensus_min_votes: int = Field(default=10, alias="BADGE_CONSENSUS_MIN_VOTES")
    reveal_unresolved_after_close: bool = Field(
        default=True,
        alias="REVEAL_UNRESOLVED_AFTER_CLOSE",
    )

    # Rating (Elo) consensus and display thresholds
    rating_min: int = Field(default=100, alias="RATING_MIN")
    rating_max: int = Field(default=3000, alias="RATING_MAX")
    rating_flair_min_votes: int = Field(default=1, alias="RATING_FLAIR_MIN_VOTES")
    rating_visible_min_votes: int = Field(default=10, alias="RATING_VISIBLE_MIN_VOTES")
    owner_flair_min_votes: int = Field(default=100, alias="OWNER_FLAIR_MIN_VOTES")

    # Voting window
    voting_window_seconds: int = Field(default=24 * 60 * 60, alias="VOTING_WINDOW_SECONDS")

    # Voter eligibility
    min_voter_account_age_days: int = Field(default=7, alias="MIN_VOTER_ACCOUNT_AGE_DAYS")
    min_voter_karma: int = Field(default=10, alias="MIN_VOTER_KARMA")

    # Cache lifetimes
    consensus_cache_ttl_seconds: float = Field(default=10.0, alias="CONSENSUS_CACHE_TTL_SECONDS")
    moderator_cache_ttl_seconds: float = Field(default=300.0, alias="MODERATOR_CACHE_TTL_SECONDS")

    # CORS configuration for web frontend access
    cors_origins: list[str] = Field(default=["*"], alias="CORS_ORIGINS")
    cors_allow_credentials: bool = Field(default=True, alias="CORS_ALLOW_CREDENTIALS")
    cors_allow_methods: list[str] = Field(
        default=["GET", "POST", "PUT", "OPTIONS"],
        alias="CORS_ALLOW_METHODS",
    )
    cors_allow_headers: list[str] = Field(default=["*"], alias="CORS_ALLOW_HEADERS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
        populate_by_name=True,
    )

    @model_validator(mode="after")
    def _check_thresholds(self) -> "Settings":
        if self.badge_consensus_min_votes < 1:
            raise ValueError("BADGE_CONSENSUS_MIN_VOTES must be at least 1")
        if self.rating_flair_min_votes < 1:
            raise ValueError("RATING_FLAIR_MIN_VOTES must be at least 1")
        if self.rating_flair_min_votes > self.rating_visible_min_votes:
            raise ValueError(
                "RATING_FLAIR_MIN_VOTES must not exceed RATING_VISIBLE_MIN_VOTES",
            )
        if self.rating_visible_min_votes > self.owner_flair_min_votes:
            raise ValueError(
                "RATING_VISIBLE_MIN_VOTES must not exceed OWNER_FLAIR_MIN_VOTES",
            )
        if self.rating_min >= self.rating_max:
            raise ValueError("RATING_MIN must be lower than RATING_MAX")
        if self.voting_window_seconds <= 0:
            raise ValueError("VOTING_WINDOW_SECONDS must be positive")
        if self.consensus_cache_ttl_seconds <= 0:
            raise ValueError("CONSENSUS_CACHE_TTL_SECONDS must be positive")
        return self

    @property
    def voting_window_ms(self) -> int:
        """Return the voting window length in milliseconds."""
        return self.voting_window_seconds * 1000

    @property
    def rating_thresholds(self) -> dict[str, int]:
        """Return rating display thresholds as a convenience dictionary."""
        return {
            "flair": self.rating_flair_min_votes,
            "visible": self.rating_visible_min_votes,
            "owner": self.owner_flair_min_votes,
        }


settings = Settings()
