"""
Centralized configuration for GEO Analyzer
All environment variables and settings are defined here
"""

from typing import List, Optional
from pydantic_settings import BaseSettings
from pydantic import AliasChoices, Field


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Provides centralized configuration with validation and defaults.
    """

    # ======================
    # AI Provider Configuration
    # ======================
    ANTHROPIC_API_KEY: str = Field(default="", description="Anthropic API key (primary provider)")
    ANTHROPIC_MODEL: str = Field(
        default="claude-sonnet-4-20250514",
        description="Claude model used by the primary provider"
    )
    OPENAI_API_KEY: str = Field(default="", description="OpenAI API key (secondary provider)")
    OPENAI_MODEL: str = Field(
        default="gpt-4o-mini",
        description="OpenAI model used by the secondary provider"
    )
    PERPLEXITY_API_KEY: str = Field(
        default="",
        description="Perplexity API key used to sample AI assistant answers"
    )
    PERPLEXITY_MODEL: str = Field(default="sonar", description="Perplexity model name")
    PERPLEXITY_BASE_URL: str = Field(default="https://api.perplexity.ai")
    MAX_TOKENS: int = Field(default=4000, description="Max tokens for LLM responses")
    LLM_REQUEST_TIMEOUT: float = Field(
        default=30.0,
        description="Per-request timeout for LLM calls in seconds"
    )

    # ======================
    # PageSpeed Configuration
    # ======================
    PAGESPEED_API_KEY: str = Field(
        default="",
        validation_alias=AliasChoices(
            "PAGESPEED_API_KEY", "PSI_API_KEY", "GOOGLE_PAGESPEED_API_KEY"
        ),
        description="Google PageSpeed Insights API key"
    )
    PAGESPEED_TIMEOUT: float = Field(default=60.0, description="PageSpeed request timeout")

    # ======================
    # Redis Configuration
    # ======================
    REDIS_URL: str = Field(
        default="redis://localhost:6379/0",
        description="Redis connection URL"
    )

    # ======================
    # Celery Configuration
    # ======================
    CELERY_BROKER_URL: Optional[str] = Field(
        default=None,
        description="Celery broker URL (defaults to REDIS_URL if not set)"
    )
    CELERY_RESULT_BACKEND: str = Field(
        default="redis://localhost:6379/1",
        description="Celery result backend URL"
    )
    CELERY_RESULT_EXPIRES: int = Field(
        default=86400,  # 24 hours
        description="Time in seconds before task results expire"
    )

    # ======================
    # Task Configuration
    # ======================
    TASK_TIME_LIMIT: int = Field(
        default=900,  # 15 minutes
        description="Hard time limit for tasks in seconds"
    )
    TASK_SOFT_TIME_LIMIT: int = Field(
        default=840,
        description="Soft time limit for tasks in seconds"
    )

    # ======================
    # Worker Configuration
    # ======================
    WORKER_PREFETCH_MULTIPLIER: int = Field(
        default=1,
        description="Tasks to prefetch per worker"
    )
    WORKER_MAX_TASKS_PER_CHILD: int = Field(
        default=10,
        description="Max tasks before worker restart"
    )

    # ======================
    # Scraper Configuration
    # ======================
    SCRAPE_MAX_RETRIES: int = Field(default=3, description="Scrape attempts per job")
    SCRAPE_RETRY_DELAY: float = Field(default=2.0, description="Seconds between scrape attempts")
    SCRAPE_TIMEOUT: float = Field(default=45.0, description="Overall timeout per scrape attempt")
    SCRAPE_NAVIGATION_TIMEOUT: float = Field(default=30.0, description="page.goto timeout")
    SCRAPE_NETWORK_IDLE_TIMEOUT: float = Field(
        default=10.0,
        description="Best-effort wait for network idle after navigation"
    )
    SCRAPE_AUX_TIMEOUT: float = Field(default=5.0, description="robots.txt / llms.txt timeout")
    MIN_CONTENT_LENGTH: int = Field(
        default=100,
        description="Minimum body text length for a usable scrape"
    )

    # ======================
    # Browser Configuration
    # ======================
    BROWSER_EXECUTABLE_PATH: Optional[str] = Field(
        default=None,
        description="Chromium executable (falls back to the Playwright bundled build)"
    )
    BROWSER_LAUNCH_TIMEOUT: int = Field(
        default=20,
        description="Timeout for launching browser in seconds"
    )
    VIEWPORT_WIDTH: int = Field(
        default=1920,
        description="Browser viewport width"
    )
    VIEWPORT_HEIGHT: int = Field(
        default=1080,
        description="Browser viewport height"
    )

    # ======================
    # Job Configuration
    # ======================
    DEDUP_WINDOW_HOURS: int = Field(
        default=24,
        description="Window in which a job for the same host is reused"
    )
    JOB_TTL: int = Field(
        default=2592000,  # 30 days
        description="Time-to-live for job, report and query keys"
    )
    EVENT_LOG_TTL: int = Field(
        default=604800,  # 7 days
        description="Time-to-live for the standalone job event log"
    )
    HEARTBEAT_INTERVAL: float = Field(
        default=10.0,
        description="Seconds between orchestrator heartbeat log lines"
    )

    # ======================
    # API Configuration
    # ======================
    CORS_ORIGINS: List[str] = Field(default=["*"], description="Allowed CORS origins")

    # ======================
    # Logging Configuration
    # ======================
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )

    @property
    def celery_broker(self) -> str:
        """Get Celery broker URL, defaulting to REDIS_URL if not set"""
        return self.CELERY_BROKER_URL or self.REDIS_URL

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"  # Allow extra env vars in .env file
        populate_by_name = True


# Global settings instance
settings = Settings()


# ======================
# Convenience Functions
# ======================

def get_redis_url() -> str:
    """Get Redis connection URL"""
    return settings.REDIS_URL


def get_anthropic_api_key() -> str:
    """Get Anthropic API key"""
    return settings.ANTHROPIC_API_KEY


def get_openai_api_key() -> str:
    """Get OpenAI API key"""
    return settings.OPENAI_API_KEY


def get_pagespeed_api_key() -> str:
    """Get PageSpeed Insights API key"""
    return settings.PAGESPEED_API_KEY
