from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App
    app_name: str = "KB Sync"
    debug: bool = False
    host: str = "127.0.0.1"
    port: int = 8000

    # Slack
    slack_bot_token: str = ""
    slack_channel_id: str = ""

    # Zendesk
    zendesk_subdomain: str = ""
    zendesk_email: str = ""
    zendesk_api_token: str = ""

    # GitHub (knowledge unit repository)
    github_token: str = ""
    github_repo_owner: str = ""
    github_repo_name: str = ""
    github_default_branch: str = "main"

    # OpenAI (semantic matching via gen_ai_hub proxy)
    # No API key needed - uses gen_ai_hub proxy
    openai_model: str = "gpt-5"
    temperature: float = 0.0

    # Matching defaults
    matching_max_units: int = 10
    matching_min_score: float = 0.1

    # Discovery defaults
    discovery_window_days: int = 30
    discovery_page_size: int = 25
    discovery_page_delay_seconds: float = 0.5  # Between page fetches
    discovery_max_iterations: int = 20  # Page fetches per invocation

    http_timeout: int = 30  # Seconds

    model_config = ConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
