"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./finadvisor.db"

    # Text generation backend (Workers AI REST API)
    ai_api_base: str = "https://api.cloudflare.com/client/v4"
    ai_account_id: str = ""
    ai_api_token: str = ""
    ai_model: str = "@cf/meta/llama-3.1-8b-instruct"
    ai_max_tokens: int = 1024

    # Service
    service_name: str = "finadvisor"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 15.0

    # Assessments and history
    assessment_validity_days: int = 30
    score_history_months: int = 12
    max_forecast_months: int = 6


settings = Settings()
