"""Application settings loaded from environment variables."""
from functools import lru_cache
from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Screening service configuration loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="SCREENING_",
        case_sensitive=False,
        extra="ignore"
    )

    # Application
    app_env: str = Field(default="development", description="Application environment")
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[str] = Field(default=None, description="Optional JSON log file name under ./tmp/")
    cors_origins: List[str] = Field(
        default=["*"],
        description="Allowed CORS origins"
    )

    # Server (python -m screening.main)
    api_host: str = Field(default="0.0.0.0", description="Bind address for the dev server")
    api_port: int = Field(default=8000, description="Port for the dev server")

    # Evaluation
    categorical_case_sensitive: bool = Field(
        default=True,
        description="Exact, case-sensitive matching for categorical criteria"
    )

    # Dataset ingestion
    patient_id_column: str = Field(default="patient_id", description="CSV column holding the patient ID")
    max_patients: int = Field(default=10000, description="Largest dataset accepted in one upload")

    # Dashboard
    terminal_cases_limit: int = Field(default=5, description="Default number of terminal cases on the dashboard")
    histogram_bins: int = Field(default=10, description="Bin count for numeric feature distributions")

    # Exports
    export_delimiter: str = Field(default=",", description="Delimiter for CSV exports")

    # Sessions (in-memory only)
    max_sessions: int = Field(default=64, description="Screening sessions kept before the oldest is evicted")


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
