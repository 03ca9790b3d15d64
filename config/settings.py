"""
Rapport Configuration Settings
"""
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Local store (use RAPPORT_ prefix)
    db_path: Path = Field(
        default=Path("./data/rapport.db"),
        alias="RAPPORT_DB_PATH",
        description="SQLite database used when no hosted store is configured"
    )

    # Hosted store (no prefix - same names as the web dashboard deployment)
    supabase_url: str = Field(default="", alias="SUPABASE_URL")
    supabase_anon_key: str = Field(default="", alias="SUPABASE_ANON_KEY")
    store_timeout: float = Field(default=10.0, alias="RAPPORT_STORE_TIMEOUT")

    # Server (port 8000 is canonical)
    port: int = Field(default=8000, alias="RAPPORT_PORT")
    host: str = Field(default="0.0.0.0", alias="RAPPORT_HOST")

    # Completion API (Groq, OpenAI-compatible)
    groq_api_key: str = Field(default="", alias="GROQ_API_KEY")
    groq_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        alias="GROQ_BASE_URL"
    )
    insight_model: str = Field(
        default="llama-3.1-8b-instant",
        alias="RAPPORT_INSIGHT_MODEL",
        description="Model used for relationship insight generation"
    )
    completion_timeout: float = Field(default=60.0, alias="RAPPORT_COMPLETION_TIMEOUT")

    # Number of recent events included in the insight prompt
    event_window: int = Field(default=10, alias="RAPPORT_EVENT_WINDOW")

    @property
    def supabase_enabled(self) -> bool:
        """Check if the hosted store is configured."""
        return bool(self.supabase_url and self.supabase_anon_key)

    @property
    def completion_configured(self) -> bool:
        """Check if the completion API key is set."""
        return bool(self.groq_api_key and self.groq_api_key.strip())


settings = Settings()
