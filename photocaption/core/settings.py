"""
Purpose:
- Centralized configuration using pydantic-settings.
- Reads from environment variables and optional .env file.
- Keeps model names, throttle knobs and cache paths tunable without code changes.
"""

from typing import Optional
from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Pydantic v2 config (env file + ignore unexpected env vars)
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",          # <-- prevents crashes if extra env vars exist
    )

    # API host/port
    host: str = Field(default="0.0.0.0", description="Bind address for FastAPI/Uvicorn")
    port: int = Field(default=8000, description="Port for FastAPI/Uvicorn")

    # CORS
    cors_allow_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
        description="Allowed origins for browser apps"
    )

    log_level: str = Field(default="INFO")

    # Data paths
    data_dir: Path = Field(
        default=Path("./data"),
        description="Local data directory for the durable analysis cache"
    )
    cache_file: str = Field(default="image_analysis.json", description="File name under data_dir")

    # ---- OpenAI ----
    # These can come from env (.env or shell): OPENAI_API_KEY, OPENAI_BASE_URL
    openai_api_key: Optional[str] = None
    openai_base_url: Optional[str] = None
    request_timeout: float = Field(default=60.0)

    analysis_model: str = Field(default="gpt-4o-mini")
    analysis_max_tokens: int = Field(default=300)
    caption_model: str = Field(default="gpt-3.5-turbo")
    caption_max_tokens: int = Field(default=1000)
    caption_temperature: float = Field(default=0.9)
    describe_model: str = Field(default="gpt-4o-mini")
    describe_max_tokens: int = Field(default=500)

    # ---- Client-side throttle ----
    rate_min_interval_s: float = Field(default=1.0)   # minimum spacing between requests
    rate_max_requests: int = Field(default=3)         # cap inside one window
    rate_window_s: float = Field(default=60.0)

    # ---- Backoff on provider 429 ----
    retry_max_attempts: int = Field(default=5)
    retry_base_delay_ms: int = Field(default=1000)
    retry_max_delay_ms: int = Field(default=32000)

    # Tone presets offered to the UI (value -> label)
    tone_labels: dict[str, str] = {
        "sarcastic": "Sarcastic",
        "deadpan": "Deadpan",
        "original": "Original",
        "unexpected": "Unexpected",
        "darkHumor": "Dark Humor",
    }

    @property
    def cache_path(self) -> Path:
        return self.data_dir / self.cache_file

settings = Settings()
