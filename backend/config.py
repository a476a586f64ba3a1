"""Application settings loaded from .env file."""
from pydantic_settings import BaseSettings, SettingsConfigDict

from models.diagram import DiagramFormat


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Dataverse
    DATAVERSE_URL: str = ""
    DATAVERSE_TOKEN: str = ""
    DATAVERSE_API_VERSION: str = "9.2"
    DATAVERSE_TIMEOUT_SECONDS: int = 30

    # Fetching
    MAX_PARALLEL_TABLE_FETCHES: int = 8
    FETCH_TIMEOUT_SECONDS: int = 120

    # Rendering
    DEFAULT_DIAGRAM_FORMAT: DiagramFormat = "mermaid"

    # API
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000
    CORS_ORIGINS: str = "http://localhost:5173"

    # Logging
    LOG_LEVEL: str = "INFO"

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
