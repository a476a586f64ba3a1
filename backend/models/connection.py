"""Pydantic schema for the Dataverse connection settings."""
from pydantic import BaseModel, ConfigDict, Field, field_validator


class DataverseConfig(BaseModel):
    """Connection settings for one Dataverse environment.

    Frozen: a client built from this record keeps the same base address and
    credential for its whole lifetime. Target another environment or token by
    building a new record and a new client.
    """
    model_config = ConfigDict(frozen=True)

    environment_url: str = Field(..., min_length=1, description="e.g. https://org.crm.dynamics.com")
    access_token: str = Field(..., min_length=1, repr=False)
    api_version: str = "9.2"
    timeout_seconds: float = Field(30.0, gt=0)
    max_parallel_table_fetches: int = Field(8, ge=1)

    @field_validator("environment_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def api_base_url(self) -> str:
        return f"{self.environment_url}/api/data/v{self.api_version}"
