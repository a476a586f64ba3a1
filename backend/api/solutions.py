"""GET /api/solutions — visible Dataverse solutions, sorted by display name."""
import logging
from typing import Optional
from fastapi import APIRouter, Header, HTTPException

from config import settings
from core.schema_fetcher import SchemaFetcher
from integrations.dataverse_client import AuthError, DataverseClient, SolutionNotFoundError, UpstreamError
from models.connection import DataverseConfig
from models.schema import SolutionSummary

router = APIRouter()
logger = logging.getLogger(__name__)


def get_dataverse_config(
    x_dataverse_url: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
) -> DataverseConfig:
    """Connection settings for this request: headers first, then .env settings."""
    url = x_dataverse_url or settings.DATAVERSE_URL
    token = settings.DATAVERSE_TOKEN
    if authorization and authorization.lower().startswith("bearer "):
        token = authorization[7:].strip()
    if not url or not token:
        raise HTTPException(
            400,
            detail="Dataverse environment URL and access token are required "
                   "(X-Dataverse-Url / Authorization headers or DATAVERSE_URL / DATAVERSE_TOKEN).",
        )
    return DataverseConfig(
        environment_url=url,
        access_token=token,
        api_version=settings.DATAVERSE_API_VERSION,
        timeout_seconds=settings.DATAVERSE_TIMEOUT_SECONDS,
        max_parallel_table_fetches=settings.MAX_PARALLEL_TABLE_FETCHES,
    )


def to_http_error(e: Exception) -> HTTPException:
    if isinstance(e, SolutionNotFoundError):
        return HTTPException(404, detail=str(e))
    if isinstance(e, AuthError):
        return HTTPException(401, detail=f"Dataverse rejected the access token: {e.message}")
    if isinstance(e, UpstreamError):
        return HTTPException(502, detail=str(e))
    return HTTPException(500, detail=str(e))


async def list_solutions(config: DataverseConfig) -> list[SolutionSummary]:
    async with DataverseClient(config) as client:
        return await SchemaFetcher(client).list_solutions()


@router.get("/solutions", response_model=list[SolutionSummary])
async def get_solutions(
    x_dataverse_url: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
):
    config = get_dataverse_config(x_dataverse_url, authorization)
    try:
        return await list_solutions(config)
    except (SolutionNotFoundError, UpstreamError) as e:
        logger.warning("Listing solutions failed: %s", e)
        raise to_http_error(e)
