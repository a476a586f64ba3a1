"""GET /api/health — Dataverse reachability check."""
import logging
from fastapi import APIRouter

from config import settings
from integrations.dataverse_client import DataverseClient, DataverseError
from models.connection import DataverseConfig

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    dataverse_status = await _check_dataverse()
    overall = "ok" if dataverse_status["status"] == "up" else "degraded"
    return {
        "status": overall,
        "services": {
            "dataverse": dataverse_status,
        },
    }


async def _check_dataverse() -> dict:
    if not settings.DATAVERSE_URL or not settings.DATAVERSE_TOKEN:
        return {"status": "unconfigured", "error": "DATAVERSE_URL / DATAVERSE_TOKEN not set"}
    config = DataverseConfig(
        environment_url=settings.DATAVERSE_URL,
        access_token=settings.DATAVERSE_TOKEN,
        api_version=settings.DATAVERSE_API_VERSION,
        timeout_seconds=5,
    )
    try:
        async with DataverseClient(config) as client:
            await client.who_am_i()
        return {"status": "up", "url": config.environment_url}
    except DataverseError as e:
        return {"status": "down", "error": str(e)}
