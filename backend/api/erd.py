"""POST /api/erd, GET /api/erd/{solution_name}/export — fetch a solution and render it."""
import asyncio
import logging
import time
from typing import Optional
from fastapi import APIRouter, Header, HTTPException, Query
from fastapi.responses import PlainTextResponse

from api.solutions import get_dataverse_config, to_http_error
from config import settings
from core.erd_renderer import relationship_count, render, suggested_file_name
from core.schema_fetcher import SchemaFetcher
from integrations.dataverse_client import DataverseClient, SolutionNotFoundError, UpstreamError
from models.connection import DataverseConfig
from models.diagram import DiagramFormat, ERDRequest, ERDResponse, FormatConfig
from models.schema import Schema

router = APIRouter()
logger = logging.getLogger(__name__)

_MEDIA_TYPES = {
    "mermaid":  "text/vnd.mermaid",
    "plantuml": "text/plain",
    "graphviz": "text/vnd.graphviz",
}


async def fetch_schema(config: DataverseConfig, solution_name: str) -> Schema:
    """Fetch a solution, giving up after FETCH_TIMEOUT_SECONDS."""
    async with DataverseClient(config) as client:
        fetcher = SchemaFetcher(client)
        try:
            return await asyncio.wait_for(
                fetcher.fetch_solution(solution_name),
                timeout=settings.FETCH_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            raise HTTPException(
                504,
                detail=f"Fetching solution '{solution_name}' took longer than {settings.FETCH_TIMEOUT_SECONDS}s",
            )
        except (SolutionNotFoundError, UpstreamError) as e:
            logger.warning("Fetching solution %s failed: %s", solution_name, e)
            raise to_http_error(e)


@router.post("/erd", response_model=ERDResponse)
async def generate_erd(
    req: ERDRequest,
    x_dataverse_url: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
):
    config = get_dataverse_config(x_dataverse_url, authorization)
    format_config = req.to_format_config(settings.DEFAULT_DIAGRAM_FORMAT)
    t0 = time.time()
    schema = await fetch_schema(config, req.solution_name)
    diagram = render(schema, format_config)
    logger.info(
        "Rendered %s (%d tables) as %s in %.2fs",
        schema.unique_name, len(schema.tables), format_config.format, time.time() - t0,
    )
    return ERDResponse(
        solution_name=schema.unique_name,
        format=format_config.format,
        file_name=suggested_file_name(schema, format_config.format),
        table_count=len(schema.tables),
        relationship_count=relationship_count(schema),
        diagram=diagram,
    )


@router.get("/erd/{solution_name}/export")
async def export_erd(
    solution_name: str,
    format: Optional[DiagramFormat] = Query(None),
    x_dataverse_url: Optional[str] = Header(None),
    authorization: Optional[str] = Header(None),
):
    fmt = format or settings.DEFAULT_DIAGRAM_FORMAT
    config = get_dataverse_config(x_dataverse_url, authorization)
    schema = await fetch_schema(config, solution_name)
    diagram = render(schema, FormatConfig(format=fmt))
    file_name = suggested_file_name(schema, fmt)
    return PlainTextResponse(
        content=diagram,
        media_type=_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'},
    )
