"""
Dataverse ERD — entity relationship diagrams for Dataverse solutions.
FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from api import health, solutions, erd
from config import settings

# ── Logging ──────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger("dataverse_erd")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Dataverse ERD starting up…")
    yield
    logger.info("Dataverse ERD shutting down.")


# ── App ───────────────────────────────────────────────────────────────────────
app = FastAPI(
    title="Dataverse ERD",
    description="Mermaid, PlantUML and Graphviz diagrams of Dataverse solutions.",
    version="1.0.0",
    lifespan=lifespan,
)

# ── CORS ──────────────────────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ───────────────────────────────────────────────────────────────────
app.include_router(health.router,    prefix="/api")
app.include_router(solutions.router, prefix="/api")
app.include_router(erd.router,       prefix="/api")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.API_HOST, port=settings.API_PORT)
