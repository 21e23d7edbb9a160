from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api import archive as archive_api, challenge as challenge_api, maintenance as maintenance_api
from app.api.deps import default_service

APP_VERSION = "0.1.0"

LOGGER = logging.getLogger("app.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Roll the archive forward on startup and keep checking the day boundary."""

    service = default_service()
    service.start()
    try:
        yield
    finally:
        service.stop()
        LOGGER.info("Daily reset scheduler stopped")


app = FastAPI(
    title="Double Feature API",
    version=APP_VERSION,
    description="Daily challenge year, archive history and maintenance hooks.",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[],
    allow_origin_regex=r"http://localhost(:\d+)?$",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(challenge_api.router)
app.include_router(archive_api.router)
app.include_router(maintenance_api.router)


@app.get("/health")
async def read_health() -> dict[str, bool]:
    return {"ok": True}


@app.get("/version")
async def read_version() -> str:
    return APP_VERSION
