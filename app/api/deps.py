from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from challenge.service import ChallengeService
from domain.db import create_all
from domain.storage import CompositeStorageBackend, DatabaseStorageBackend, JsonFileStorageBackend

FALLBACK_PATH_ENV = "DOUBLE_FEATURE_FALLBACK_PATH"
DEFAULT_FALLBACK_PATH = "data/double_feature.json"


def fallback_path() -> Path:
    return Path(os.environ.get(FALLBACK_PATH_ENV, DEFAULT_FALLBACK_PATH))


@lru_cache(maxsize=1)
def default_service() -> ChallengeService:
    create_all()
    # The JSON file keeps the challenge going when the database is unreachable.
    backend = CompositeStorageBackend(DatabaseStorageBackend(), JsonFileStorageBackend(fallback_path()))
    return ChallengeService(backend, scheduler=AsyncIOScheduler(timezone="UTC"))


def challenge_service() -> ChallengeService:
    return default_service()
