from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.deps import challenge_service
from challenge.service import ChallengeService

router = APIRouter(prefix="/archive", tags=["archive"])


class ArchiveEntry(BaseModel):
    date: str
    year: int
    display_date: str


@router.get("", response_model=List[ArchiveEntry])
def read_archive(service: ChallengeService = Depends(challenge_service)) -> List[ArchiveEntry]:
    return [
        ArchiveEntry(date=entry.date, year=entry.year, display_date=entry.display_date)
        for entry in service.get_archive()
    ]
