from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from app.api.deps import challenge_service
from challenge.clock import InvalidChallengeDate, display_date, parse_challenge_date
from challenge.service import ChallengeService

router = APIRouter(prefix="/challenge", tags=["challenge"])


class ChallengeYearResponse(BaseModel):
    date: str
    year: int
    display_date: str


class TodayResponse(ChallengeYearResponse):
    resets_in_seconds: int = Field(..., ge=0, description="Seconds until the next reference-zone midnight")


@router.get("/today", response_model=TodayResponse)
def read_today(service: ChallengeService = Depends(challenge_service)) -> TodayResponse:
    today = service.today()
    year = service.get_todays_challenge_year()
    hours, minutes, seconds = service.reset_scheduler.time_until_reset()
    return TodayResponse(
        date=today.isoformat(),
        year=year,
        display_date=display_date(today),
        resets_in_seconds=hours * 3600 + minutes * 60 + seconds,
    )


@router.get("/{target_date}", response_model=ChallengeYearResponse)
def read_challenge(target_date: str, service: ChallengeService = Depends(challenge_service)) -> ChallengeYearResponse:
    try:
        day = parse_challenge_date(target_date)
        year = service.get_challenge_year_for_date(target_date, today=service.today())
    except InvalidChallengeDate as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc
    return ChallengeYearResponse(date=target_date, year=year, display_date=display_date(day))
