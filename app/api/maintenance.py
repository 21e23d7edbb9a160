from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.api.deps import challenge_service
from challenge.service import ChallengeService
from challenge.validation import ValidationOutcome

router = APIRouter(tags=["maintenance"])


class MaintenanceResponse(BaseModel):
    rolled: bool
    last_reset_day: Optional[str]


class ValidationResponse(BaseModel):
    date: str
    year: int
    unique: bool
    attempts: int
    exhausted: bool
    suppressed: bool
    notice: Optional[str] = None


def _validation_response(outcome: ValidationOutcome) -> ValidationResponse:
    return ValidationResponse(
        date=outcome.date,
        year=outcome.year,
        unique=outcome.unique,
        attempts=outcome.attempts,
        exhausted=outcome.exhausted,
        suppressed=outcome.suppressed,
        notice=outcome.notice,
    )


@router.post("/maintenance/run", response_model=MaintenanceResponse)
def run_maintenance(service: ChallengeService = Depends(challenge_service)) -> MaintenanceResponse:
    rolled = service.run_daily_maintenance()
    return MaintenanceResponse(rolled=rolled, last_reset_day=service.reset_scheduler.last_reset_day())


@router.get("/validation/today", response_model=ValidationResponse)
def validate_today(service: ChallengeService = Depends(challenge_service)) -> ValidationResponse:
    return _validation_response(service.validate_today())


@router.post("/validation/retry", response_model=ValidationResponse)
def retry_validation(service: ChallengeService = Depends(challenge_service)) -> ValidationResponse:
    return _validation_response(service.retry_validation())


@router.post("/validation/dismiss", response_model=ValidationResponse)
def dismiss_validation(service: ChallengeService = Depends(challenge_service)) -> ValidationResponse:
    return _validation_response(service.dismiss_validation())
