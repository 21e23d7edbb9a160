from __future__ import annotations

from datetime import date as CalendarDate

from pydantic import BaseModel, ConfigDict, Field, computed_field, field_validator

from challenge.clock import display_date, parse_challenge_date


class Allocation(BaseModel):
    """One finalized challenge: the year assigned to a calendar date."""

    model_config = ConfigDict(frozen=True)

    date: str = Field(..., description="Calendar date in YYYY-MM-DD form")
    year: int = Field(..., ge=1000, le=9999, description="Challenge year for the date")

    @field_validator("date")
    @classmethod
    def validate_date(cls, value: str) -> str:
        parse_challenge_date(value)
        return value

    @property
    def day(self) -> CalendarDate:
        return CalendarDate.fromisoformat(self.date)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def display_date(self) -> str:
        return display_date(self.day)

    def to_record(self) -> dict[str, object]:
        return {"date": self.date, "year": self.year}


class ValidationRecord(BaseModel):
    """Persisted per-day state of the duplicate-year guard."""

    date: str
    attempts: int = Field(default=0, ge=0)
    suppressed: bool = False
    notified: bool = False
