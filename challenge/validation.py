from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date
from typing import Optional

from pydantic import ValidationError

from challenge.allocator import ChallengeYearAllocator, verify_year_uniqueness
from challenge.clock import to_reference_day
from challenge.config import DEFAULT_SETTINGS, ChallengeSettings
from domain.archive import ArchiveStore
from domain.models import ValidationRecord
from domain.storage import StorageBackend, read_json, write_json

LOGGER = logging.getLogger("challenge.validation")

VALIDATION_KEY = "doubleFeature_validation"
DUPLICATE_NOTICE = "System detected a duplicate year ({year}). This may affect your gameplay experience."


@dataclass(frozen=True)
class ValidationOutcome:
    date: str
    year: int
    unique: bool
    attempts: int
    exhausted: bool
    suppressed: bool = False
    notice: Optional[str] = None


class ValidationGuard:
    """Cross-checks today's year against the archive without ever blocking play."""

    def __init__(
        self,
        backend: StorageBackend,
        archive: ArchiveStore,
        allocator: ChallengeYearAllocator,
        *,
        settings: ChallengeSettings = DEFAULT_SETTINGS,
    ) -> None:
        self._backend = backend
        self._archive = archive
        self._allocator = allocator
        self._settings = settings
        self._current: Optional[ValidationRecord] = None

    def _today(self, today: date | None) -> str:
        if today is None:
            today = to_reference_day(offset_hours=self._settings.reference_offset_hours)
        return today.isoformat()

    def _record(self, day: str) -> ValidationRecord:
        present, payload = read_json(self._backend, VALIDATION_KEY)
        if present and isinstance(payload, dict):
            try:
                record = ValidationRecord.model_validate(payload)
            except ValidationError:
                LOGGER.warning("Discarding malformed validation record")
            else:
                if record.date == day:
                    return record
        elif not present and self._current is not None and self._current.date == day:
            return self._current
        return ValidationRecord(date=day)

    def _save(self, record: ValidationRecord) -> None:
        self._current = record
        write_json(self._backend, VALIDATION_KEY, record.model_dump())

    def _outcome(self, record: ValidationRecord, year: int, unique: bool, notice: Optional[str] = None) -> ValidationOutcome:
        return ValidationOutcome(
            date=record.date,
            year=year,
            unique=unique,
            attempts=record.attempts,
            exhausted=not unique and record.attempts >= self._settings.max_validation_attempts,
            suppressed=record.suppressed,
            notice=notice,
        )

    def validate(self, today: date | None = None) -> ValidationOutcome:
        """Confirm today's year is not already archived, recomputing within the retry budget."""

        day = self._today(today)
        record = self._record(day)
        archive_years = self._archive.get_used_years(today)
        year = self._archive.year_for_today(today)
        unique = verify_year_uniqueness(year, archive_years)
        if record.suppressed:
            return self._outcome(record, year, unique)

        while not unique and record.attempts < self._settings.max_validation_attempts:
            record.attempts += 1
            LOGGER.warning(
                "Duplicate challenge year %s for %s (attempt %d/%d)",
                year,
                day,
                record.attempts,
                self._settings.max_validation_attempts,
            )
            self._allocator.context.forget(day)
            year = self._allocator.year_for(day, archive_years)
            unique = verify_year_uniqueness(year, archive_years)
            self._archive.pin(day, year)

        notice = None
        if not unique and not record.notified:
            LOGGER.warning("Giving up on a unique year for %s; continuing with %s", day, year)
            notice = DUPLICATE_NOTICE.format(year=year)
            record.notified = True
        self._save(record)
        return self._outcome(record, year, unique, notice)

    def retry(self, today: date | None = None) -> ValidationOutcome:
        """Reset today's budget and validate again."""

        self._save(ValidationRecord(date=self._today(today)))
        return self.validate(today)

    def dismiss(self, today: date | None = None) -> ValidationOutcome:
        """Suppress further checks for the rest of the day."""

        day = self._today(today)
        record = self._record(day)
        record.suppressed = True
        self._save(record)
        archive_years = self._archive.get_used_years(today)
        year = self._archive.year_for_today(today)
        return self._outcome(record, year, verify_year_uniqueness(year, archive_years))


__all__ = ["DUPLICATE_NOTICE", "VALIDATION_KEY", "ValidationGuard", "ValidationOutcome"]
