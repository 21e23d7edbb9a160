from __future__ import annotations

from dataclasses import dataclass

from challenge.bootstrap import MAX_YEAR, MIN_YEAR, SEED_DATE


@dataclass(frozen=True)
class ChallengeSettings:
    """Tunable policy for the daily challenge year machinery."""

    min_year: int = MIN_YEAR
    max_year: int = MAX_YEAR
    seed_date: str = SEED_DATE
    reference_offset_hours: int = -5
    archive_window: int = 30
    max_fallback_attempts: int = 5
    max_validation_attempts: int = 3
    check_interval_seconds: int = 60

    @property
    def year_range(self) -> int:
        return self.max_year - self.min_year + 1

    def all_years(self) -> list[int]:
        return list(range(self.min_year, self.max_year + 1))


DEFAULT_SETTINGS = ChallengeSettings()

__all__ = ["ChallengeSettings", "DEFAULT_SETTINGS"]
