from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterable, List

from challenge.bootstrap import BOOTSTRAP_USED_YEARS, BOOTSTRAP_YEARS, candidate_years
from challenge.clock import days_between, parse_challenge_date
from challenge.config import DEFAULT_SETTINGS, ChallengeSettings
from challenge.rng import seeded_shuffle, string_hash

LOGGER = logging.getLogger("challenge.allocator")


@dataclass
class AllocatorContext:
    """Per-session memo of generated years and fallback attempt counters.

    Nothing here is persisted; the archive remains the source of truth.
    """

    generated: Dict[str, int] = field(default_factory=dict)
    fallback_attempts: Dict[str, int] = field(default_factory=dict)

    def cached(self, target_date: str) -> int | None:
        return self.generated.get(target_date)

    def remember(self, target_date: str, year: int) -> int:
        self.generated[target_date] = year
        return year

    def forget(self, target_date: str) -> None:
        self.generated.pop(target_date, None)

    def generated_years(self) -> set[int]:
        return set(self.generated.values())

    def next_fallback_attempt(self, target_date: str) -> int:
        attempts = self.fallback_attempts.get(target_date, 0)
        self.fallback_attempts[target_date] = attempts + 1
        return attempts


def verify_year_uniqueness(year: int, archive_years: Iterable[int]) -> bool:
    return year not in set(archive_years)


class ChallengeYearAllocator:
    """Maps calendar dates to challenge years, skipping years already handed out."""

    def __init__(
        self,
        context: AllocatorContext | None = None,
        *,
        settings: ChallengeSettings = DEFAULT_SETTINGS,
    ) -> None:
        self.context = context or AllocatorContext()
        self.settings = settings
        self._seed_anchor = parse_challenge_date(settings.seed_date)
        self._shuffled = seeded_shuffle(
            candidate_years(settings.min_year, settings.max_year), settings.seed_date
        )

    def detached(self) -> "ChallengeYearAllocator":
        """Allocator sharing this candidate order but with a fresh, throwaway context."""

        scratch = copy.copy(self)
        scratch.context = AllocatorContext()
        return scratch

    @property
    def shuffled_candidates(self) -> List[int]:
        return list(self._shuffled)

    def year_for(self, target_date: str, excluded_years: Iterable[int] | None = None) -> int:
        """Return the challenge year for *target_date*.

        Only a malformed date string raises (``InvalidChallengeDate``). Every
        other failure is absorbed by the fallback path so a year in range is
        always produced.
        """

        day = parse_challenge_date(target_date)
        cached = self.context.cached(target_date)
        if cached is not None:
            return cached
        if target_date in BOOTSTRAP_YEARS:
            return self.context.remember(target_date, BOOTSTRAP_YEARS[target_date])

        excluded = set(excluded_years or ())
        try:
            year = self._select(day, excluded)
        except Exception:
            LOGGER.exception("Error generating challenge year for %s; using fallback", target_date)
            year = None
        if year is None:
            year = self._fallback_year(day, target_date, excluded)
        return self.context.remember(target_date, year)

    def _select(self, day: date, excluded: set[int]) -> int | None:
        offset = days_between(self._seed_anchor, day)
        taken = self.context.generated_years()
        pool = [year for year in self._shuffled if year not in taken and year not in excluded]
        if not pool:
            LOGGER.info("Candidate pool exhausted for %s", day.isoformat())
            return None
        selected = pool[max(0, offset) % len(pool)]
        if selected in BOOTSTRAP_USED_YEARS or selected in excluded:
            LOGGER.warning("Year collision detected for %s (%s); using fallback", day.isoformat(), selected)
            return None
        return selected

    def _fallback_year(self, day: date, target_date: str, excluded: set[int]) -> int:
        settings = self.settings
        attempts = self.context.next_fallback_attempt(target_date)
        if attempts >= settings.max_fallback_attempts:
            return settings.min_year + (day.year + day.month + day.day) % settings.year_range

        date_hash = abs(string_hash(target_date))
        available = [year for year in settings.all_years() if year not in excluded]
        if available:
            return available[date_hash % len(available)]
        LOGGER.warning("Every year in range is excluded for %s; reusing one", target_date)
        return settings.min_year + date_hash % settings.year_range


__all__ = ["AllocatorContext", "ChallengeYearAllocator", "verify_year_uniqueness"]
