from __future__ import annotations

import logging
import threading
from collections import Counter
from datetime import date, timedelta
from typing import Iterable, List, Optional, Tuple

from pydantic import ValidationError

from challenge.allocator import ChallengeYearAllocator
from challenge.clock import to_reference_day
from challenge.config import DEFAULT_SETTINGS, ChallengeSettings
from domain.models import Allocation
from domain.storage import StorageBackend, read_json, write_json

LOGGER = logging.getLogger("domain.archive")

ARCHIVE_KEY = "doubleFeatureArchive"
DAILY_YEAR_KEY = "doubleFeature_dailyYear"
DAILY_YEAR_DATE_KEY = "doubleFeature_dailyYearDate"


def _sorted_unique(entries: Iterable[Allocation]) -> Tuple[List[Allocation], bool]:
    entries = list(entries)
    seen: set[str] = set()
    unique: List[Allocation] = []
    for entry in entries:
        if entry.date in seen:
            continue
        seen.add(entry.date)
        unique.append(entry)
    ordered = sorted(unique, key=lambda entry: entry.date, reverse=True)
    return ordered, ordered != entries


def normalize_archive(payload: object) -> Tuple[Optional[List[Allocation]], bool]:
    """Coerce a stored archive payload into allocations, most recent first.

    Accepts the current list-of-records schema and the legacy ``{date: year}``
    mapping. Returns ``(None, False)`` when the payload cannot be trusted and
    ``(entries, True)`` when the stored form needs rewriting.
    """

    try:
        if isinstance(payload, list):
            entries = []
            for item in payload:
                if not isinstance(item, dict):
                    return None, False
                entries.append(Allocation(date=item["date"], year=int(item["year"])))
            return _sorted_unique(entries)
        if isinstance(payload, dict):
            entries = [Allocation(date=str(key), year=int(value)) for key, value in payload.items()]
            ordered, _ = _sorted_unique(entries)
            return ordered, True
    except (KeyError, TypeError, ValueError, ValidationError):
        return None, False
    return None, False


def duplicate_years(entries: Iterable[Allocation]) -> List[int]:
    counts = Counter(entry.year for entry in entries)
    return sorted(year for year, count in counts.items() if count > 1)


class ArchiveStore:
    """Durable, date-descending log of finalized challenge allocations."""

    def __init__(
        self,
        backend: StorageBackend,
        allocator: ChallengeYearAllocator,
        *,
        settings: ChallengeSettings = DEFAULT_SETTINGS,
    ) -> None:
        self._backend = backend
        self._allocator = allocator
        self._settings = settings
        self._lock = threading.RLock()
        self._volatile: Optional[List[Allocation]] = None
        self._volatile_pin: Optional[Allocation] = None

    def _today(self, today: date | None) -> date:
        if today is not None:
            return today
        return to_reference_day(offset_hours=self._settings.reference_offset_hours)

    def _write(self, entries: List[Allocation]) -> None:
        if write_json(self._backend, ARCHIVE_KEY, [entry.to_record() for entry in entries]):
            self._volatile = None
        else:
            self._volatile = list(entries)

    def _seed(self, today: date) -> List[Allocation]:
        used: List[int] = []
        entries: List[Allocation] = []
        for offset in range(1, self._settings.archive_window + 1):
            day = (today - timedelta(days=offset)).isoformat()
            year = self._allocator.year_for(day, used)
            used.append(year)
            entries.append(Allocation(date=day, year=year))
        self._write(entries)
        LOGGER.info("Seeded challenge archive with %d days ending %s", len(entries), entries[0].date if entries else "-")
        return entries

    def _load(self, today: date) -> List[Allocation]:
        present, payload = read_json(self._backend, ARCHIVE_KEY)
        if not present:
            if self._volatile is not None:
                return list(self._volatile)
            return self._seed(today)
        entries, needs_rewrite = normalize_archive(payload)
        if entries is None:
            LOGGER.warning("Challenge archive is malformed; discarding and re-initializing")
            self._backend.remove(ARCHIVE_KEY)
            self._volatile = None
            return self._seed(today)
        if needs_rewrite:
            LOGGER.info("Migrating stored challenge archive to the record list format")
            self._write(entries)
        return entries

    def initialize(self, today: date | None = None) -> List[Allocation]:
        """Seed the trailing window before *today* unless an archive already exists."""

        with self._lock:
            return self._load(self._today(today))

    def get_all(self, today: date | None = None) -> List[Allocation]:
        with self._lock:
            return list(self._load(self._today(today)))

    def get_used_years(self, today: date | None = None) -> set[int]:
        return {entry.year for entry in self.get_all(today)}

    def find(self, target_date: str, today: date | None = None) -> Optional[Allocation]:
        for entry in self.get_all(today):
            if entry.date == target_date:
                return entry
        return None

    def pinned_year(self, day: str) -> Optional[int]:
        """Year already handed out to players for *day*, if one was recorded."""

        present, payload = read_json(self._backend, DAILY_YEAR_KEY)
        if not present:
            pin = self._volatile_pin
            return pin.year if pin is not None and pin.date == day else None
        if not isinstance(payload, dict) or payload.get("date") != day:
            return None
        try:
            return int(payload["year"])
        except (KeyError, TypeError, ValueError):
            LOGGER.warning("Discarding malformed daily year record for %s", day)
            return None

    def pin(self, day: str, year: int) -> None:
        self._volatile_pin = Allocation(date=day, year=year)
        self._allocator.context.remember(day, year)
        write_json(self._backend, DAILY_YEAR_KEY, {"year": year, "date": day})
        if not self._backend.set(DAILY_YEAR_DATE_KEY, day):
            LOGGER.warning("Unable to persist daily year date %s", day)

    def year_for_today(self, today: date | None = None) -> int:
        """Today's year, allocated once and then read back from storage."""

        with self._lock:
            current = self._today(today)
            day = current.isoformat()
            entries = self._load(current)
            pinned = self.pinned_year(day)
            if pinned is not None:
                self._allocator.context.remember(day, pinned)
                return pinned
            year = self._allocator.year_for(day, {entry.year for entry in entries})
            self.pin(day, year)
            return year

    def append_yesterday(self, today: date | None = None) -> Optional[Allocation]:
        """Finalize yesterday's allocation; a second call for the same day is a no-op."""

        with self._lock:
            current = self._today(today)
            yesterday = (current - timedelta(days=1)).isoformat()
            entries = self._load(current)
            if any(entry.date == yesterday for entry in entries):
                return None

            year = self.pinned_year(yesterday)
            if year is None:
                year = self._allocator.year_for(yesterday, {entry.year for entry in entries})
            allocation = Allocation(date=yesterday, year=year)
            updated, _ = _sorted_unique([allocation, *entries])
            updated = updated[: self._settings.archive_window]
            self._write(updated)

            duplicates = duplicate_years(updated)
            if duplicates:
                LOGGER.warning("Duplicate challenge years in archive after appending %s: %s", yesterday, duplicates)
            else:
                LOGGER.info("Archived challenge year %s for %s", year, yesterday)
            return allocation


__all__ = ["ARCHIVE_KEY", "DAILY_YEAR_DATE_KEY", "DAILY_YEAR_KEY", "ArchiveStore", "duplicate_years", "normalize_archive"]
