from __future__ import annotations

from datetime import date, datetime
from typing import List

from apscheduler.schedulers.base import BaseScheduler

from challenge.allocator import AllocatorContext, ChallengeYearAllocator
from challenge.clock import parse_challenge_date
from challenge.config import DEFAULT_SETTINGS, ChallengeSettings
from challenge.scheduler import DailyResetScheduler
from challenge.validation import ValidationGuard, ValidationOutcome
from domain.archive import ArchiveStore
from domain.models import Allocation
from domain.storage import MemoryStorageBackend, StorageBackend


class ChallengeService:
    """Entry point for UI collaborators: daily year lookups, history and upkeep."""

    def __init__(
        self,
        backend: StorageBackend | None = None,
        *,
        settings: ChallengeSettings = DEFAULT_SETTINGS,
        context: AllocatorContext | None = None,
        scheduler: BaseScheduler | None = None,
    ) -> None:
        self.settings = settings
        self.backend = backend or MemoryStorageBackend()
        self.allocator = ChallengeYearAllocator(context, settings=settings)
        self.archive = ArchiveStore(self.backend, self.allocator, settings=settings)
        self.reset_scheduler = DailyResetScheduler(
            self.backend, self.archive, settings=settings, scheduler=scheduler
        )
        self.guard = ValidationGuard(self.backend, self.archive, self.allocator, settings=settings)

    def today(self, now: datetime | None = None) -> date:
        return self.reset_scheduler.reference_day(now)

    def get_challenge_year_for_date(self, target_date: str, *, today: date | None = None) -> int:
        """Year for *target_date*; archived dates return their stored year.

        Today's year comes from the pinned allocation. Any other date is worked
        out in a scratch context so looking it up never shifts today's pick.
        """

        parse_challenge_date(target_date)
        current = today or self.today()
        stored = self.archive.find(target_date, current)
        if stored is not None:
            return stored.year
        if target_date == current.isoformat():
            return self.archive.year_for_today(current)
        return self.allocator.detached().year_for(target_date, self.archive.get_used_years(current))

    def get_todays_challenge_year(self, now: datetime | None = None) -> int:
        return self.archive.year_for_today(self.today(now))

    def get_archive(self, now: datetime | None = None) -> List[Allocation]:
        return self.archive.get_all(self.today(now))

    def run_daily_maintenance(self, now: datetime | None = None) -> bool:
        return self.reset_scheduler.check(now)

    def validate_today(self, now: datetime | None = None) -> ValidationOutcome:
        return self.guard.validate(self.today(now))

    def check_todays_year_unique(self, now: datetime | None = None) -> bool:
        """Read-only: is today's year absent from the archive? Leaves the guard's record alone."""

        today = self.today(now)
        return self.archive.year_for_today(today) not in self.archive.get_used_years(today)

    def retry_validation(self, now: datetime | None = None) -> ValidationOutcome:
        return self.guard.retry(self.today(now))

    def dismiss_validation(self, now: datetime | None = None) -> ValidationOutcome:
        return self.guard.dismiss(self.today(now))

    def start(self) -> None:
        """Run one maintenance pass and begin the recurring boundary check."""

        self.archive.initialize(self.today())
        self.run_daily_maintenance()
        self.reset_scheduler.start()

    def stop(self) -> None:
        self.reset_scheduler.stop()


__all__ = ["ChallengeService"]
