from datetime import date, datetime, timedelta, timezone

import pytest

from challenge.bootstrap import MAX_YEAR, MIN_YEAR
from challenge.clock import InvalidChallengeDate
from challenge.config import ChallengeSettings
from challenge.service import ChallengeService
from challenge.validation import VALIDATION_KEY
from domain.archive import DAILY_YEAR_DATE_KEY, DAILY_YEAR_KEY
from domain.models import Allocation
from domain.storage import MemoryStorageBackend, UnavailableStorageBackend, read_json

NOON = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
TODAY = date(2025, 3, 10)


def test_bootstrap_date_through_service() -> None:
    service = ChallengeService()
    assert service.get_challenge_year_for_date("2024-02-20", today=TODAY) == 2020


def test_todays_year_is_stable_and_not_archived() -> None:
    service = ChallengeService()
    year = service.get_todays_challenge_year(NOON)

    assert MIN_YEAR <= year <= MAX_YEAR
    assert service.get_todays_challenge_year(NOON) == year
    assert year not in {entry.year for entry in service.get_archive(NOON)}


def test_archived_dates_return_stored_year() -> None:
    service = ChallengeService()
    archive = service.get_archive(NOON)
    for entry in archive[:5]:
        assert service.get_challenge_year_for_date(entry.date, today=TODAY) == entry.year


def test_archive_has_unique_dates_and_years_after_maintenance() -> None:
    service = ChallengeService()
    for offset in range(10):
        service.run_daily_maintenance(NOON + timedelta(days=offset))
    archive = service.get_archive(NOON + timedelta(days=9))

    assert len({entry.date for entry in archive}) == len(archive)
    assert len({entry.year for entry in archive}) == len(archive)
    assert archive[0].date == (TODAY + timedelta(days=8)).isoformat()


def test_maintenance_is_idempotent_within_a_day() -> None:
    service = ChallengeService()
    assert service.run_daily_maintenance(NOON) is True
    before = service.get_archive(NOON)
    assert service.run_daily_maintenance(NOON + timedelta(hours=3)) is False
    assert service.get_archive(NOON) == before


def test_check_todays_year_unique() -> None:
    service = ChallengeService()
    service.run_daily_maintenance(NOON)
    assert service.check_todays_year_unique(NOON) is True


def test_malformed_date_raises_invalid_challenge_date() -> None:
    with pytest.raises(InvalidChallengeDate):
        ChallengeService().get_challenge_year_for_date("2025-13-01", today=TODAY)


def test_unavailable_storage_still_answers() -> None:
    service = ChallengeService(UnavailableStorageBackend())
    year = service.get_todays_challenge_year(NOON)
    assert MIN_YEAR <= year <= MAX_YEAR
    assert service.run_daily_maintenance(NOON) is True
    assert service.run_daily_maintenance(NOON) is False
    assert len(service.get_archive(NOON)) == 30


def test_sessions_sharing_storage_agree_on_archive() -> None:
    backend = MemoryStorageBackend()
    first = ChallengeService(backend)
    first.run_daily_maintenance(NOON)
    second = ChallengeService(backend)
    assert second.get_archive(NOON) == first.get_archive(NOON)
    assert second.run_daily_maintenance(NOON) is False


def test_custom_window_and_offset() -> None:
    settings = ChallengeSettings(archive_window=7, reference_offset_hours=0)
    service = ChallengeService(settings=settings)
    assert service.today(datetime(2025, 3, 11, 1, 0, tzinfo=timezone.utc)) == date(2025, 3, 11)
    assert len(service.get_archive(NOON)) == 7


def test_todays_year_survives_a_fresh_session_after_rolls() -> None:
    backend = MemoryStorageBackend()
    first = ChallengeService(backend)
    first.run_daily_maintenance(NOON)
    next_noon = NOON + timedelta(days=1)
    first.run_daily_maintenance(next_noon)
    year = first.get_todays_challenge_year(next_noon)

    second = ChallengeService(backend)
    assert second.get_todays_challenge_year(next_noon) == year


def test_other_date_lookup_does_not_shift_todays_year() -> None:
    backend = MemoryStorageBackend()
    first = ChallengeService(backend)
    second = ChallengeService(backend)

    second.get_challenge_year_for_date("2025-06-01", today=TODAY)
    assert "2025-06-01" not in second.allocator.context.generated

    assert first.get_todays_challenge_year(NOON) == second.get_todays_challenge_year(NOON)
    assert second.get_challenge_year_for_date(TODAY.isoformat(), today=TODAY) == first.get_todays_challenge_year(NOON)


def test_todays_year_is_pinned_in_storage() -> None:
    service = ChallengeService()
    year = service.get_todays_challenge_year(NOON)

    present, payload = read_json(service.backend, DAILY_YEAR_KEY)
    assert present and payload == {"year": year, "date": TODAY.isoformat()}
    assert service.backend.get(DAILY_YEAR_DATE_KEY) == TODAY.isoformat()


def test_day_boundary_archives_pinned_year_and_clears_it() -> None:
    service = ChallengeService()
    year = service.get_todays_challenge_year(NOON)

    assert service.run_daily_maintenance(datetime(2025, 3, 11, 5, 0, tzinfo=timezone.utc)) is True

    assert service.backend.get(DAILY_YEAR_KEY) is None
    assert service.backend.get(DAILY_YEAR_DATE_KEY) is None
    assert service.get_archive(NOON + timedelta(days=1))[0] == Allocation(date=TODAY.isoformat(), year=year)


def test_first_roll_keeps_a_pin_for_the_same_day() -> None:
    service = ChallengeService()
    year = service.get_todays_challenge_year(NOON)

    assert service.run_daily_maintenance(NOON) is True

    assert service.backend.get(DAILY_YEAR_DATE_KEY) == TODAY.isoformat()
    assert ChallengeService(service.backend).get_todays_challenge_year(NOON) == year


def test_uniqueness_check_leaves_validation_record_untouched() -> None:
    service = ChallengeService()
    service.validate_today(NOON)
    before = service.backend.get(VALIDATION_KEY)

    assert service.check_todays_year_unique(NOON) is True
    assert service.backend.get(VALIDATION_KEY) == before


def test_uniqueness_check_reports_duplicate_without_recording(monkeypatch) -> None:
    service = ChallengeService()
    duplicate = service.archive.initialize(TODAY)[0].year
    monkeypatch.setattr(service.allocator, "year_for", lambda target_date, excluded_years=None: duplicate)

    assert service.check_todays_year_unique(NOON) is False
    assert service.backend.get(VALIDATION_KEY) is None
