from datetime import date, timedelta

import pytest

from challenge.allocator import AllocatorContext, ChallengeYearAllocator, verify_year_uniqueness
from challenge.bootstrap import BOOTSTRAP_USED_YEARS, BOOTSTRAP_YEARS, MAX_YEAR, MIN_YEAR, candidate_years
from challenge.clock import InvalidChallengeDate
from challenge.rng import string_hash

ALL_YEARS = set(range(MIN_YEAR, MAX_YEAR + 1))


def test_bootstrap_dates_are_exact() -> None:
    allocator = ChallengeYearAllocator()
    assert allocator.year_for("2024-02-20") == 2020
    for day, year in BOOTSTRAP_YEARS.items():
        assert ChallengeYearAllocator().year_for(day, ALL_YEARS) == year


def test_candidates_exclude_bootstrap_years() -> None:
    candidates = candidate_years()
    assert len(candidates) == len(ALL_YEARS) - len(BOOTSTRAP_YEARS)
    assert not BOOTSTRAP_USED_YEARS.intersection(candidates)
    assert sorted(ChallengeYearAllocator().shuffled_candidates) == candidates


def test_years_are_always_in_range() -> None:
    allocator = ChallengeYearAllocator()
    start = date(2023, 12, 1)
    for offset in range(400):
        year = allocator.year_for((start + timedelta(days=offset)).isoformat())
        assert MIN_YEAR <= year <= MAX_YEAR


def test_repeated_calls_return_cached_year() -> None:
    allocator = ChallengeYearAllocator()
    first = allocator.year_for("2025-06-01")
    assert allocator.year_for("2025-06-01") == first
    assert allocator.year_for("2025-06-01", ALL_YEARS) == first
    assert allocator.context.generated["2025-06-01"] == first


def test_index_follows_day_offset_from_seed() -> None:
    allocator = ChallengeYearAllocator()
    shuffled = allocator.shuffled_candidates
    assert allocator.year_for("2024-03-01") == shuffled[11]


def test_dates_before_seed_clamp_to_first_candidate() -> None:
    allocator = ChallengeYearAllocator()
    assert allocator.year_for("2020-01-01") == allocator.shuffled_candidates[0]
    assert ChallengeYearAllocator().year_for("2020-01-01") == allocator.shuffled_candidates[0]


def test_same_session_never_repeats_a_year() -> None:
    allocator = ChallengeYearAllocator()
    start = date(2025, 1, 1)
    years = [allocator.year_for((start + timedelta(days=offset)).isoformat()) for offset in range(30)]
    assert len(set(years)) == len(years)


def test_excluded_archive_years_are_skipped() -> None:
    excluded = set(range(1970, 2000))
    first = ChallengeYearAllocator().year_for("2025-04-15", excluded)
    second = ChallengeYearAllocator().year_for("2025-04-15", excluded)
    assert first == second
    assert 2000 <= first <= 2024
    assert first not in BOOTSTRAP_USED_YEARS


def test_single_remaining_year_is_selected() -> None:
    excluded = ALL_YEARS - {1999}
    assert ChallengeYearAllocator().year_for("2025-04-15", excluded) == 1999


def test_exhausted_pool_uses_fallback() -> None:
    allocator = ChallengeYearAllocator()
    year = allocator.year_for("2025-04-15", ALL_YEARS)
    assert year == MIN_YEAR + abs(string_hash("2025-04-15")) % len(ALL_YEARS)
    assert allocator.context.fallback_attempts["2025-04-15"] == 1


def test_fallback_prefers_years_outside_the_exclusion_set(monkeypatch) -> None:
    allocator = ChallengeYearAllocator()
    monkeypatch.setattr(allocator, "_select", lambda day, excluded: None)
    excluded = ALL_YEARS - {1971, 1972}
    assert allocator.year_for("2025-04-15", excluded) in {1971, 1972}


def test_closed_form_after_attempt_cap() -> None:
    context = AllocatorContext(fallback_attempts={"2030-05-17": 5})
    allocator = ChallengeYearAllocator(context)
    assert allocator.year_for("2030-05-17", ALL_YEARS) == MIN_YEAR + (2030 + 5 + 17) % 55
    assert context.fallback_attempts["2030-05-17"] == 6


def test_internal_errors_route_to_fallback(monkeypatch) -> None:
    allocator = ChallengeYearAllocator()

    def broken(day, excluded):
        raise RuntimeError("shuffle state corrupted")

    monkeypatch.setattr(allocator, "_select", broken)
    year = allocator.year_for("2025-08-08")
    assert year == MIN_YEAR + abs(string_hash("2025-08-08")) % 55


def test_malformed_dates_raise() -> None:
    allocator = ChallengeYearAllocator()
    for bad in ["2025-02-30", "08/08/2025", ""]:
        with pytest.raises(InvalidChallengeDate):
            allocator.year_for(bad)


def test_contexts_are_isolated() -> None:
    shared = ChallengeYearAllocator()
    shared.year_for("2025-01-01")
    other = ChallengeYearAllocator()
    assert other.context.generated == {}
    assert other.year_for("2025-01-02") == ChallengeYearAllocator().year_for("2025-01-02")


def test_forget_allows_recomputation() -> None:
    allocator = ChallengeYearAllocator()
    first = allocator.year_for("2025-05-05")
    allocator.context.forget("2025-05-05")
    assert "2025-05-05" not in allocator.context.generated
    assert allocator.year_for("2025-05-05", {first}) != first


def test_verify_year_uniqueness() -> None:
    assert verify_year_uniqueness(1999, [1998, 2000]) is True
    assert verify_year_uniqueness(1999, [1999]) is False
