from __future__ import annotations

from challenge.allocator import AllocatorContext, ChallengeYearAllocator, verify_year_uniqueness
from challenge.bootstrap import BOOTSTRAP_YEARS, MAX_YEAR, MIN_YEAR, SEED_DATE
from challenge.clock import InvalidChallengeDate, parse_challenge_date, to_reference_day
from challenge.config import ChallengeSettings
from challenge.rng import SeededRng, seeded_shuffle, string_hash

__all__ = [
    "AllocatorContext",
    "BOOTSTRAP_YEARS",
    "ChallengeSettings",
    "ChallengeYearAllocator",
    "InvalidChallengeDate",
    "MAX_YEAR",
    "MIN_YEAR",
    "SEED_DATE",
    "SeededRng",
    "parse_challenge_date",
    "seeded_shuffle",
    "string_hash",
    "to_reference_day",
    "verify_year_uniqueness",
]
