from __future__ import annotations

from typing import Dict, List

MIN_YEAR = 1970
MAX_YEAR = 2024

# Anchor for the deterministic candidate shuffle.
SEED_DATE = "2024-02-19"

# Launch-week challenges; these dates always resolve to exactly these years.
BOOTSTRAP_YEARS: Dict[str, int] = {
    "2024-02-20": 2020,
    "2024-02-21": 1976,
    "2024-02-22": 2018,
    "2024-02-23": 1990,
    "2024-02-24": 1982,
    "2024-02-25": 2015,
    "2024-02-26": 1986,
    "2024-02-27": 2005,
    "2024-02-28": 2010,
}

BOOTSTRAP_USED_YEARS = frozenset(BOOTSTRAP_YEARS.values())


def candidate_years(min_year: int = MIN_YEAR, max_year: int = MAX_YEAR) -> List[int]:
    """Every year in the range that the bootstrap history has not consumed."""

    return [year for year in range(min_year, max_year + 1) if year not in BOOTSTRAP_USED_YEARS]


if len(BOOTSTRAP_USED_YEARS) != len(BOOTSTRAP_YEARS):  # pragma: no cover - data guard
    raise RuntimeError("Duplicate years in bootstrap challenge history")


__all__ = [
    "BOOTSTRAP_USED_YEARS",
    "BOOTSTRAP_YEARS",
    "MAX_YEAR",
    "MIN_YEAR",
    "SEED_DATE",
    "candidate_years",
]
