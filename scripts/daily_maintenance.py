from __future__ import annotations

import argparse
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from challenge.service import ChallengeService
from domain.db import create_all, make_engine
from domain.models import Allocation
from domain.storage import (
    CompositeStorageBackend,
    DatabaseStorageBackend,
    JsonFileStorageBackend,
    StorageBackend,
)

LOGGER = logging.getLogger(__name__)


@dataclass
class MaintenanceSummary:
    rolled: bool
    today: str
    todays_year: int
    unique: bool
    archive: List[Allocation]


def _backend(
    database_url: Optional[str], json_path: Optional[Path], fallback_path: Optional[Path] = None
) -> StorageBackend:
    if json_path is not None:
        return JsonFileStorageBackend(json_path)
    if database_url is not None:
        bind = make_engine(database_url)
        create_all(bind)
        backend: StorageBackend = DatabaseStorageBackend(bind)
    else:
        create_all()
        backend = DatabaseStorageBackend()
    if fallback_path is not None:
        backend = CompositeStorageBackend(backend, JsonFileStorageBackend(fallback_path))
    return backend


def run_maintenance(service: ChallengeService) -> MaintenanceSummary:
    """Roll the archive forward if the day changed and report today's challenge."""

    rolled = service.run_daily_maintenance()
    outcome = service.validate_today()
    if outcome.notice:
        LOGGER.warning(outcome.notice)
    return MaintenanceSummary(
        rolled=rolled,
        today=service.today().isoformat(),
        todays_year=service.get_todays_challenge_year(),
        unique=outcome.unique,
        archive=service.get_archive(),
    )


def main(argv: Optional[List[str]] = None) -> MaintenanceSummary:
    parser = argparse.ArgumentParser(description="Run the Double Feature daily challenge maintenance pass.")
    target = parser.add_mutually_exclusive_group()
    target.add_argument("--database-url", help="SQLAlchemy URL of the storage database")
    target.add_argument("--json", type=Path, dest="json_path", help="Use a JSON file as storage instead of a database")
    parser.add_argument(
        "--fallback-json",
        type=Path,
        dest="fallback_path",
        help="JSON file mirroring the database, read when the database is unavailable",
    )
    parser.add_argument("--show-archive", action="store_true", help="Print the archived challenge history")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Log verbosity",
    )
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="[%(levelname)s] %(message)s")

    service = ChallengeService(_backend(args.database_url, args.json_path, args.fallback_path))
    summary = run_maintenance(service)
    print(f"{summary.today}: {summary.todays_year}" + ("" if summary.unique else " (duplicate)"))
    if args.show_archive:
        for entry in summary.archive:
            print(f"  {entry.date}  {entry.year}  {entry.display_date}")
    return summary


if __name__ == "__main__":
    main()
