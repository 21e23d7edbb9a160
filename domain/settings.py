from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

from domain import db
from domain.db import StoredValueRow

LOGGER = logging.getLogger("domain.settings")


def get_value(key: str, *, bind=None) -> Optional[str]:
    """Return the stored value for *key* or ``None`` if not present/accessible."""

    try:
        with db.get_session(bind) as session:
            row = session.get(StoredValueRow, key)
            return row.value if row else None
    except SQLAlchemyError as exc:
        LOGGER.warning("Unable to read value '%s': %s", key, exc)
        return None


def set_value(key: str, value: str, *, bind=None) -> bool:
    """Persist *value* for *key*. Returns ``True`` on success."""

    try:
        with db.get_session(bind) as session:
            session.merge(StoredValueRow(key=key, value=value))
        return True
    except SQLAlchemyError as exc:
        LOGGER.warning("Unable to write value '%s': %s", key, exc)
        return False


def remove_value(key: str, *, bind=None) -> bool:
    try:
        with db.get_session(bind) as session:
            row = session.get(StoredValueRow, key)
            if row is not None:
                session.delete(row)
        return True
    except SQLAlchemyError as exc:
        LOGGER.warning("Unable to remove value '%s': %s", key, exc)
        return False
