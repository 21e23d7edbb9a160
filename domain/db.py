from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import Column, String, Text
from sqlmodel import Field, Session, SQLModel, create_engine

DATABASE_URL = os.environ.get("DOUBLE_FEATURE_DATABASE_URL", "sqlite:///double_feature.db")


def make_engine(url: str = DATABASE_URL):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, echo=False, connect_args=connect_args)


engine = make_engine()


class StoredValueRow(SQLModel, table=True):
    """Key/value record backing the client-style persistent storage."""

    key: str = Field(sa_column=Column(String(length=128), primary_key=True))
    value: str = Field(sa_column=Column(Text, nullable=False))


def create_all(bind=None) -> None:
    """Create all SQLModel tables in the configured database."""

    SQLModel.metadata.create_all(bind or engine)


@contextmanager
def get_session(bind=None) -> Iterator[Session]:
    """Yield a transactional session bound to the configured engine."""

    session = Session(bind or engine, expire_on_commit=False)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
