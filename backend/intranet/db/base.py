"""SQLAlchemy declarative base and shared column helpers."""

from __future__ import annotations

import datetime as dt
from uuid import uuid4

from sqlalchemy.orm import DeclarativeBase


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def new_id() -> str:
    return str(uuid4())


class Base(DeclarativeBase):
    pass
