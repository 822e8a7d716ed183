"""User preference records and partition enumeration."""

from __future__ import annotations

from typing import Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from newscache.db.models import UserPreference
from newscache.db.session import session_scope
from newscache.models.domain import PartitionKey, PreferenceRecord

from .cache import SessionFactory


def expand_partitions(records: Iterable[PreferenceRecord]) -> List[PartitionKey]:
    """Return one partition per distinct (category, country, language), first seen first."""
    seen: set[str] = set()
    partitions: List[PartitionKey] = []
    for record in records:
        for category in record.categories:
            partition = PartitionKey(category=category, country=record.country, language=record.language)
            if partition.key in seen:
                continue
            seen.add(partition.key)
            partitions.append(partition)
    return partitions


def _to_record(row: UserPreference) -> PreferenceRecord:
    return PreferenceRecord(categories=row.categories, country=row.country, language=row.language)


def get_preferences(session: Session, user_id: str) -> Optional[PreferenceRecord]:
    row = session.execute(select(UserPreference).where(UserPreference.user_id == user_id)).scalars().first()
    return _to_record(row) if row is not None else None


def save_preferences(session: Session, user_id: str, record: PreferenceRecord) -> UserPreference:
    row = session.execute(select(UserPreference).where(UserPreference.user_id == user_id)).scalars().first()
    if row is None:
        row = UserPreference(user_id=user_id)
        session.add(row)
    row.categories = [c.value for c in record.categories]
    row.country = record.country
    row.language = record.language
    session.flush()
    return row


def list_preferences(session: Session) -> List[PreferenceRecord]:
    rows = session.execute(select(UserPreference).order_by(UserPreference.created_at, UserPreference.user_id)).scalars()
    return [_to_record(row) for row in rows]


class PreferenceEnumerator:
    """Read-only view over every stored preference record."""

    def __init__(self, session_factory: SessionFactory = session_scope) -> None:
        self._session_factory = session_factory

    def list_preferences(self) -> List[PreferenceRecord]:
        with self._session_factory() as session:
            return list_preferences(session)

    def partitions(self) -> List[PartitionKey]:
        return expand_partitions(self.list_preferences())
