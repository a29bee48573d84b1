"""
Утилиты для работы со временем.

Все отметки времени храним в UTC. SQLite возвращает datetime без tzinfo,
поэтому перед сравнением приводим значения через as_utc.
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Наивный datetime считаем UTC, aware переводим в UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)
