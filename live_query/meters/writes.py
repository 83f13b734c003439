"""Write path for readings; every commit invalidates the `readings` resource."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional

from ..core.session import InvalidatingSession
from .models import READINGS, Reading


def _now() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


async def record_reading(session: InvalidatingSession, reading: Reading) -> Reading:
    """Store a new reading; `created_at` defaults to the current UTC time."""

    if not reading.meter_id:
        raise ValueError("reading.meter_id is required.")
    if not reading.created_at:
        reading.created_at = _now()
    return await session.insert(reading)


async def mark_synced(
    session: InvalidatingSession,
    reading_ids: Iterable[int],
    synced_at: Optional[str] = None,
) -> int:
    """Stamp readings as uploaded by the sync process; returns rows updated."""

    ids = list(dict.fromkeys(reading_ids))
    if not ids:
        return 0
    d = session.d
    sql = (
        f"UPDATE {d.q(READINGS)} SET {d.q('synced_at')} = {d.placeholder('synced_at')} "
        f"WHERE {d.q('id')} IN ({d.placeholders(len(ids))}) AND {d.q('synced_at')} IS NULL;"
    )
    return await session.execute(sql, [synced_at or _now(), *ids], touches=(READINGS,))
