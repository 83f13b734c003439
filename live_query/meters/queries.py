"""Query factories and bindings behind the field app's screens."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Optional

from ..core.bus import InvalidationBus
from ..core.binding import LiveQuery
from ..core.contracts import ExecutorPort
from ..core.descriptors import QueryDescriptor, QueryResult
from ..core.paging import PagedQuery
from .models import METERS, READINGS, Meter, MeterSummary, Reading, ReadingDetail

PAGE_SIZE = 8
RECENT_READINGS_LIMIT = 12
RECENT_READINGS_DAYS = 7


def meter_by_id(meter_id: str) -> QueryDescriptor:
    return QueryDescriptor('SELECT * FROM "meters" WHERE "id" = ?;', (meter_id,), Meter)


def readings_for_meter(meter_id: str) -> QueryDescriptor:
    """Readings of one meter, newest first."""

    return QueryDescriptor(
        'SELECT * FROM "readings" WHERE "meter_id" = ? ORDER BY "created_at" DESC, "id" DESC;',
        (meter_id,),
        Reading,
    )


def reading_by_id(reading_id: int) -> QueryDescriptor:
    return QueryDescriptor(
        """SELECT readings.*, meters.name AS meter_name, meters.unit, meters.location
        FROM readings JOIN meters ON readings.meter_id = meters.id
        WHERE readings.id = ?;""",
        (reading_id,),
        ReadingDetail,
    )


def meters_page(cursor: str, location: str, page_size: int = PAGE_SIZE) -> QueryDescriptor:
    """One page of a location's meters with their latest reading time.

    Pages are keyed on `meters.id`; `cursor` is the last id of the previous
    page (`""` for the first page).
    """

    return QueryDescriptor(
        """SELECT meters.*, MAX(readings.created_at) AS last_reading_at
        FROM meters LEFT JOIN readings ON readings.meter_id = meters.id
        WHERE meters.location = ? AND meters.id > ?
        GROUP BY meters.id
        ORDER BY meters.id
        LIMIT ?;""",
        (location, cursor, page_size),
        MeterSummary,
    )


def meter_cursor(page: QueryResult[MeterSummary]) -> Optional[str]:
    last = page.last()
    return last.id if last is not None else None


def readings_today_count(location: str) -> QueryDescriptor:
    return QueryDescriptor(
        """SELECT COUNT(readings.id) AS count
        FROM readings JOIN meters ON readings.meter_id = meters.id
        WHERE meters.location = ? AND date(readings.created_at) = date('now');""",
        (location,),
    )


def meter_count(location: str) -> QueryDescriptor:
    return QueryDescriptor(
        'SELECT COUNT("id") AS count FROM "meters" WHERE "location" = ?;',
        (location,),
    )


def readings_today_total() -> QueryDescriptor:
    return QueryDescriptor(
        "SELECT COUNT(*) AS count FROM readings WHERE date(created_at) = date('now');"
    )


def recent_readings(
    technician_id: Optional[str],
    since: Optional[datetime] = None,
) -> Optional[QueryDescriptor]:
    """A technician's latest readings of the past week.

    Returns `None` (query disabled) while no technician is signed in.
    """

    if technician_id is None:
        return None
    if since is None:
        since = datetime.now(timezone.utc) - timedelta(days=RECENT_READINGS_DAYS)
    return QueryDescriptor(
        """SELECT readings.*, meters.name AS meter_name, meters.unit, meters.location
        FROM readings JOIN meters ON readings.meter_id = meters.id
        WHERE readings.technician_id = ? AND readings.created_at > ?
        ORDER BY readings.created_at DESC
        LIMIT ?;""",
        (technician_id, since.isoformat(timespec="seconds"), RECENT_READINGS_LIMIT),
        ReadingDetail,
    )


def list_meters(
    executor: ExecutorPort,
    location: str,
    *,
    bus: Optional[InvalidationBus] = None,
    page_size: int = PAGE_SIZE,
) -> PagedQuery[MeterSummary]:
    """Paged meter list of one location, refreshed when meters or readings change."""

    return PagedQuery(
        executor,
        partial(meters_page, page_size=page_size),
        meter_cursor,
        (location,),
        page_size=page_size,
        initial_cursor="",
        bus=bus,
        resources=(METERS, READINGS) if bus is not None else (),
        name=f"meters[{location}]",
    )


def watch_meter(
    executor: ExecutorPort,
    meter_id: str,
    *,
    bus: Optional[InvalidationBus] = None,
) -> LiveQuery[Reading]:
    """Live readings of one meter, refreshed when readings change."""

    return LiveQuery(
        executor,
        readings_for_meter,
        (meter_id,),
        bus=bus,
        resources=(READINGS,) if bus is not None else (),
        name=f"readings[{meter_id}]",
    )
