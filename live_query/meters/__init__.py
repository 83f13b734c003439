"""Meter readings: row types, screen queries, and the reading write path."""

from .models import METERS, READINGS, Meter, MeterSummary, Reading, ReadingDetail, apply_schema
from .queries import (
    PAGE_SIZE,
    list_meters,
    meter_by_id,
    meter_count,
    meter_cursor,
    meters_page,
    reading_by_id,
    readings_for_meter,
    readings_today_count,
    readings_today_total,
    recent_readings,
    watch_meter,
)
from .writes import mark_synced, record_reading

__all__ = [
    "METERS",
    "PAGE_SIZE",
    "READINGS",
    "Meter",
    "MeterSummary",
    "Reading",
    "ReadingDetail",
    "apply_schema",
    "list_meters",
    "mark_synced",
    "meter_by_id",
    "meter_count",
    "meter_cursor",
    "meters_page",
    "reading_by_id",
    "readings_for_meter",
    "readings_today_count",
    "readings_today_total",
    "recent_readings",
    "record_reading",
    "watch_meter",
]
