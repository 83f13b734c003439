"""Row types and schema for meters and their readings."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import ClassVar, Optional

from ..core.contracts import AsyncDatabasePort

METERS = "meters"
READINGS = "readings"


@dataclass
class Meter:
    __table__: ClassVar[str] = METERS

    id: str = field(default="", metadata={"pk": True})
    name: str = ""
    location: str = ""
    unit: str = ""
    type: str = ""
    notes: str = ""
    image_path: Optional[str] = None


@dataclass
class Reading:
    __table__: ClassVar[str] = READINGS

    id: Optional[int] = field(default=None, metadata={"pk": True, "auto": True})
    meter_id: str = ""
    value: float = 0.0
    created_at: str = ""
    synced_at: Optional[str] = None
    image_path: Optional[str] = None
    technician_id: Optional[str] = None
    technician_name: Optional[str] = None

    @property
    def is_synced(self) -> bool:
        return self.synced_at is not None


@dataclass
class MeterSummary:
    """Meter list row: the meter plus the time of its latest reading."""

    id: str
    name: str = ""
    location: str = ""
    unit: str = ""
    type: str = ""
    notes: str = ""
    image_path: Optional[str] = None
    last_reading_at: Optional[str] = None


@dataclass
class ReadingDetail:
    """Reading joined with the meter it belongs to."""

    id: int
    meter_id: str
    value: float
    created_at: str
    synced_at: Optional[str] = None
    image_path: Optional[str] = None
    technician_id: Optional[str] = None
    technician_name: Optional[str] = None
    meter_name: str = ""
    unit: str = ""
    location: str = ""


SCHEMA = (
    """CREATE TABLE IF NOT EXISTS "meters" (
        "id" TEXT PRIMARY KEY,
        "name" TEXT NOT NULL DEFAULT '',
        "location" TEXT NOT NULL DEFAULT '',
        "unit" TEXT NOT NULL DEFAULT '',
        "type" TEXT NOT NULL DEFAULT '',
        "notes" TEXT NOT NULL DEFAULT '',
        "image_path" TEXT
    );""",
    """CREATE TABLE IF NOT EXISTS "readings" (
        "id" INTEGER PRIMARY KEY,
        "meter_id" TEXT NOT NULL REFERENCES "meters" ("id"),
        "value" REAL NOT NULL,
        "created_at" TEXT NOT NULL,
        "synced_at" TEXT,
        "image_path" TEXT,
        "technician_id" TEXT,
        "technician_name" TEXT
    );""",
    'CREATE INDEX IF NOT EXISTS "idx_meters_location" ON "meters" ("location", "id");',
    'CREATE INDEX IF NOT EXISTS "idx_readings_meter" ON "readings" ("meter_id", "created_at");',
)


async def apply_schema(db: AsyncDatabasePort) -> None:
    """Create the meters/readings tables and indexes when missing."""

    async with db.transaction():
        for statement in SCHEMA:
            await db.execute_rowcount(statement)
