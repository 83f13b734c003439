"""Meter list example: paged bindings, pull-to-refresh, and live invalidation."""

from __future__ import annotations

import asyncio

from live_query import InvalidatingSession, InvalidationBus, QueryExecutor, open_sqlite
from live_query.meters import Meter, Reading, apply_schema, list_meters, record_reading, watch_meter


async def main() -> None:
    db = await open_sqlite(":memory:")
    async with db:
        await apply_schema(db)
        bus = InvalidationBus()
        session = InvalidatingSession(db, bus)
        executor = QueryExecutor(db)

        async with session.begin():
            for n in range(1, 14):
                await session.insert(Meter(id=f"M{n:03d}", name=f"Meter {n}", location="north", unit="kWh"))

        meters = list_meters(executor, "north", bus=bus)
        meters.add_listener(
            lambda state: print(
                f"  pages={state.page_count} rows={len(state.rows)} "
                f"finished={state.is_finished} loading={state.is_loading}"
            )
        )
        await meters.settled()

        print("Scrolling to the end:")
        while meters.fetch_next_page() is not None:
            await meters.settled()

        readings = watch_meter(executor, "M003", bus=bus)
        await readings.settled()
        print("Readings of M003 before:", readings.state.data.row_count)

        print("Recording a reading (list reloads silently):")
        await record_reading(session, Reading(meter_id="M003", value=1520.4, technician_name="Ana"))
        await asyncio.gather(meters.settled(), readings.settled())
        print("Readings of M003 after:", readings.state.data.row_count)
        print("M003 last reading:", meters.state.rows[2].last_reading_at)

        print("Pull to refresh:")
        meters.refresh()
        await meters.settled()

        meters.close()
        readings.close()


if __name__ == "__main__":
    asyncio.run(main())
