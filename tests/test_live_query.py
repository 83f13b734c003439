from __future__ import annotations

import unittest
from dataclasses import dataclass

from live_query import (
    BindingClosed,
    BindingStatus,
    ErrorPolicy,
    ExecutionError,
    InvalidatingSession,
    InvalidationBus,
    LiveQuery,
    QueryDescriptor,
    QueryExecutor,
)
from live_query.meters import READINGS, Reading, readings_for_meter, record_reading, watch_meter
from tests.query_test_helpers import CONFIG, GatedExecutor, ScriptedExecutor, drain, meter_ids, open_meter_db, result


def by_location(location):
    return QueryDescriptor('SELECT * FROM "meters" WHERE "location" = ?;', (location,))


@dataclass
class MeterWithSerial:
    id: str
    serial: str


class LiveQueryStateTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.executor = GatedExecutor()

    async def test_initial_fetch_moves_idle_to_success(self) -> None:
        query = LiveQuery(self.executor, by_location, ["north"], config=CONFIG)
        self.assertEqual(query.state.status, BindingStatus.LOADING)
        await drain()

        self.executor.resolve(0, result({"id": "M001"}))
        state = await query.settled()

        self.assertEqual(state.status, BindingStatus.SUCCESS)
        self.assertEqual(state.data.rows, ({"id": "M001"},))
        self.assertIsNone(state.error)
        self.assertEqual(self.executor.descriptors, [by_location("north")])

    async def test_equal_dependencies_issue_no_new_call(self) -> None:
        query = LiveQuery(self.executor, by_location, ["north"], config=CONFIG)
        await drain()
        self.executor.resolve(0, result())
        await query.settled()

        for _ in range(5):
            self.assertFalse(query.reconcile(["north"]))
        await drain()

        self.assertEqual(len(self.executor.calls), 1)

    async def test_stale_response_is_discarded(self) -> None:
        query = LiveQuery(self.executor, by_location, ["north"], config=CONFIG)
        await drain()
        self.assertTrue(query.reconcile(["south"]))
        await drain()

        self.executor.resolve(1, result({"id": "S001"}))
        await drain()
        self.executor.resolve(0, result({"id": "M001"}))
        await drain()

        self.assertEqual(query.state.data.rows, ({"id": "S001"},))
        self.assertFalse(query.state.is_loading)
        self.assertEqual(query.generation, 2)

    async def test_stale_failure_is_discarded(self) -> None:
        query = LiveQuery(self.executor, by_location, ["north"], config=CONFIG)
        await drain()
        query.reconcile(["south"])
        await drain()

        self.executor.fail(0, "late failure")
        self.executor.resolve(1, result({"id": "S001"}))
        state = await query.settled()

        self.assertIsNone(state.error)
        self.assertEqual(state.data.rows, ({"id": "S001"},))

    async def test_failure_clears_data_by_default_and_next_success_clears_error(self) -> None:
        query = LiveQuery(self.executor, by_location, ["north"], config=CONFIG)
        await drain()
        self.executor.resolve(0, result({"id": "M001"}))
        await query.settled()

        query.refresh()
        await drain()
        error = self.executor.fail(1)
        state = await query.settled()

        self.assertEqual(state.status, BindingStatus.FAILED)
        self.assertIs(state.error, error)
        self.assertIsNone(state.data)

        query.refresh()
        await drain()
        self.executor.resolve(2, result({"id": "M002"}))
        state = await query.settled()

        self.assertIsNone(state.error)
        self.assertEqual(state.data.rows, ({"id": "M002"},))

    async def test_keep_data_policy_retains_previous_result(self) -> None:
        executor = ScriptedExecutor([result({"id": "M001"}), ExecutionError("disk I/O error")])
        query = LiveQuery(
            executor,
            by_location,
            ["north"],
            config=CONFIG,
            error_policy=ErrorPolicy.KEEP_DATA,
        )
        await query.settled()
        query.refresh()
        state = await query.settled()

        self.assertEqual(state.data.rows, ({"id": "M001"},))
        self.assertEqual(state.error.message, "disk I/O error")

    async def test_refresh_refetches_with_equal_dependencies(self) -> None:
        executor = ScriptedExecutor([result(), result({"id": "M001"})])
        query = LiveQuery(executor, by_location, ["north"], config=CONFIG)
        await query.settled()

        task = query.refresh()
        self.assertIsNotNone(task)
        state = await query.settled()

        self.assertEqual(len(executor.descriptors), 2)
        self.assertEqual(state.data.row_count, 1)

    async def test_factory_returning_none_disables_query(self) -> None:
        def for_user(user_id):
            return None if user_id is None else by_location(user_id)

        query = LiveQuery(self.executor, for_user, [None], config=CONFIG)
        await drain()

        self.assertEqual(self.executor.calls, [])
        self.assertEqual(query.state.status, BindingStatus.IDLE)
        self.assertIsNone(query.refresh())

        query.reconcile(["tech-1"])
        await drain()
        self.assertEqual(len(self.executor.calls), 1)

        query.reconcile([None])
        self.executor.resolve(0, result({"id": "late"}))
        await drain()
        self.assertEqual(query.state.status, BindingStatus.IDLE)
        self.assertIsNone(query.state.data)

    async def test_listeners_see_every_state_change(self) -> None:
        query = LiveQuery(self.executor, by_location, ["north"], config=CONFIG)
        seen = []
        remove = query.add_listener(lambda state: seen.append(state.status))
        await drain()
        self.executor.resolve(0, result())
        await query.settled()

        query.refresh()
        remove()
        await drain()
        self.executor.resolve(1, result())
        await query.settled()

        self.assertEqual(seen, [BindingStatus.SUCCESS, BindingStatus.LOADING])

    async def test_close_drops_late_response_and_rejects_operations(self) -> None:
        bus = InvalidationBus()
        query = LiveQuery(
            self.executor, by_location, ["north"], bus=bus, resources=["meters"], config=CONFIG
        )
        await drain()
        with query:
            pass

        self.executor.resolve(0, result({"id": "M001"}))
        await drain()

        self.assertTrue(query.closed)
        self.assertIsNone(query.state.data)
        self.assertEqual(bus.subscriber_count(), 0)
        bus.publish("meters")
        await drain()
        self.assertEqual(len(self.executor.calls), 1)
        with self.assertRaises(BindingClosed):
            query.refresh()
        with self.assertRaises(BindingClosed):
            query.reconcile(["south"])

    async def test_unexpected_executor_error_ends_in_failed(self) -> None:
        query = LiveQuery(ScriptedExecutor([RuntimeError("disk gone")]), by_location, ["north"], config=CONFIG)
        state = await query.settled()

        self.assertEqual(state.status, BindingStatus.FAILED)
        self.assertFalse(state.is_loading)
        self.assertIsInstance(state.error, ExecutionError)
        self.assertEqual(state.error.message, "disk gone")
        self.assertIsInstance(state.error.__cause__, RuntimeError)

    async def test_failed_construction_leaves_no_subscription(self) -> None:
        bus = InvalidationBus()

        with self.assertRaises(ValueError):
            LiveQuery(
                self.executor,
                by_location,
                ["north"],
                bus=bus,
                resources=["meters"],
                config=CONFIG,
                error_policy="retry",
            )

        def broken_factory(location):
            raise KeyError(location)

        with self.assertRaises(KeyError):
            LiveQuery(self.executor, broken_factory, ["north"], bus=bus, resources=["meters"], config=CONFIG)

        self.assertEqual(bus.subscriber_count(), 0)
        bus.publish("meters")

    async def test_resources_without_bus_raise(self) -> None:
        with self.assertRaises(ValueError):
            LiveQuery(self.executor, by_location, ["north"], resources=["meters"], config=CONFIG)


class LiveQueryInvalidationTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.conn, self.db = open_meter_db(meter_ids("north", 2))
        self.executor = QueryExecutor(self.db)
        self.bus = InvalidationBus()
        self.session = InvalidatingSession(self.db, self.bus)

    async def asyncTearDown(self) -> None:
        self.conn.close()

    async def test_each_publish_triggers_exactly_one_refetch(self) -> None:
        query = watch_meter(self.executor, "M001", bus=self.bus)
        await query.settled()
        self.assertEqual(self.executor.calls, 1)

        await record_reading(self.session, Reading(meter_id="M001", value=12.5))
        for _ in range(3):
            query.reconcile(["M001"])
        state = await query.settled()

        self.assertEqual(self.executor.calls, 2)
        self.assertEqual([r.value for r in state.data.rows], [12.5])

        self.bus.publish(READINGS)
        await query.settled()
        self.assertEqual(self.executor.calls, 3)

    async def test_refetch_is_scheduled_not_run_inside_publish(self) -> None:
        query = watch_meter(self.executor, "M001", bus=self.bus)
        await query.settled()

        self.bus.publish(READINGS)

        self.assertEqual(self.executor.calls, 1)
        self.assertTrue(query.state.is_loading)
        await query.settled()
        self.assertEqual(self.executor.calls, 2)

    async def test_unrelated_resources_do_not_refetch(self) -> None:
        query = watch_meter(self.executor, "M001", bus=self.bus)
        await query.settled()

        self.bus.publish("photos")
        await drain()

        self.assertEqual(self.executor.calls, 1)
        self.assertFalse(query.state.is_loading)

    async def test_row_type_mismatch_ends_in_failed(self) -> None:
        query = LiveQuery(
            self.executor,
            lambda: QueryDescriptor('SELECT "id" FROM "meters";', (), MeterWithSerial),
            config=CONFIG,
        )
        state = await query.settled()

        self.assertEqual(state.status, BindingStatus.FAILED)
        self.assertFalse(state.is_loading)
        self.assertIsNone(state.data)
        self.assertIn("serial", state.error.message)

    async def test_set_resources_moves_subscription(self) -> None:
        query = LiveQuery(
            self.executor, readings_for_meter, ["M001"], bus=self.bus, resources=[READINGS], config=CONFIG
        )
        await query.settled()

        query.set_resources(["meters"])
        self.bus.publish(READINGS)
        await drain()
        self.assertEqual(self.executor.calls, 1)

        self.bus.publish("meters")
        await query.settled()
        self.assertEqual(self.executor.calls, 2)
        self.assertEqual(query.resources, frozenset({"meters"}))


if __name__ == "__main__":
    unittest.main()
