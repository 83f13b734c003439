from __future__ import annotations

import unittest

from live_query import InvalidationBus


class InvalidationBusTests(unittest.TestCase):
    def setUp(self) -> None:
        self.bus = InvalidationBus()
        self.seen: list[tuple[str, str]] = []

    def _recorder(self, label: str):
        return lambda resource: self.seen.append((label, resource))

    def test_publish_notifies_only_matching_subscriptions(self) -> None:
        self.bus.subscribe({"readings"}, self._recorder("a"))
        self.bus.subscribe("meters", self._recorder("b"))

        self.bus.publish("readings")

        self.assertEqual(self.seen, [("a", "readings")])

    def test_subscription_is_notified_once_per_publish_call(self) -> None:
        self.bus.subscribe({"meters", "readings"}, self._recorder("a"))

        self.bus.publish("readings", "meters", "readings")

        self.assertEqual(self.seen, [("a", "readings")])

    def test_delivery_follows_subscription_order(self) -> None:
        for label in ("first", "second", "third"):
            self.bus.subscribe("readings", self._recorder(label))

        self.bus.publish("readings")

        self.assertEqual([label for label, _ in self.seen], ["first", "second", "third"])

    def test_unsubscribe_stops_delivery_and_is_idempotent(self) -> None:
        subscription = self.bus.subscribe("readings", self._recorder("a"))
        self.bus.unsubscribe(subscription)
        self.bus.unsubscribe(subscription)

        self.bus.publish("readings")

        self.assertEqual(self.seen, [])
        self.assertFalse(subscription.active)
        self.assertEqual(self.bus.subscriber_count(), 0)

    def test_publish_during_delivery_is_queued_not_nested(self) -> None:
        depth = {"current": 0, "max": 0}

        def reentrant(resource: str) -> None:
            depth["current"] += 1
            depth["max"] = max(depth["max"], depth["current"])
            self.seen.append(("reentrant", resource))
            if resource == "readings":
                self.bus.publish("meters")
            depth["current"] -= 1

        self.bus.subscribe({"readings", "meters"}, reentrant)
        self.bus.subscribe("readings", self._recorder("after"))

        self.bus.publish("readings")

        self.assertEqual(
            self.seen,
            [("reentrant", "readings"), ("after", "readings"), ("reentrant", "meters")],
        )
        self.assertEqual(depth["max"], 1)

    def test_subscription_removed_during_delivery_is_skipped(self) -> None:
        handles = {}
        self.bus.subscribe("readings", lambda _resource: self.bus.unsubscribe(handles["later"]))
        handles["later"] = self.bus.subscribe("readings", self._recorder("later"))

        self.bus.publish("readings")

        self.assertEqual(self.seen, [])

    def test_failing_callback_does_not_block_others(self) -> None:
        def broken(_resource: str) -> None:
            raise RuntimeError("listener bug")

        broken_subscription = self.bus.subscribe("readings", broken)
        self.bus.subscribe("readings", self._recorder("ok"))

        with self.assertRaisesRegex(RuntimeError, "listener bug"):
            self.bus.publish("readings")

        self.assertEqual(self.seen, [("ok", "readings")])
        self.bus.unsubscribe(broken_subscription)
        self.bus.publish("readings")
        self.assertEqual(len(self.seen), 2)

    def test_subscriber_count_by_resource(self) -> None:
        self.bus.subscribe({"meters", "readings"}, self._recorder("a"))
        self.bus.subscribe("readings", self._recorder("b"))

        self.assertEqual(self.bus.subscriber_count("readings"), 2)
        self.assertEqual(self.bus.subscriber_count("meters"), 1)
        self.assertEqual(self.bus.subscriber_count("photos"), 0)

    def test_invalid_subscriptions_raise(self) -> None:
        with self.assertRaises(ValueError):
            self.bus.subscribe([], self._recorder("a"))
        with self.assertRaises(TypeError):
            self.bus.subscribe([""], self._recorder("a"))
        with self.assertRaises(TypeError):
            self.bus.subscribe("readings", "not callable")  # type: ignore[arg-type]

    def test_publish_without_ids_is_noop(self) -> None:
        self.bus.subscribe("readings", self._recorder("a"))
        self.bus.publish()
        self.assertEqual(self.seen, [])


if __name__ == "__main__":
    unittest.main()
