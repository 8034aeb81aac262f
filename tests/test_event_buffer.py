import threading
import unittest

from netwatch.forensics import EventRingBuffer
from netwatch.models import EventKind, ForensicsEvent, Severity

from support import FakeClock


def event(index=0, severity=Severity.LOW, kind=EventKind.TRAFFIC_SPIKE):
    return ForensicsEvent(kind=kind, severity=severity, subject="eth0", detail=str(index), timestamp=float(index))


class EventRingBufferTests(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock(100.0)

    def test_size_never_exceeds_capacity(self):
        buffer = EventRingBuffer(capacity=10, rate_ceiling=1000, clock=self.clock)
        for index in range(25):
            self.assertTrue(buffer.push(event(index)))
            self.assertLessEqual(len(buffer), 10)
        self.assertEqual(len(buffer), 10)
        self.assertEqual([e.detail for e in buffer.drain()], [str(i) for i in range(24, 14, -1)])
        self.assertEqual(len(buffer), 0)

    def test_peek_does_not_clear(self):
        buffer = EventRingBuffer(capacity=5, clock=self.clock)
        for index in range(3):
            buffer.push(event(index))
        self.assertEqual([e.detail for e in buffer.peek(2)], ["2", "1"])
        self.assertEqual(len(buffer), 3)
        buffer.clear()
        self.assertEqual(buffer.peek(), [])

    def test_storm_retains_ceiling_times_seconds(self):
        buffer = EventRingBuffer(capacity=1000, rate_ceiling=100, clock=self.clock)
        for second in range(5):
            self.clock.now = 100.0 + second
            for index in range(400):
                buffer.push(event(index))
                self.clock.now += 0.002
        self.assertEqual(len(buffer), 500)
        self.assertEqual(buffer.accepted, 500)
        self.assertEqual(buffer.dropped, 1500)

    def test_throttled_push_returns_false(self):
        buffer = EventRingBuffer(capacity=100, rate_ceiling=2, clock=self.clock)
        self.assertTrue(buffer.push(event(1)))
        self.assertTrue(buffer.push(event(2)))
        self.assertFalse(buffer.push(event(3)))
        self.clock.advance(1.0)
        self.assertTrue(buffer.push(event(4)))

    def test_critical_events_exceed_ceiling_up_to_hard_limit(self):
        buffer = EventRingBuffer(capacity=1000, rate_ceiling=100, clock=self.clock)
        for index in range(150):
            buffer.push(event(index))
        for index in range(1000):
            buffer.push(event(index, severity=Severity.CRITICAL))
        self.assertEqual(buffer.hard_ceiling, 500)
        self.assertEqual(buffer.accepted, 500)
        self.assertEqual(buffer.dropped, 650)
        critical = [e for e in buffer.peek() if e.is_critical]
        self.assertEqual(len(critical), 400)

    def test_high_performance_mode_halves_capacity(self):
        buffer = EventRingBuffer(capacity=1000, rate_ceiling=10_000, clock=self.clock)
        for index in range(800):
            buffer.push(event(index))
        buffer.set_high_performance_mode(True)
        self.assertEqual(buffer.capacity, 500)
        self.assertEqual(len(buffer), 500)
        self.assertEqual(buffer.peek(1)[0].detail, "799")
        self.assertEqual(buffer.peek()[-1].detail, "300")

        buffer.push(event(800))
        self.assertEqual(len(buffer), 500)
        self.assertEqual(buffer.peek(1)[0].detail, "800")
        self.assertEqual(buffer.peek()[-1].detail, "301")

        buffer.set_high_performance_mode(False)
        self.assertEqual(buffer.capacity, 1000)
        self.assertEqual(len(buffer), 500)
        self.assertEqual(buffer.peek(1)[0].detail, "800")

    def test_arrival_rate(self):
        buffer = EventRingBuffer(capacity=100, rate_ceiling=10, clock=self.clock)
        for index in range(150):
            buffer.push(event(index))
        self.assertEqual(buffer.arrival_rate(), 150)
        self.clock.advance(1.2)
        self.assertEqual(buffer.arrival_rate(), 150)
        self.clock.advance(3.0)
        self.assertEqual(buffer.arrival_rate(), 0)

    def test_invalid_arguments(self):
        with self.assertRaises(ValueError):
            EventRingBuffer(capacity=0)
        with self.assertRaises(ValueError):
            EventRingBuffer(rate_ceiling=0)


class ConcurrentAccessTests(unittest.TestCase):
    EVENTS = 20_000

    def test_drain_while_pushing_loses_nothing(self):
        buffer = EventRingBuffer(capacity=self.EVENTS, rate_ceiling=self.EVENTS, clock=FakeClock(100.0))
        done = threading.Event()

        def produce():
            for index in range(self.EVENTS):
                buffer.push(event(index))
            done.set()

        producer = threading.Thread(target=produce)
        producer.start()
        drained = []
        while not done.is_set():
            drained.extend(buffer.drain())
        producer.join()
        drained.extend(buffer.drain())

        self.assertNotIn(None, drained)
        self.assertEqual(buffer.accepted, self.EVENTS)
        self.assertEqual(sorted(int(e.detail) for e in drained), list(range(self.EVENTS)))

    def test_peek_while_resizing(self):
        buffer = EventRingBuffer(capacity=100, rate_ceiling=self.EVENTS, clock=FakeClock(100.0))
        for index in range(100):
            buffer.push(event(index))
        done = threading.Event()
        errors = []

        def toggle():
            try:
                for round_no in range(2000):
                    buffer.set_high_performance_mode(round_no % 2 == 0)
                    buffer.push(event(round_no))
            except Exception as e:
                errors.append(e)
            finally:
                done.set()

        worker = threading.Thread(target=toggle)
        worker.start()
        while not done.is_set():
            self.assertNotIn(None, buffer.peek())
        worker.join()
        self.assertEqual(errors, [])


class ForensicsEventTests(unittest.TestCase):
    def test_detail_is_capped(self):
        long_event = ForensicsEvent(EventKind.INVALID_INPUT, Severity.LOW, detail="x" * 1000)
        self.assertEqual(len(long_event.detail), 256)
        self.assertTrue(long_event.detail.endswith("..."))

    def test_severity_coerced_and_serialized(self):
        e = ForensicsEvent(EventKind.PROBE_FAILURE, 4, subject="1.1.1.1", timestamp=5.0)
        self.assertIs(e.severity, Severity.CRITICAL)
        self.assertTrue(e.is_critical)
        self.assertEqual(e.to_dict()['severity'], "critical")
        self.assertEqual(e.to_dict()['kind'], "probe_failure")


if __name__ == "__main__":
    unittest.main()
