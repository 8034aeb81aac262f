import unittest

from netwatch.engine.aggregator import window_capacity
from netwatch.engine.history import HistoryRing
from netwatch.engine.window import RateWindow


class RateWindowTests(unittest.TestCase):
    def test_constant_delta_converges_over_ten_minutes(self):
        window = RateWindow(300, window_capacity(300))
        delta = 62_500
        for tick in range(1, 1201):
            window.add(tick * 0.5, delta, 50, 0.5)
        self.assertEqual(len(window), 600)
        self.assertAlmostEqual(window.average_rate, delta / 0.5)
        self.assertAlmostEqual(window.average_packet_rate, 100.0)
        self.assertAlmostEqual(window.window_peak, delta / 0.5)

        # Length stays put once the window is full
        for tick in range(1201, 1401):
            window.add(tick * 0.5, delta, 50, 0.5)
        self.assertEqual(len(window), 600)

    def test_no_entry_older_than_window_after_insert(self):
        window = RateWindow(10, 1000)
        t = 0.0
        for step in (0.3, 1.7, 0.1, 4.0, 2.2, 0.9, 6.5, 0.4, 3.3):
            t += step
            window.add(t, 100, 1, step)
            self.assertGreater(window.oldest_timestamp, t - 10)
            for entry_ts, _b, _p, _e in window.entries():
                self.assertGreater(entry_ts, t - 10)

    def test_average_of_equal_deltas_equals_instant_rate(self):
        window = RateWindow(5, 100)
        for tick in range(1, 30):
            rate = window.add(float(tick), 4000, 4, 1.0)
            self.assertEqual(rate, 4000.0)
            self.assertAlmostEqual(window.average_rate, rate)

    def test_window_peak_follows_evictions(self):
        window = RateWindow(2, 100)
        window.add(1.0, 5000, 0, 1.0)
        window.add(2.0, 100, 0, 1.0)
        self.assertEqual(window.window_peak, 5000.0)
        window.add(3.5, 300, 0, 1.5)
        self.assertEqual(window.window_peak, 200.0)
        self.assertEqual(len(window), 2)

    def test_capacity_overwrites_oldest(self):
        window = RateWindow(100, 3)
        for tick in range(1, 6):
            window.add(float(tick), tick * 10, tick, 1.0)
        self.assertEqual(len(window), 3)
        self.assertEqual([entry[0] for entry in window.entries()], [3.0, 4.0, 5.0])
        self.assertEqual(window.sum_bytes, 120)
        self.assertEqual(window.sum_packets, 12)

    def test_running_sums_survive_many_laps(self):
        window = RateWindow(1, 20)
        t = 0.0
        for _ in range(5000):
            t += 0.1
            window.add(t, 10, 1, 0.1)
        self.assertAlmostEqual(window.sum_elapsed, sum(entry[3] for entry in window.entries()))
        self.assertAlmostEqual(window.average_rate, 100.0, places=6)

    def test_empty_window(self):
        window = RateWindow(10, 10)
        self.assertEqual(window.average_rate, 0.0)
        self.assertEqual(window.window_peak, 0.0)
        self.assertIsNone(window.oldest_timestamp)

    def test_rejects_bad_input(self):
        window = RateWindow(10, 10)
        with self.assertRaises(ValueError):
            window.add(1.0, 10, 1, 0.0)
        with self.assertRaises(ValueError):
            window.add(1.0, -10, 1, 1.0)
        with self.assertRaises(ValueError):
            RateWindow(0, 10)

    def test_clear(self):
        window = RateWindow(10, 10)
        window.add(1.0, 10, 1, 1.0)
        window.clear()
        self.assertEqual(len(window), 0)
        self.assertEqual(window.sum_bytes, 0)


class HistoryRingTests(unittest.TestCase):
    def test_capacity_is_bounded(self):
        history = HistoryRing(capacity=120)
        for tick in range(500):
            history.append(float(tick), float(tick * 2))
        self.assertEqual(len(history), 120)
        points = history.points()
        self.assertEqual(points[0], (380.0, 760.0))
        self.assertEqual(points[-1], (499.0, 998.0))
        self.assertEqual(history.latest, (499.0, 998.0))

    def test_resolution_merges_close_points(self):
        history = HistoryRing(capacity=10, resolution=1.0)
        history.append(0.0, 100.0)
        history.append(0.5, 300.0)
        history.append(1.0, 50.0)
        self.assertEqual(history.points(), ((0.0, 200.0), (1.0, 50.0)))

    def test_rates_and_clear(self):
        history = HistoryRing(capacity=3)
        for value in (1.0, 2.0, 3.0, 4.0):
            history.append(value, value * 10)
        self.assertEqual(history.rates(), [20.0, 30.0, 40.0])
        history.clear()
        self.assertEqual(history.points(), ())
        self.assertIsNone(history.latest)


if __name__ == "__main__":
    unittest.main()
