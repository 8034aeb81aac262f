import unittest

from netwatch.engine.aggregator import StatisticsAggregator
from netwatch.models import CounterDelta


def delta(timestamp, rx=0, tx=0, elapsed=1.0, name="eth0", **extra):
    return CounterDelta(name=name, elapsed=elapsed, timestamp=timestamp,
                        bytes_recv=rx, bytes_sent=tx,
                        packets_recv=rx // 100, packets_sent=tx // 100, **extra)


class StatisticsAggregatorTests(unittest.TestCase):
    def setUp(self):
        self.aggregator = StatisticsAggregator(average_window=300, history_capacity=120)

    def test_instant_and_average_rates(self):
        self.aggregator.record("eth0", delta(1.0, rx=1000, tx=500))
        snap = self.aggregator.record("eth0", delta(3.0, rx=3000, tx=1000, elapsed=2.0))
        self.assertEqual(snap.rx.instant_rate, 1500.0)
        self.assertEqual(snap.tx.instant_rate, 500.0)
        self.assertAlmostEqual(snap.rx.average_rate, 4000 / 3.0)
        self.assertEqual(snap.rx.packet_rate, 15.0)
        self.assertEqual(snap.samples, 2)
        self.assertEqual(snap.window_entries, 2)
        self.assertEqual(snap.last_update, 3.0)
        self.assertEqual(snap.total_rate, 2000.0)

    def test_peak_is_monotone_and_min_skips_zero(self):
        for timestamp, rx in ((1.0, 100), (2.0, 500), (3.0, 200), (4.0, 0), (5.0, 300)):
            snap = self.aggregator.record("eth0", delta(timestamp, rx=rx))
        self.assertEqual(snap.rx.peak_rate, 500.0)
        self.assertEqual(snap.rx.min_rate, 200.0)

    def test_first_delta_does_not_set_peak(self):
        snap = self.aggregator.record("eth0", delta(1.0, rx=10_000_000))
        self.assertEqual(snap.rx.peak_rate, 0.0)
        self.assertEqual(snap.rx.instant_rate, 10_000_000.0)

    def test_window_peak_expires_but_peak_does_not(self):
        aggregator = StatisticsAggregator(average_window=2)
        aggregator.record("eth0", delta(1.0, rx=1000))
        aggregator.record("eth0", delta(2.0, rx=5000))
        aggregator.record("eth0", delta(3.0, rx=100))
        snap = aggregator.record("eth0", delta(4.5, rx=150, elapsed=1.5))
        self.assertEqual(snap.rx.peak_rate, 5000.0)
        self.assertEqual(snap.rx.window_peak_rate, 100.0)

    def test_cumulative_totals_and_errors(self):
        self.aggregator.record("eth0", delta(1.0, rx=1000, tx=10, errors_in=2, drops_out=1))
        snap = self.aggregator.record("eth0", delta(2.0, rx=2000, tx=20, errors_in=1))
        self.assertEqual(snap.rx.cumulative_bytes, 3000)
        self.assertEqual(snap.tx.cumulative_bytes, 30)
        self.assertEqual(snap.rx.cumulative_packets, 30)
        self.assertEqual(snap.rx.errors, 3)
        self.assertEqual(snap.tx.drops, 1)

    def test_history_is_bounded(self):
        aggregator = StatisticsAggregator(average_window=10, history_capacity=5)
        for tick in range(1, 20):
            snap = aggregator.record("eth0", delta(float(tick), rx=tick * 10))
        self.assertEqual(len(snap.rx.history), 5)
        self.assertEqual(snap.rx.history[-1], (19.0, 190.0))
        self.assertEqual(aggregator.rate_history("eth0"), [150.0, 160.0, 170.0, 180.0, 190.0])

    def test_reset_and_remove(self):
        self.aggregator.record("eth0", delta(1.0, rx=1000))
        self.aggregator.record("eth0", delta(2.0, rx=9000))
        self.aggregator.reset("eth0")
        snap = self.aggregator.snapshot("eth0")
        self.assertEqual(snap.rx.peak_rate, 0.0)
        self.assertEqual(snap.rx.cumulative_bytes, 0)
        self.assertEqual(snap.samples, 0)

        self.aggregator.remove("eth0")
        self.assertNotIn("eth0", self.aggregator)
        with self.assertRaises(KeyError):
            self.aggregator.snapshot("eth0")
        with self.assertRaises(KeyError):
            self.aggregator.reset("eth0")

    def test_snapshot_all_and_names(self):
        self.aggregator.record("eth1", delta(1.0, name="eth1", rx=10))
        self.aggregator.record("eth0", delta(1.0, rx=10))
        self.assertEqual(self.aggregator.names(), ["eth0", "eth1"])
        self.assertEqual(set(self.aggregator.snapshot_all()), {"eth0", "eth1"})

    def test_stale_snapshot_keeps_statistics(self):
        self.aggregator.record("eth0", delta(1.0, rx=1000))
        snap = self.aggregator.snapshot("eth0", stale=True, error="Device not found: eth0")
        self.assertTrue(snap.stale)
        self.assertEqual(snap.rx.cumulative_bytes, 1000)

    def test_mismatched_name_rejected(self):
        with self.assertRaises(ValueError):
            self.aggregator.record("eth1", delta(1.0, rx=10))


if __name__ == "__main__":
    unittest.main()
