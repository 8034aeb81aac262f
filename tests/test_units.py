import unittest

from netwatch.engine.units import TrafficUnit, format_number, format_rate, format_total


class TrafficUnitTests(unittest.TestCase):
    def test_from_string(self):
        self.assertIs(TrafficUnit.from_string("h"), TrafficUnit.HUMAN_BIT)
        self.assertIs(TrafficUnit.from_string("G"), TrafficUnit.GIGABYTE)
        with self.assertRaises(ValueError):
            TrafficUnit.from_string("x")

    def test_next_cycles_through_all_units(self):
        self.assertIs(TrafficUnit.HUMAN_BIT.next(), TrafficUnit.HUMAN_BYTE)
        self.assertIs(TrafficUnit.GIGABYTE.next(), TrafficUnit.HUMAN_BIT)
        unit, seen = TrafficUnit.HUMAN_BIT, []
        for _ in range(len(TrafficUnit)):
            seen.append(unit)
            unit = unit.next()
        self.assertEqual(len(set(seen)), 10)


class FormatTests(unittest.TestCase):
    def test_human_bits_scale_by_1000(self):
        self.assertEqual(format_rate(125_000, TrafficUnit.HUMAN_BIT), "1.00 Mbit/s")
        self.assertEqual(format_rate(100, TrafficUnit.HUMAN_BIT), "800 bit/s")
        self.assertEqual(format_rate(1_562_500, TrafficUnit.HUMAN_BIT), "12.5 Mbit/s")

    def test_human_bytes_scale_by_1024(self):
        self.assertEqual(format_total(1500), "1.46 KB")
        self.assertEqual(format_total(150 * 1024), "150 KB")
        self.assertEqual(format_total(12.5 * 1024 * 1024), "12.5 MB")
        self.assertEqual(format_total(0), "0.00 B")

    def test_fixed_units(self):
        self.assertEqual(format_rate(100, TrafficUnit.BIT), "800 bit/s")
        self.assertEqual(format_rate(100, TrafficUnit.BYTE), "100 B/s")
        self.assertEqual(format_rate(1000, TrafficUnit.KILOBIT), "8.00 kbit/s")
        self.assertEqual(format_rate(2048, TrafficUnit.KILOBYTE), "2.00 KB/s")
        self.assertEqual(format_rate(1_048_576, TrafficUnit.MEGABYTE), "1.00 MB/s")
        self.assertEqual(format_rate(125_000_000, TrafficUnit.GIGABIT), "1.00 Gbit/s")

    def test_negative_values_clamp_to_zero(self):
        self.assertEqual(format_total(-5, TrafficUnit.BYTE), "0 B")

    def test_format_number(self):
        self.assertEqual(format_number(1234567), "1,234,567")
        self.assertEqual(format_number(12), "12")


if __name__ == "__main__":
    unittest.main()
