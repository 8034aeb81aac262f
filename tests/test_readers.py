import os
import tempfile
import unittest
from unittest import mock

from netwatch.errors import DeviceNotFound, InvalidName, ParseError, PermissionDenied, ReaderError
from netwatch.readers import (
    DummyReader,
    LinuxReader,
    create_reader,
    is_virtual_interface,
    parse_proc_net_dev,
)

from support import FakeClock

PROC_NET_DEV = """\
Inter-|   Receive                                                |  Transmit
 face |bytes    packets errs drop fifo frame compressed multicast|bytes    packets errs drop fifo colls carrier compressed
    lo:    1000      10    0    0    0     0          0         0     1000      10    0    0    0     0       0          0
  eth0: 9876543210  5000    1    2    0     0          0         0 1234567890   3000    3    4    0     0       0          0
docker0:     500       5    0    0    0     0          0         0      500       5    0    0    0     0       0          0
 wlan0: 12 34 56
eth0.100:     42       1    0    0    0     0          0         0       24       1    0    0    0     0       0          0
"""


class ParseProcNetDevTests(unittest.TestCase):
    def test_columns(self):
        rows = parse_proc_net_dev(PROC_NET_DEV)
        self.assertEqual(rows['eth0'], {
            'bytes_recv': 9876543210,
            'packets_recv': 5000,
            'errors_in': 1,
            'drops_in': 2,
            'bytes_sent': 1234567890,
            'packets_sent': 3000,
            'errors_out': 3,
            'drops_out': 4,
        })
        self.assertEqual(rows['eth0.100']['bytes_sent'], 24)

    def test_malformed_line_fails_only_that_interface(self):
        rows = parse_proc_net_dev(PROC_NET_DEV)
        self.assertIsInstance(rows['wlan0'], ParseError)
        self.assertIsInstance(rows['eth0'], dict)
        self.assertIsInstance(rows['lo'], dict)

    def test_non_numeric_counter(self):
        rows = parse_proc_net_dev("h1\nh2\n  eth0: 1 2 3 4 5 6 7 8 x 10 11 12\n")
        self.assertIsInstance(rows['eth0'], ParseError)


class LinuxReaderTests(unittest.TestCase):
    def setUp(self):
        handle, self.path = tempfile.mkstemp()
        with os.fdopen(handle, 'w') as f:
            f.write(PROC_NET_DEV)
        self.reader = LinuxReader(path=self.path, clock=FakeClock(42.0))

    def tearDown(self):
        os.unlink(self.path)

    def test_list_interfaces_filters_virtual(self):
        self.assertEqual(self.reader.list_interfaces(), {'eth0', 'wlan0', 'eth0.100'})
        self.assertEqual(self.reader.list_interfaces(include_virtual=True),
                         {'lo', 'eth0', 'docker0', 'wlan0', 'eth0.100'})

    def test_read_counters(self):
        sample = self.reader.read_counters('eth0')
        self.assertEqual(sample.name, 'eth0')
        self.assertEqual(sample.timestamp, 42.0)
        self.assertEqual(sample.bytes_recv, 9876543210)
        self.assertEqual(sample.drops_out, 4)
        self.assertIn(sample.counter_bits, (32, 64))

    def test_read_errors(self):
        with self.assertRaises(ParseError):
            self.reader.read_counters('wlan0')
        with self.assertRaises(DeviceNotFound):
            self.reader.read_counters('eth9')

    def test_invalid_name_rejected_before_reading(self):
        with mock.patch('builtins.open') as mocked_open:
            with self.assertRaises(InvalidName):
                self.reader.read_counters('../../etc/passwd')
            mocked_open.assert_not_called()

    def test_read_all_isolates_failures(self):
        results = self.reader.read_all(['eth0', 'wlan0', 'eth9', 'bad/name'])
        self.assertEqual(results['eth0'].bytes_sent, 1234567890)
        self.assertIsInstance(results['wlan0'], ParseError)
        self.assertIsInstance(results['eth9'], DeviceNotFound)
        self.assertIsInstance(results['bad/name'], InvalidName)

    def test_missing_file(self):
        reader = LinuxReader(path=self.path + '.missing')
        self.assertFalse(reader.is_available())
        with self.assertRaises(DeviceNotFound):
            reader.read_counters('eth0')
        with self.assertRaises(ReaderError):
            reader.list_interfaces()

    def test_permission_denied(self):
        with mock.patch('builtins.open', side_effect=PermissionError(13, 'Permission denied')):
            with self.assertRaises(PermissionDenied):
                self.reader.read_counters('eth0')
            results = self.reader.read_all(['eth0'])
        self.assertIsInstance(results['eth0'], PermissionDenied)


class DummyReaderTests(unittest.TestCase):
    def test_scripted_sequence_repeats_last_entry(self):
        clock = FakeClock()
        reader = DummyReader(interfaces=(), clock=clock, script={
            'eth0': [{'bytes_recv': 10}, {'bytes_recv': 20}, DeviceNotFound('eth0')],
        })
        self.assertEqual(reader.list_interfaces(), {'eth0'})
        self.assertEqual(reader.read_counters('eth0').bytes_recv, 10)
        self.assertEqual(reader.read_counters('eth0').bytes_recv, 20)
        for _ in range(2):
            with self.assertRaises(DeviceNotFound):
                reader.read_counters('eth0')

    def test_synthetic_counters_grow(self):
        clock = FakeClock()
        reader = DummyReader(clock=clock, seed=1)
        first = reader.read_counters('dummy0')
        clock.advance(1.0)
        second = reader.read_counters('dummy0')
        self.assertGreater(second.bytes_recv, first.bytes_recv)
        self.assertGreater(second.bytes_sent, first.bytes_sent)
        self.assertEqual(second.timestamp, 1.0)

    def test_synthetic_counters_wrap_at_width(self):
        clock = FakeClock()
        reader = DummyReader(clock=clock, counter_bits=32, bytes_per_second=1 << 31, seed=3)
        reader.read_counters('dummy0')
        for _ in range(10):
            clock.advance(1.0)
            sample = reader.read_counters('dummy0')
            self.assertLessEqual(sample.bytes_recv, (1 << 32) - 1)

    def test_add_and_remove_interfaces(self):
        reader = DummyReader(interfaces=('eth0',))
        reader.add_interface('eth1')
        self.assertEqual(reader.list_interfaces(), {'eth0', 'eth1'})
        reader.remove_interface('eth0')
        with self.assertRaises(DeviceNotFound):
            reader.read_counters('eth0')
        self.assertEqual(reader.list_interfaces(), {'eth1'})

    def test_virtual_filtering(self):
        reader = DummyReader(interfaces=('lo', 'veth12', 'eth0'))
        self.assertEqual(reader.list_interfaces(), {'eth0'})
        self.assertEqual(len(reader.list_interfaces(include_virtual=True)), 3)


class CreateReaderTests(unittest.TestCase):
    def test_dummy(self):
        self.assertIsInstance(create_reader('dummy'), DummyReader)

    def test_auto_selects_by_platform(self):
        with mock.patch('netwatch.readers.platform.system', return_value='Linux'):
            self.assertIsInstance(create_reader(), LinuxReader)
        with mock.patch('netwatch.readers.platform.system', return_value='Windows'):
            with self.assertRaises(ReaderError):
                create_reader()

    def test_unknown_kind(self):
        with self.assertRaises(ReaderError):
            create_reader('solaris')

    def test_virtual_prefixes(self):
        for name in ('lo', 'docker0', 'veth1a2b', 'br-1234'):
            self.assertTrue(is_virtual_interface(name))
        self.assertFalse(is_virtual_interface('eth0'))


if __name__ == "__main__":
    unittest.main()
