import unittest
from unittest import mock

from click.testing import CliRunner

from netwatch.diagnostics import DiagnosticsProber
from netwatch.models import ProbeKind, ProbeResult
from netwatch_cli.main import cli


def reachable(self, target):
    return ProbeResult(target=target, kind=ProbeKind.REACHABILITY, success=True, round_trip_ms=8.0)


def unreachable(self, target):
    return ProbeResult(target=target, kind=ProbeKind.REACHABILITY, success=False, error=f"{target} unreachable")


def resolved(self, domain):
    return ProbeResult(target=domain, kind=ProbeKind.DNS, success=True, round_trip_ms=4.0,
                       addresses=('93.184.216.34',))


class InterfaceCommandTests(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def test_list(self):
        result = self.runner.invoke(cli, ['list', '--reader', 'dummy'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('Available interfaces:', result.output)
        self.assertIn('dummy0', result.output)
        self.assertIn('dummy1', result.output)

    def test_read_once(self):
        result = self.runner.invoke(cli, ['test', '--reader', 'dummy', 'dummy0'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue(result.output.startswith('dummy0'))
        self.assertIn('rx', result.output)

    def test_read_unknown_interface(self):
        result = self.runner.invoke(cli, ['test', '--reader', 'dummy', 'nosuch0'])
        self.assertEqual(result.exit_code, 1)
        self.assertIn('nosuch0: FAILED', result.output)
        self.assertIn('No interface could be read', result.output)

    def test_read_rejects_bad_name(self):
        result = self.runner.invoke(cli, ['test', '--reader', 'dummy', 'dummy0', '../etc'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('../etc: FAILED', result.output)

    def test_verbose_flag(self):
        result = self.runner.invoke(cli, ['-v', 'list', '--reader', 'dummy'])
        self.assertEqual(result.exit_code, 0, result.output)


class MonitorCommandTests(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def test_monitor_for_a_duration(self):
        result = self.runner.invoke(cli, ['monitor', '--reader', 'dummy', '-t', '100', '-d', '0.5',
                                          '--no-diagnostics', '--events', '-u', 'K'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('Monitoring every 0.1s', result.output)
        self.assertIn('dummy0', result.output)
        self.assertIn('MONITOR SUMMARY', result.output)
        self.assertIn('Ticks:', result.output)
        self.assertIn('Recent events', result.output)

    def test_missing_interface_shows_stale(self):
        result = self.runner.invoke(cli, ['monitor', 'nosuch0', '--reader', 'dummy', '-t', '100',
                                          '-d', '0.3', '--no-diagnostics'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('stale', result.output)

    def test_interval_too_small(self):
        result = self.runner.invoke(cli, ['monitor', '--reader', 'dummy', '-t', '50'])
        self.assertEqual(result.exit_code, 1)
        self.assertIn('Refresh interval too small', result.output)

    def test_invalid_interface_name(self):
        result = self.runner.invoke(cli, ['monitor', '--reader', 'dummy', 'eth0;ls'])
        self.assertEqual(result.exit_code, 1)
        self.assertIn('Invalid interface name', result.output)

    def test_unknown_unit(self):
        result = self.runner.invoke(cli, ['monitor', '--reader', 'dummy', '-u', 'x'])
        self.assertEqual(result.exit_code, 2)


class DiagnoseCommandTests(unittest.TestCase):
    def setUp(self):
        self.runner = CliRunner()

    def test_all_targets_ok(self):
        with mock.patch.object(DiagnosticsProber, 'probe_reachability', reachable), \
                mock.patch.object(DiagnosticsProber, 'probe_dns', resolved):
            result = self.runner.invoke(cli, ['diagnose', '--target', '9.9.9.9', '--domain', 'example.com'])
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn('9.9.9.9', result.output)
        self.assertIn('93.184.216.34', result.output)
        self.assertIn('2/2 targets OK', result.output)
        self.assertIn('Average latency: 6.0 ms', result.output)

    def test_failed_probe_exits_nonzero(self):
        with mock.patch.object(DiagnosticsProber, 'probe_reachability', unreachable), \
                mock.patch.object(DiagnosticsProber, 'probe_dns', resolved):
            result = self.runner.invoke(cli, ['diagnose', '--target', '192.0.2.1', '--domain', 'example.com'])
        self.assertEqual(result.exit_code, 1)
        self.assertIn('192.0.2.1 unreachable', result.output)
        self.assertIn('1/2 targets OK', result.output)
        self.assertIn('1 probe(s) failed', result.output)

    def test_invalid_target(self):
        result = self.runner.invoke(cli, ['diagnose', '--target', 'host;reboot'])
        self.assertEqual(result.exit_code, 1)


if __name__ == "__main__":
    unittest.main()
