"""
CLI command for live monitoring.
"""
import time
from typing import Optional, Tuple

import click

from netwatch.config import SamplingConfig
from netwatch.diagnostics import DiagnosticsProber
from netwatch.engine import SamplingScheduler, TrafficUnit
from netwatch.errors import ConfigError, InvalidName, NoInterfacesError
from netwatch.forensics import ForensicsMonitor

from .interfaces import READER_CHOICES, open_reader
from .render import format_events, format_snapshot, format_target, snapshot_header


@click.command()
@click.argument('devices', nargs=-1)
@click.option('--interval', '-t', type=int, default=1000, show_default=True,
              help='Refresh interval in milliseconds')
@click.option('--average', '-a', type=int, default=300, show_default=True,
              help='Averaging window in seconds')
@click.option('--unit', '-u', type=click.Choice([unit.value for unit in TrafficUnit]), default='h',
              show_default=True, help='Traffic unit (h/H human bits/bytes, b B k K m M g G)')
@click.option('--high-performance', is_flag=True, help='Halve sampling and analysis frequency')
@click.option('--duration', '-d', type=float, help='Stop after this many seconds (default: until Ctrl+C)')
@click.option('--reader', 'reader_kind', type=click.Choice(READER_CHOICES), default='auto',
              help='Counter source to use')
@click.option('--no-diagnostics', is_flag=True, help='Do not run connectivity probes')
@click.option('--events', 'show_events', is_flag=True, help='Print forensics events on exit')
def monitor(devices: Tuple[str, ...], interval: int, average: int, unit: str, high_performance: bool,
            duration: Optional[float], reader_kind: str, no_diagnostics: bool, show_events: bool):
    """
    Monitor traffic on DEVICES (default: all interfaces).

    Examples:
      netwatch monitor eth0 -t 500 -u M
      netwatch monitor --reader dummy --duration 10 --events
    """
    if devices == ('all',):
        devices = ()
    try:
        config = SamplingConfig(
            refresh_interval_ms=interval,
            average_window_s=average,
            high_performance=high_performance,
            interfaces=devices,
        )
    except ConfigError as e:
        raise click.ClickException(str(e))

    traffic_unit = TrafficUnit.from_string(unit)
    reader = open_reader(reader_kind)
    forensics = ForensicsMonitor.from_config(config)
    prober = None if no_diagnostics else DiagnosticsProber.from_config(config)
    scheduler = SamplingScheduler(reader, config, forensics=forensics, prober=prober)

    try:
        scheduler.start()
    except (InvalidName, NoInterfacesError) as e:
        if prober is not None:
            prober.shutdown(grace=0)
        raise click.ClickException(str(e))

    click.echo(f"Monitoring every {config.refresh_interval:.1f}s, averaging over {config.average_window_s:.0f}s")
    if duration:
        click.echo(f"Duration: {duration} seconds")
    click.echo("Press Ctrl+C to stop\n")
    click.echo(snapshot_header())
    click.echo("-" * len(snapshot_header()))

    started = time.monotonic()
    version = 0
    try:
        while True:
            remaining = None
            if duration:
                remaining = duration - (time.monotonic() - started)
                if remaining <= 0:
                    click.echo(f"\nDuration reached ({duration}s), stopping...")
                    break

            wait = scheduler.effective_interval * 2 + 1.0
            if remaining is not None:
                wait = min(wait, remaining)
            snapshot = scheduler.wait_for_update(version, timeout=wait)
            if snapshot is None:
                continue
            version = snapshot.version
            for line in format_snapshot(snapshot, traffic_unit):
                click.echo(line)
            if snapshot.high_performance:
                click.echo(f"(high-performance mode, interval {snapshot.effective_interval:.1f}s)")
    except KeyboardInterrupt:
        click.echo("\n\nStopping monitor...")
    finally:
        scheduler.stop()

    stats = forensics.statistics()
    click.echo("\n" + "=" * 50)
    click.echo("MONITOR SUMMARY")
    click.echo("=" * 50)
    click.echo(f"Ticks:           {scheduler.tick_count}")
    click.echo(f"Forensics events: {stats['total_events']} ({stats['dropped']} dropped)")
    if prober is not None:
        for target in prober.results():
            click.echo(format_target(target))

    if show_events:
        events = forensics.recent_events()
        click.echo(f"\nRecent events ({len(events)}):")
        for line in format_events(events):
            click.echo(f"  {line}")
