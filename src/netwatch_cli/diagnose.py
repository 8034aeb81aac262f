"""
CLI command for a one-off diagnostics round.
"""
from typing import Tuple

import click

from netwatch.config import DEFAULT_DIAGNOSTIC_TARGETS, DEFAULT_DNS_DOMAINS, SamplingConfig
from netwatch.diagnostics import DiagnosticsProber
from netwatch.errors import ConfigError

from .render import format_target


@click.command()
@click.option('--target', 'targets', multiple=True, help='Address to ping (repeatable)')
@click.option('--domain', 'domains', multiple=True, help='Domain to resolve (repeatable)')
@click.option('--timeout', type=float, default=1.0, show_default=True, help='Per-probe timeout in seconds')
@click.option('--method', type=click.Choice(['auto', 'scapy', 'ping']), default='auto',
              help='How reachability is probed')
def diagnose(targets: Tuple[str, ...], domains: Tuple[str, ...], timeout: float, method: str):
    """
    Probe reachability and DNS resolution once.

    Examples:
      netwatch diagnose
      netwatch diagnose --target 9.9.9.9 --domain example.com --timeout 2
    """
    try:
        config = SamplingConfig(
            diagnostic_targets=targets or DEFAULT_DIAGNOSTIC_TARGETS,
            dns_domains=domains or DEFAULT_DNS_DOMAINS,
            probe_timeout_s=timeout,
        )
    except ConfigError as e:
        raise click.ClickException(str(e))

    prober = DiagnosticsProber.from_config(config, method=method)
    try:
        prober.probe_all()
        for target in prober.results():
            click.echo(format_target(target))
        summary = prober.summary()
    finally:
        prober.shutdown(grace=0)

    click.echo("-" * 60)
    click.echo(f"{summary['online']}/{summary['total']} targets OK")
    if summary['average_rtt_ms'] is not None:
        click.echo(f"Average latency: {summary['average_rtt_ms']:.1f} ms")
    if summary['failing']:
        raise click.ClickException(f"{summary['failing']} probe(s) failed")
