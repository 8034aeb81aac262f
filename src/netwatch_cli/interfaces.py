"""
CLI commands for listing interfaces and reading their counters once.
"""
from typing import Tuple

import click

from netwatch.errors import ReaderError
from netwatch.readers import create_reader

from .render import format_sample

READER_CHOICES = ['auto', 'dummy']


def open_reader(kind: str):
    try:
        reader = create_reader(kind)
    except ReaderError as e:
        raise click.ClickException(str(e))
    if not reader.is_available():
        raise click.ClickException(f"The {reader.name} reader cannot work on this host")
    return reader


@click.command(name='list')
@click.option('--all', 'include_virtual', is_flag=True, help='Include loopback and virtual interfaces')
@click.option('--reader', 'reader_kind', type=click.Choice(READER_CHOICES), default='auto',
              help='Counter source to use')
def list_interfaces(include_virtual: bool, reader_kind: str):
    """List the interfaces counters can be read from."""
    reader = open_reader(reader_kind)
    try:
        names = sorted(reader.list_interfaces(include_virtual=include_virtual))
    except ReaderError as e:
        raise click.ClickException(str(e))

    if not names:
        click.echo("No interfaces found")
        return
    click.echo("Available interfaces:")
    for name in names:
        click.echo(f"  {name}")


@click.command()
@click.argument('devices', nargs=-1)
@click.option('--reader', 'reader_kind', type=click.Choice(READER_CHOICES), default='auto',
              help='Counter source to use')
def test(devices: Tuple[str, ...], reader_kind: str):
    """
    Read the counters of DEVICES once and print them.

    Examples:
      netwatch test eth0 wlan0
      netwatch test --reader dummy
    """
    reader = open_reader(reader_kind)
    names = list(devices)
    if not names:
        try:
            names = sorted(reader.list_interfaces())
        except ReaderError as e:
            raise click.ClickException(str(e))
    if not names:
        raise click.ClickException("No interfaces available and none specified")

    failures = 0
    for name, result in reader.read_all(names).items():
        if isinstance(result, ReaderError):
            failures += 1
            click.echo(f"{name}: FAILED ({result})", err=True)
        else:
            click.echo(format_sample(result))

    if failures == len(names):
        raise click.ClickException("No interface could be read")
