"""
netwatch CLI - main entry point.
"""
import logging

import click

from .diagnose import diagnose
from .interfaces import list_interfaces, test
from .monitor import monitor

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format=LOG_FORMAT,
    )


@click.group()
@click.option('--verbose', '-v', is_flag=True, help='Log debug output to stderr')
def cli(verbose: bool):
    """netwatch - real-time network traffic monitor."""
    setup_logging(verbose)


cli.add_command(list_interfaces)
cli.add_command(test)
cli.add_command(monitor)
cli.add_command(diagnose)

if __name__ == "__main__":
    cli()
