"""
p4trpt CLI - main entry point.
"""
import logging

import click

from .craft import craft
from .decode import decode
from .pcap import pcap


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Decode and craft P4 INT Telemetry Reports."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )


cli.add_command(decode)
cli.add_command(pcap)
cli.add_command(craft)

if __name__ == "__main__":
    cli()
