"""
CLI command for crafting sample Telemetry Reports.
"""
from typing import Tuple

import click

from p4trpt.layers import craft_drop_report, craft_packet_report


@click.command()
@click.option("--drop", is_flag=True, help="Craft a drop report instead of a packet report")
@click.option("--hop", "hops", type=int, multiple=True, help="Hop id, first hop first (repeatable)")
@click.option("--orig-mac", default="00:00:00:00:01:01", show_default=True)
@click.option("--src", "src_addr", default="192.168.1.2", show_default=True)
@click.option("--dst", "dst_addr", default="192.168.1.10", show_default=True)
@click.option("--proto", type=click.Choice(["udp", "tcp"]), default="udp", show_default=True)
@click.option("--sport", type=int, default=6680, show_default=True)
@click.option("--dport", type=int, default=5792, show_default=True)
@click.option("--drop-key", default="6b00dbfc6026a3521bbe0f5d00170000", show_default=True,
              help="16-byte drop key in hex")
def craft(drop: bool, hops: Tuple[int, ...], orig_mac: str, src_addr: str, dst_addr: str,
          proto: str, sport: int, dport: int, drop_key: str):
    """
    Print a crafted Telemetry Report as hex.

    Examples:
      p4trpt craft --hop 123 --hop 234 --proto tcp
      p4trpt craft --drop
    """
    try:
        if drop:
            data = craft_drop_report(drop_key=bytes.fromhex(drop_key))
        else:
            data = craft_packet_report(
                hops=hops or (123, 234),
                orig_mac=orig_mac,
                src_addr=src_addr,
                dst_addr=dst_addr,
                proto=proto,
                src_port=sport,
                dst_port=dport,
            )
    except ValueError as e:
        raise click.ClickException(str(e))
    click.echo(data.hex())
