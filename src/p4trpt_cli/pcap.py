"""
CLI command for decoding Telemetry Reports captured in a pcap file.
"""
import logging

import click
from scapy.layers.inet import UDP
from scapy.utils import PcapReader

from p4trpt import TelemetryReportError, decode_report, to_json
from p4trpt.report import DEFAULT_TRPT_PORT

log = logging.getLogger(__name__)


@click.command()
@click.argument("filepath", type=click.Path(exists=True, dir_okay=False))
@click.option("--port", "-p", type=int, default=DEFAULT_TRPT_PORT, show_default=True,
              help="UDP destination port the reports were sent to")
@click.option("--limit", type=int, default=0, show_default=True,
              help="Max reports to decode (0 = no limit)")
def pcap(filepath: str, port: int, limit: int):
    """
    Decode every Telemetry Report in a pcap file as JSON lines.

    Example:
      p4trpt pcap collector.pcap --port 5556 --limit 100
    """
    decoded = 0
    skipped = 0
    failed = 0

    # PcapReader dissects each record by the capture's link type
    with PcapReader(filepath) as reader:
        for index, pkt in enumerate(reader, start=1):
            if UDP not in pkt or pkt[UDP].dport != port:
                log.debug("packet %d: no UDP datagram to port %d", index, port)
                skipped += 1
                continue
            try:
                report = decode_report(bytes(pkt[UDP].payload))
            except TelemetryReportError as e:
                failed += 1
                click.echo(f"packet {index}: {e}", err=True)
                continue
            click.echo(to_json(report))
            decoded += 1
            if limit > 0 and decoded >= limit:
                break

    log.info("Reports decoded: %d", decoded)
    log.info("Skipped packets: %d", skipped)
    log.info("Undecodable reports: %d", failed)
