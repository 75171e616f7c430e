"""
CLI command for decoding a single Telemetry Report.
"""
import json
from typing import Tuple

import click

from p4trpt import TelemetryReportError, decode_report, extract_field, to_json


def _read_input(source: str, is_file: bool) -> bytes:
    if is_file:
        try:
            with open(source, "rb") as f:
                return f.read()
        except OSError as e:
            raise click.ClickException(f"Failed to open file: {e}")
    try:
        return bytes.fromhex(source.replace(" ", "").replace(":", ""))
    except ValueError:
        raise click.ClickException("INPUT is not a valid hex string")


def _echo_table(record: dict, indent: int = 0) -> None:
    pad = "  " * indent
    for key, value in record.items():
        if isinstance(value, dict):
            click.echo(f"{pad}{key}:")
            _echo_table(value, indent + 1)
        else:
            click.echo(f"{pad}{key:<20} {value}")


@click.command()
@click.argument("source")
@click.option("--file", "is_file", is_flag=True, help="Treat SOURCE as a path to a binary file")
@click.option("--format", "format", type=click.Choice(["json", "table"]),
              default="json", show_default=True, help="Output format")
@click.option("--field", "fields", multiple=True,
              help="Dotted attribute mapping to print, e.g. intHdr.mdStackHdr.origMac")
def decode(source: str, is_file: bool, format: str, fields: Tuple[str, ...]):
    """
    Decode a Telemetry Report given as hex (default) or a binary file.

    Example:
      p4trpt decode 2... --field ipHdr.dstAddr --field protoHdr.dstPort
    """
    data = _read_input(source, is_file)
    try:
        report = decode_report(data)
    except TelemetryReportError as e:
        raise click.ClickException(str(e))

    if fields:
        record = report.to_dict()
        for mapping in fields:
            try:
                value = extract_field(record, mapping)
            except KeyError as e:
                raise click.ClickException(e.args[0])
            if isinstance(value, (dict, list)):
                value = json.dumps(value, separators=(",", ":"))
            click.echo(f"{mapping}={value}")
        return

    if format == "json":
        click.echo(to_json(report))
    else:
        click.echo(f"{report.kind} report, {len(report)} bytes")
        click.echo("-" * 40)
        _echo_table(report.to_dict())
