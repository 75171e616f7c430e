"""
P4 In-band Network Telemetry "Telemetry Report" decoding.
"""

from .exceptions import (
    AddressFamilyMismatch,
    InconsistentLength,
    MalformedAddressLiteral,
    TelemetryReportError,
    TruncatedBuffer,
    TruncatedHeader,
    UnsupportedForDropReport,
)
from .report import DropReport, PacketReport, TelemetryReport, decode_report, flow_hash
from .serialize import extract_field, report_to_dict, to_json

__all__ = [
    'decode_report',
    'TelemetryReport',
    'PacketReport',
    'DropReport',
    'flow_hash',
    'report_to_dict',
    'to_json',
    'extract_field',
    'TelemetryReportError',
    'TruncatedBuffer',
    'TruncatedHeader',
    'InconsistentLength',
    'AddressFamilyMismatch',
    'UnsupportedForDropReport',
    'MalformedAddressLiteral',
]
