"""
Telemetry Report decode/mutate errors.

Every failure is local to the call that raised it; nothing here is
transient, so callers should not retry.
"""


class TelemetryReportError(ValueError):
    """Base class for all report decoding and mutation errors."""


class TruncatedBuffer(TelemetryReportError):
    """A header needs more bytes than the buffer has left."""

    def __init__(self, header: str, offset: int, needed: int, available: int):
        self.header = header
        self.offset = offset
        self.needed = needed
        self.available = available
        super().__init__(
            f"Truncated {header} at offset {offset}: "
            f"need {needed} bytes, {available} available"
        )


# Name used for the fixed report header case
TruncatedHeader = TruncatedBuffer


class InconsistentLength(TelemetryReportError):
    """A length, version or type field contradicts the rest of the report."""


class AddressFamilyMismatch(TelemetryReportError):
    """An IPv4 address was given to an IPv6 header or vice versa."""

    def __init__(self, header_version: int, address):
        self.header_version = header_version
        self.address = address
        super().__init__(
            f"Cannot write IPv{address.version} address {address} "
            f"into an IPv{header_version} header"
        )


class UnsupportedForDropReport(TelemetryReportError):
    """The operation only applies to packet reports."""


class MalformedAddressLiteral(TelemetryReportError):
    """A MAC or IP string argument could not be parsed."""

    def __init__(self, kind: str, value):
        self.kind = kind
        self.value = value
        super().__init__(f"Malformed {kind} address: {value!r}")
