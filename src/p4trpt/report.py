"""
Telemetry Report decoding.

decode_report() reads the fixed report header, branches on its inType
field and returns one of two report shapes:

- PacketReport: Ethernet / IP / UDP-INT / INT header / transport ports
- DropReport:   drop header

Both own a single bytearray; every header is a view into it, so
mutations are visible in get_bytes() and the bytes after the last header
(the payload) are carried through untouched.
"""
from __future__ import annotations

import hashlib
import ipaddress
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Union

from .byte_utils import slice_bytes
from .exceptions import InconsistentLength, UnsupportedForDropReport
from .headers import (
    DropHeader,
    EthernetHeader,
    IntHeader,
    IpHeader,
    ProtoHeader,
    ReportHeader,
    UdpIntHeader,
)
from .serialize import report_to_dict

log = logging.getLogger(__name__)

# Report header inType values
IN_TYPE_DROP = 2
IN_TYPE_ETHERNET = 3
IN_TYPE_IPV4 = 4
IN_TYPE_IPV6 = 5
PACKET_IN_TYPES = (IN_TYPE_ETHERNET, IN_TYPE_IPV4, IN_TYPE_IPV6)

# Collector port the reports are usually sent to
DEFAULT_TRPT_PORT = 5556

IPV4_ZERO = ipaddress.IPv4Address(0)
IPV6_ZERO = ipaddress.IPv6Address(0)


def flow_hash(orig_mac: str, dst_port: int, ipv4=IPV4_ZERO, ipv6=IPV6_ZERO) -> str:
    """
    Correlation key for a packet report's flow.

    SHA-256 of "origMac|dstPort|ipv4|ipv6", first 8 digest bytes read as a
    big-endian unsigned integer, rendered in decimal.
    """
    key = f"{orig_mac}|{dst_port}|{ipv4}|{ipv6}"
    digest = hashlib.sha256(key.encode("utf-8")).digest()
    return str(int.from_bytes(digest[:8], "big", signed=False))


class TelemetryReport(ABC):
    """Common part of both report kinds."""

    def __init__(self, buf: bytearray, trpt_hdr: ReportHeader, payload_offset: int):
        self._buf = buf
        self.trpt_hdr = trpt_hdr
        self.payload_offset = payload_offset

    @property
    def is_drop(self) -> bool:
        return self.kind == "drop"

    @property
    def payload(self) -> bytes:
        return slice_bytes(self._buf, self.payload_offset, len(self._buf) - self.payload_offset)

    def get_bytes(self) -> bytes:
        """The full report including any mutations."""
        return bytes(self._buf)

    def __len__(self) -> int:
        return len(self._buf)

    @property
    @abstractmethod
    def correlation_key(self) -> str:
        pass

    @abstractmethod
    def set_source_port(self, port: int) -> None:
        pass

    @abstractmethod
    def set_destination_port(self, port: int) -> None:
        pass

    @abstractmethod
    def set_source_address(self, address) -> None:
        pass

    @abstractmethod
    def set_destination_address(self, address) -> None:
        pass

    @abstractmethod
    def set_originating_mac(self, mac: str) -> None:
        pass

    def to_dict(self) -> Dict[str, Any]:
        return report_to_dict(self)

    def __repr__(self) -> str:
        return (f"{type(self).__name__}(len={len(self._buf)}, "
                f"inType={self.trpt_hdr.in_type}, key={self.correlation_key})")


class PacketReport(TelemetryReport):
    """Report that embeds the original packet's headers and INT metadata."""

    kind = "packet"

    def __init__(self, buf, trpt_hdr, eth_hdr: EthernetHeader, ip_hdr: IpHeader,
                 udp_int_hdr: UdpIntHeader, int_hdr: IntHeader, proto_hdr: ProtoHeader):
        super().__init__(buf, trpt_hdr, proto_hdr.end)
        self.eth_hdr = eth_hdr
        self.ip_hdr = ip_hdr
        self.udp_int_hdr = udp_int_hdr
        self.int_hdr = int_hdr
        self.proto_hdr = proto_hdr

    @property
    def correlation_key(self) -> str:
        dst = self.ip_hdr.dst_addr
        if dst.version == 4:
            return flow_hash(self.int_hdr.md_stack.orig_mac, self.proto_hdr.dst_port, ipv4=dst)
        return flow_hash(self.int_hdr.md_stack.orig_mac, self.proto_hdr.dst_port, ipv6=dst)

    def set_source_port(self, port: int) -> None:
        self.proto_hdr.set_src_port(port)

    def set_destination_port(self, port: int) -> None:
        self.proto_hdr.set_dst_port(port)

    def set_source_address(self, address) -> None:
        self.ip_hdr.set_src_addr(address)

    def set_destination_address(self, address) -> None:
        self.ip_hdr.set_dst_addr(address)

    def set_originating_mac(self, mac: str) -> None:
        self.int_hdr.md_stack.set_orig_mac(mac)


class DropReport(TelemetryReport):
    """Standalone drop notification carrying the device's drop key."""

    kind = "drop"

    def __init__(self, buf, trpt_hdr, drop_hdr: DropHeader):
        super().__init__(buf, trpt_hdr, drop_hdr.end)
        self.drop_hdr = drop_hdr

    @property
    def correlation_key(self) -> str:
        return self.drop_hdr.drop_key

    def _unsupported(self, what: str):
        raise UnsupportedForDropReport(f"Cannot set {what} on a drop report")

    def set_source_port(self, port: int) -> None:
        self._unsupported("source port")

    def set_destination_port(self, port: int) -> None:
        self._unsupported("destination port")

    def set_source_address(self, address) -> None:
        self._unsupported("source address")

    def set_destination_address(self, address) -> None:
        self._unsupported("destination address")

    def set_originating_mac(self, mac: str) -> None:
        self._unsupported("originating MAC")


AnyReport = Union[PacketReport, DropReport]


def decode_report(data: Union[bytes, bytearray, memoryview]) -> AnyReport:
    """
    Decode a Telemetry Report UDP payload.

    The input is copied; the returned report owns its buffer.

    Raises:
        TruncatedBuffer: a header runs past the end of the data
        InconsistentLength: a length/type field is invalid
    """
    buf = bytearray(data)
    trpt_hdr = ReportHeader.decode(buf, 0)
    in_type = trpt_hdr.in_type

    if in_type == IN_TYPE_DROP:
        drop_hdr = DropHeader.decode(buf, trpt_hdr.end)
        log.debug("Decoded drop report: %d bytes, payload at %d", len(buf), drop_hdr.end)
        return DropReport(buf, trpt_hdr, drop_hdr)

    if in_type not in PACKET_IN_TYPES:
        raise InconsistentLength(f"Unrecognized report inType {in_type}")

    eth_hdr = EthernetHeader.decode(buf, trpt_hdr.end)
    ip_hdr = IpHeader.decode(buf, eth_hdr.end, eth_hdr.ip_version)
    udp_int_hdr = UdpIntHeader.decode(buf, ip_hdr.end)
    int_hdr = IntHeader.decode(buf, udp_int_hdr.end)
    proto_hdr = ProtoHeader.decode(buf, int_hdr.last_index, int_hdr.shim.next_proto)
    log.debug(
        "Decoded packet report: IPv%d, %d hop(s), INT ends at %d, payload at %d",
        ip_hdr.version, int_hdr.md_stack.num_hops, int_hdr.last_index, proto_hdr.end,
    )
    return PacketReport(buf, trpt_hdr, eth_hdr, ip_hdr, udp_int_hdr, int_hdr, proto_hdr)
