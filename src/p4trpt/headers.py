"""
Header views over a Telemetry Report buffer.

A view holds only the shared buffer and the offset where its header
starts. Reads go straight to the buffer and mutators write through to it,
so the report that owns the buffer always re-serializes the current
state. Field offsets below are relative to the start of each header and
are big-endian.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List

from .byte_utils import (
    InetAddress,
    bit,
    bit_field,
    bit_string,
    inet_address,
    mac_string,
    nibble,
    parse_inet_address,
    parse_mac,
    slice_bytes,
    unsigned_be,
    write_bytes,
    write_unsigned_be,
)
from .exceptions import AddressFamilyMismatch, InconsistentLength, TruncatedBuffer

log = logging.getLogger(__name__)

# EtherType constants
ETH_TYPE_IPV4 = 0x0800
ETH_TYPE_IPV6 = 0x86DD

# IP protocol numbers
IP_PROTO_TCP = 6
IP_PROTO_UDP = 17

# Header sizes in bytes
TRPT_HDR_SIZE = 24
ETH_HDR_SIZE = 14
IPV4_HDR_SIZE = 20
IPV6_HDR_SIZE = 40
UDP_INT_HDR_SIZE = 8
INT_SHIM_SIZE = 4
INT_MD_HDR_SIZE = 12
DROP_HDR_SIZE = 32
PROTO_HDR_SIZES = {
    IP_PROTO_UDP: 8,
    IP_PROTO_TCP: 20,
}

# The INT shim length counts 4-byte words: shim (1) + metadata header (3)
# + originating MAC slot (2) + one word per hop.
INT_WORD = 4
INT_FIXED_WORDS = 6
ORIG_MAC_SLOT = 8


def _require(buf, offset: int, size: int, header: str) -> None:
    if offset < 0 or offset + size > len(buf):
        raise TruncatedBuffer(header, offset, size, max(len(buf) - offset, 0))


@dataclass(frozen=True, eq=False)
class HeaderView:
    """Offset into a buffer owned by the enclosing report."""
    buf: bytearray
    offset: int

    SIZE = 0
    NAME = "header"

    @classmethod
    def decode(cls, buf: bytearray, offset: int):
        _require(buf, offset, cls.SIZE, cls.NAME)
        return cls(buf, offset)

    @property
    def length(self) -> int:
        return self.SIZE

    @property
    def end(self) -> int:
        return self.offset + self.length

    def get_bytes(self) -> bytes:
        return slice_bytes(self.buf, self.offset, self.length)

    def _u(self, start: int, count: int) -> int:
        return unsigned_be(self.buf, self.offset + start, count)

    def _byte(self, start: int) -> int:
        return unsigned_be(self.buf, self.offset + start, 1)

    def _bits(self, start: int, count: int) -> str:
        return bit_string(self.buf, self.offset + start, count)


class ReportHeader(HeaderView):
    """Fixed 24-byte Telemetry Report header."""
    SIZE = TRPT_HDR_SIZE
    NAME = "telemetry report header"

    @property
    def version(self) -> int:
        return nibble(self._byte(0), high=True)

    @property
    def hardware_id(self) -> int:
        return bit_field(self.buf, self.offset, 4, 6)

    @property
    def sequence_id(self) -> int:
        return bit_field(self.buf, self.offset, 10, 22)

    @property
    def node_id(self) -> int:
        return self._u(4, 4)

    @property
    def report_type(self) -> int:
        return nibble(self._byte(8), high=True)

    @property
    def in_type(self) -> int:
        return nibble(self._byte(8), high=False)

    @property
    def report_length(self) -> int:
        return self._byte(9)

    @property
    def metadata_length(self) -> int:
        return self._byte(10)

    @property
    def d(self) -> int:
        return bit(self._byte(11), 0)

    @property
    def q(self) -> int:
        return bit(self._byte(11), 1)

    @property
    def f(self) -> int:
        return bit(self._byte(11), 2)

    @property
    def i(self) -> int:
        return bit(self._byte(11), 3)

    @property
    def rep_md_bits(self) -> str:
        return self._bits(12, 2)

    @property
    def domain_id(self) -> int:
        return self._u(14, 2)

    @property
    def ds_mdb_bits(self) -> str:
        return self._bits(16, 2)

    @property
    def ds_mds_bits(self) -> str:
        return self._bits(18, 2)

    @property
    def var_opt_md(self) -> str:
        return self._bits(20, 4)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "domainId": self.domain_id,
            "hardwareId": self.hardware_id,
            "inType": self.in_type,
            "nodeId": self.node_id,
            "rptLen": self.report_length,
            "seqNo": self.sequence_id,
            "version": self.version,
            "metaLen": self.metadata_length,
            "rptType": self.report_type,
            "d": self.d,
            "q": self.q,
            "f": self.f,
            "i": self.i,
            "repMdBits": self.rep_md_bits,
            "mdbBits": self.ds_mdb_bits,
            "mdsBits": self.ds_mds_bits,
            "varOptMd": self.var_opt_md,
        }


class EthernetHeader(HeaderView):
    SIZE = ETH_HDR_SIZE
    NAME = "ethernet header"

    @property
    def dst_mac(self) -> str:
        return mac_string(self.buf, self.offset)

    @property
    def src_mac(self) -> str:
        return mac_string(self.buf, self.offset + 6)

    @property
    def ether_type(self) -> int:
        return self._u(12, 2)

    @property
    def ip_version(self) -> int:
        """IP version implied by the ethertype (anything but IPv4 is IPv6)."""
        return 4 if self.ether_type == ETH_TYPE_IPV4 else 6

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dstMac": self.dst_mac,
            "srcMac": self.src_mac,
            "type": self.ether_type,
        }


# (length offset, next proto offset, src offset, dst offset)
_IP_LAYOUT = {
    4: (2, 9, 12, 16),
    6: (4, 6, 8, 24),
}


class IpHeader(HeaderView):
    """
    Encapsulated packet's IP header, 20 bytes for IPv4 and 40 for IPv6.

    The caller picks the width from the Ethernet ethertype before decoding;
    decode() then checks the version nibble agrees with it.
    """
    NAME = "ip header"

    @classmethod
    def decode(cls, buf: bytearray, offset: int, version: int = 4):
        size = IPV4_HDR_SIZE if version == 4 else IPV6_HDR_SIZE
        _require(buf, offset, size, cls.NAME)
        hdr = cls(buf, offset)
        if hdr.version != version:
            raise InconsistentLength(
                f"IP version nibble {hdr.version} at offset {offset} "
                f"does not match ethertype (IPv{version})"
            )
        return hdr

    @property
    def version(self) -> int:
        return nibble(self._byte(0), high=True)

    @property
    def length(self) -> int:
        return IPV4_HDR_SIZE if self.version == 4 else IPV6_HDR_SIZE

    @property
    def payload_length(self) -> int:
        """Total length (IPv4) or payload length (IPv6) field."""
        return self._u(_IP_LAYOUT[self.version][0], 2)

    @property
    def next_proto(self) -> int:
        return self._byte(_IP_LAYOUT[self.version][1])

    @property
    def src_addr(self) -> InetAddress:
        return inet_address(self.buf, self.version, self.offset + _IP_LAYOUT[self.version][2])

    @property
    def dst_addr(self) -> InetAddress:
        return inet_address(self.buf, self.version, self.offset + _IP_LAYOUT[self.version][3])

    def set_src_addr(self, address) -> None:
        self._write_addr(_IP_LAYOUT[self.version][2], address)

    def set_dst_addr(self, address) -> None:
        self._write_addr(_IP_LAYOUT[self.version][3], address)

    def _write_addr(self, field_offset: int, address) -> None:
        addr = parse_inet_address(address)
        if addr.version != self.version:
            raise AddressFamilyMismatch(self.version, addr)
        write_bytes(self.buf, self.offset + field_offset, addr.packed)
        log.debug("IP address at offset %d set to %s", self.offset + field_offset, addr)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "len": self.payload_length,
            "nextProto": self.next_proto,
            "version": self.version,
            "dstAddr": str(self.dst_addr),
            "srcAddr": str(self.src_addr),
        }


class UdpIntHeader(HeaderView):
    """UDP header carrying the INT payload (not the original flow's L4)."""
    SIZE = UDP_INT_HDR_SIZE
    NAME = "udp int header"

    @property
    def src_port(self) -> int:
        return self._u(0, 2)

    @property
    def dst_port(self) -> int:
        return self._u(2, 2)

    @property
    def udp_length(self) -> int:
        return self._u(4, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "srcPort": self.src_port,
            "dstPort": self.dst_port,
            "len": self.udp_length,
        }


class IntShimHeader(HeaderView):
    SIZE = INT_SHIM_SIZE
    NAME = "int shim header"

    @property
    def int_type(self) -> int:
        return nibble(self._byte(0), high=True)

    @property
    def npt(self) -> int:
        return bit_field(self.buf, self.offset, 4, 2)

    @property
    def int_length(self) -> int:
        """Length of the whole INT header in 4-byte words."""
        return self._byte(1)

    @property
    def next_proto(self) -> int:
        return self._byte(3)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.int_type,
            "npt": self.npt,
            "len": self.int_length,
            "nextProto": self.next_proto,
        }


class IntMetadataHeader(HeaderView):
    SIZE = INT_MD_HDR_SIZE
    NAME = "int metadata header"

    @property
    def version(self) -> int:
        return nibble(self._byte(0), high=True)

    @property
    def d(self) -> int:
        return bit(self._byte(0), 6)

    @property
    def e(self) -> int:
        return bit(self._byte(0), 7)

    @property
    def m(self) -> int:
        return bit(self._byte(1), 0)

    @property
    def per_hop_md_length(self) -> int:
        return bit_field(self.buf, self.offset + 2, 3, 5)

    @property
    def remaining_hop_count(self) -> int:
        return self._byte(3)

    @property
    def instructions(self) -> str:
        return self._bits(4, 2)

    @property
    def domain_id(self) -> int:
        return self._u(6, 2)

    @property
    def ds_instructions(self) -> str:
        return self._bits(8, 2)

    @property
    def ds_flags(self) -> str:
        return self._bits(10, 2)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "d": self.d,
            "e": self.e,
            "m": self.m,
            "mdLen": self.per_hop_md_length,
            "remainingHopCount": self.remaining_hop_count,
            "instructions": self.instructions,
            "domainId": self.domain_id,
            "dsInstructions": self.ds_instructions,
            "dsFlags": self.ds_flags,
        }


@dataclass(frozen=True, eq=False)
class IntMetadataStackHeader(HeaderView):
    """
    Hop words followed by the originating MAC (padded to two words).

    Devices push their hop id on top of the stack, so the wire order is
    most recent first; `hops` reads bottom-up and lists the first hop first.
    Hop values are read-only.
    """
    num_hops: int = 0

    NAME = "int metadata stack"

    @classmethod
    def decode(cls, buf: bytearray, offset: int, num_hops: int = 0):
        _require(buf, offset, num_hops * INT_WORD + ORIG_MAC_SLOT, cls.NAME)
        return cls(buf, offset, num_hops)

    @property
    def length(self) -> int:
        return self.num_hops * INT_WORD + ORIG_MAC_SLOT

    @property
    def _mac_offset(self) -> int:
        return self.offset + self.num_hops * INT_WORD

    @property
    def hops(self) -> List[int]:
        return [
            unsigned_be(self.buf, self._mac_offset - (i + 1) * INT_WORD, INT_WORD)
            for i in range(self.num_hops)
        ]

    @property
    def orig_mac(self) -> str:
        return mac_string(self.buf, self._mac_offset)

    def set_orig_mac(self, mac: str) -> None:
        write_bytes(self.buf, self._mac_offset, parse_mac(mac))
        log.debug("Originating MAC at offset %d set to %s", self._mac_offset, mac)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "origMac": self.orig_mac,
            "hops": self.hops,
        }


@dataclass(frozen=True, eq=False)
class IntHeader(HeaderView):
    """INT shim + metadata header + metadata stack."""
    shim: IntShimHeader = None
    md: IntMetadataHeader = None
    md_stack: IntMetadataStackHeader = None

    NAME = "int header"

    @classmethod
    def decode(cls, buf: bytearray, offset: int):
        shim = IntShimHeader.decode(buf, offset)
        words = shim.int_length
        if words < INT_FIXED_WORDS:
            raise InconsistentLength(
                f"INT shim length {words} words is shorter than the "
                f"{INT_FIXED_WORDS} fixed words"
            )
        _require(buf, offset, words * INT_WORD, cls.NAME)
        md = IntMetadataHeader.decode(buf, shim.end)
        md_stack = IntMetadataStackHeader.decode(buf, md.end, words - INT_FIXED_WORDS)
        return cls(buf, offset, shim, md, md_stack)

    @property
    def length(self) -> int:
        return self.shim.int_length * INT_WORD

    @property
    def last_index(self) -> int:
        """Absolute offset of the first byte after the INT header."""
        return self.end

    def to_dict(self) -> Dict[str, Any]:
        return {
            "shimHdr": self.shim.to_dict(),
            "mdHdr": self.md.to_dict(),
            "mdStackHdr": self.md_stack.to_dict(),
        }


@dataclass(frozen=True, eq=False)
class ProtoHeader(HeaderView):
    """
    The original flow's transport header. Only the two ports are modeled;
    the rest of the UDP (8 byte) or TCP (20 byte) header is carried as is.
    """
    size: int = 8

    NAME = "transport header"

    @classmethod
    def decode(cls, buf: bytearray, offset: int, next_proto: int = IP_PROTO_UDP):
        try:
            size = PROTO_HDR_SIZES[next_proto]
        except KeyError:
            raise InconsistentLength(
                f"Unsupported encapsulated protocol {next_proto}"
            ) from None
        _require(buf, offset, size, cls.NAME)
        return cls(buf, offset, size)

    @property
    def length(self) -> int:
        return self.size

    @property
    def src_port(self) -> int:
        return self._u(0, 2)

    @property
    def dst_port(self) -> int:
        return self._u(2, 2)

    def set_src_port(self, port: int) -> None:
        write_unsigned_be(self.buf, self.offset, 2, port)
        log.debug("Source port set to %d", port)

    def set_dst_port(self, port: int) -> None:
        write_unsigned_be(self.buf, self.offset + 2, 2, port)
        log.debug("Destination port set to %d", port)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "srcPort": self.src_port,
            "dstPort": self.dst_port,
        }


class DropHeader(HeaderView):
    SIZE = DROP_HDR_SIZE
    NAME = "drop header"

    @property
    def timestamp(self) -> int:
        return self._u(0, 4)

    @property
    def drop_count(self) -> int:
        return self._u(4, 4)

    @property
    def drop_key(self) -> str:
        """The 16-byte correlation key as sent by the device, in hex."""
        return slice_bytes(self.buf, self.offset + 16, 16).hex()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "dropKey": self.drop_key,
            "dropCount": self.drop_count,
        }
