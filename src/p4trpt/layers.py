"""
Scapy layers for crafting Telemetry Reports.

The decoder in p4trpt.report does not depend on these; they exist to
build well-formed report buffers for tests, demos and test collectors.
"""
import logging
from typing import Iterable, Optional

from scapy.fields import (
    BitField,
    ByteField,
    FieldListField,
    IntField,
    MACField,
    ShortField,
    StrFixedLenField,
    XIntField,
    XLongField,
    XShortField,
)
from scapy.layers.inet import IP, TCP, UDP
from scapy.layers.inet6 import IPv6
from scapy.layers.l2 import Ether
from scapy.packet import Packet, Raw, bind_layers

from .byte_utils import parse_inet_address
from .exceptions import AddressFamilyMismatch
from .headers import INT_FIXED_WORDS, IP_PROTO_TCP, IP_PROTO_UDP
from .report import IN_TYPE_DROP, IN_TYPE_IPV4, IN_TYPE_IPV6

log = logging.getLogger(__name__)

INT_UDP_PORT = 555


class TelemetryReportHdr(Packet):
    name = "TELEMETRY_REPORT"
    fields_desc = [
        BitField("ver", 2, 4),
        BitField("hw_id", 0, 6),
        BitField("seq_no", 0, 22),
        IntField("node_id", 0),
        BitField("rpt_type", 0, 4),
        BitField("in_type", IN_TYPE_IPV4, 4),
        ByteField("rpt_len", 0),
        ByteField("md_len", 0),
        BitField("d", 0, 1),
        BitField("q", 0, 1),
        BitField("f", 0, 1),
        BitField("i", 0, 1),
        BitField("rsvd", 0, 4),
        XShortField("rep_md_bits", 0x0000),
        ShortField("domain_id", 0),
        XShortField("ds_mdb_bits", 0x0000),
        XShortField("ds_mds_bits", 0x0000),
        XIntField("var_opt_md", 0),
    ]


class IntShim(Packet):
    name = "INT_SHIM"
    fields_desc = [
        BitField("int_type", 1, 4),
        BitField("npt", 0, 2),
        BitField("rsvd0", 0, 2),
        ByteField("length", INT_FIXED_WORDS),
        ByteField("rsvd1", 0x00),
        ByteField("next_proto", IP_PROTO_UDP),
    ]


class IntMetaHdr(Packet):
    name = "INT_META"
    fields_desc = [
        BitField("ver", 2, 4),
        BitField("rsvd1", 0, 2),
        BitField("d", 0, 1),
        BitField("e", 0, 1),
        BitField("m", 0, 1),
        BitField("rsvd2", 0, 7),
        BitField("rsvd3", 0, 3),
        BitField("hop_ml", 1, 5),
        ByteField("remaining_hop_cnt", 0),
        XShortField("instructions", 0x0000),
        ShortField("domain_id", 0),
        XShortField("ds_instructions", 0x0000),
        XShortField("ds_flags", 0x0000),
    ]


def _stack_hop_count(pkt: Packet) -> int:
    layer = pkt.underlayer
    while layer is not None and not isinstance(layer, IntShim):
        layer = layer.underlayer
    if layer is None:
        return 0
    return max(layer.length - INT_FIXED_WORDS, 0)


class IntMetaStack(Packet):
    """Hop ids in wire order (most recent first), then the originating MAC."""
    name = "INT_META_STACK"
    fields_desc = [
        FieldListField("hops", [], IntField("hop", 0), count_from=_stack_hop_count),
        MACField("orig_mac", "00:00:00:00:00:00"),
        ShortField("pad", 0),
    ]


class DropHdr(Packet):
    name = "DROP_REPORT"
    fields_desc = [
        IntField("timestamp", 0),
        IntField("drop_count", 0),
        XLongField("rsvd", 0),
        StrFixedLenField("drop_key", b"\x00" * 16, 16),
    ]


bind_layers(UDP, IntShim, dport=INT_UDP_PORT)
bind_layers(IntShim, IntMetaHdr)
bind_layers(IntMetaHdr, IntMetaStack)
bind_layers(TelemetryReportHdr, DropHdr, in_type=IN_TYPE_DROP)
bind_layers(TelemetryReportHdr, Ether, in_type=IN_TYPE_IPV6)
bind_layers(TelemetryReportHdr, Ether, in_type=IN_TYPE_IPV4)


def craft_packet_report(
    hops: Iterable[int] = (123, 234),
    orig_mac: str = "00:00:00:00:01:01",
    src_addr: str = "192.168.1.2",
    dst_addr: str = "192.168.1.10",
    proto: str = "udp",
    src_port: int = 6680,
    dst_port: int = 5792,
    payload: bytes = b"hello transparent-security",
    node_id: int = 234,
    seq_no: int = 1,
    hw_id: int = 0,
    domain_id: int = 21587,
    eth_src: str = "00:00:00:00:01:01",
    eth_dst: str = "00:00:00:00:05:01",
) -> bytes:
    """
    Build a packet report. `hops` is given first hop first; it is pushed
    onto the stack so the last hop ends up on top.
    """
    hops = list(hops)
    src = parse_inet_address(src_addr)
    dst = parse_inet_address(dst_addr)
    if src.version != dst.version:
        raise AddressFamilyMismatch(src.version, dst)
    is_v6 = src.version == 6
    if is_v6:
        ip = IPv6(src=str(src), dst=str(dst))
    else:
        ip = IP(src=str(src), dst=str(dst))

    if proto == "tcp":
        l4 = TCP(sport=src_port, dport=dst_port, chksum=0)
        next_proto = IP_PROTO_TCP
    elif proto == "udp":
        l4 = UDP(sport=src_port, dport=dst_port, chksum=0)
        next_proto = IP_PROTO_UDP
    else:
        raise ValueError(f"Unsupported protocol: {proto}")

    pkt = (
        TelemetryReportHdr(
            in_type=IN_TYPE_IPV6 if is_v6 else IN_TYPE_IPV4,
            hw_id=hw_id,
            seq_no=seq_no,
            node_id=node_id,
            rpt_len=15 if is_v6 else 10,
            md_len=8,
            domain_id=domain_id,
        )
        / Ether(src=eth_src, dst=eth_dst)
        / ip
        / UDP(sport=0, dport=INT_UDP_PORT)
        / IntShim(npt=2, length=INT_FIXED_WORDS + len(hops), next_proto=next_proto)
        / IntMetaHdr(
            hop_ml=1,
            remaining_hop_cnt=9,
            instructions=0x8000,
            domain_id=domain_id,
            ds_instructions=0x8000,
            ds_flags=0x4000,
        )
        / IntMetaStack(hops=list(reversed(hops)), orig_mac=orig_mac)
        / l4
    )
    if payload:
        pkt = pkt / Raw(load=payload)
    data = bytes(pkt)
    log.debug("Crafted %s packet report, %d hop(s), %d bytes", proto, len(hops), len(data))
    return data


def craft_drop_report(
    drop_key: bytes = bytes.fromhex("6b00dbfc6026a3521bbe0f5d00170000"),
    timestamp: int = 1624470281,
    drop_count: int = 0,
    node_id: int = 123,
    domain_id: int = 21587,
    payload: Optional[bytes] = None,
) -> bytes:
    """Build a drop report carrying the given 16-byte drop key."""
    if len(drop_key) != 16:
        raise ValueError(f"drop key must be 16 bytes, got {len(drop_key)}")
    pkt = TelemetryReportHdr(
        in_type=IN_TYPE_DROP,
        node_id=node_id,
        rpt_len=9,
        md_len=7,
        domain_id=domain_id,
    ) / DropHdr(timestamp=timestamp, drop_count=drop_count, drop_key=drop_key)
    if payload:
        pkt = pkt / Raw(load=payload)
    return bytes(pkt)
