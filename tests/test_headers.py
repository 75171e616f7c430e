"""
Tests for the individual header views.
"""
import pytest

from p4trpt.exceptions import InconsistentLength, TruncatedBuffer
from p4trpt.headers import (
    ETH_TYPE_IPV6,
    EthernetHeader,
    IntHeader,
    IpHeader,
    ProtoHeader,
    ReportHeader,
)
from samples import TCP4_2HOPS, UDP4_2HOPS, UDP6_2HOPS, build_packet_report


def test_views_share_the_buffer():
    buf = bytearray(UDP4_2HOPS)
    proto = ProtoHeader.decode(buf, 98, 17)
    proto.set_dst_port(1)
    assert buf[100:102] == b"\x00\x01"
    assert ProtoHeader.decode(buf, 98, 17).dst_port == 1


def test_report_header_offsets():
    buf = bytearray(UDP4_2HOPS)
    hdr = ReportHeader.decode(buf, 0)
    assert hdr.offset == 0
    assert hdr.end == 24
    assert hdr.get_bytes() == UDP4_2HOPS[:24]
    assert hdr.to_dict()["seqNo"] == 1089


def test_ethernet_header_ip_version():
    v4 = EthernetHeader.decode(bytearray(UDP4_2HOPS), 24)
    v6 = EthernetHeader.decode(bytearray(UDP6_2HOPS), 24)
    assert v4.ip_version == 4
    assert v6.ether_type == ETH_TYPE_IPV6
    assert v6.ip_version == 6


def test_ip_header_width_follows_version():
    v4 = IpHeader.decode(bytearray(UDP4_2HOPS), 38, 4)
    v6 = IpHeader.decode(bytearray(UDP6_2HOPS), 38, 6)
    assert v4.length == 20
    assert v6.length == 40
    assert v6.payload_length == 74


def test_ip_header_version_mismatch():
    with pytest.raises(InconsistentLength):
        IpHeader.decode(bytearray(UDP4_2HOPS), 38, 6)


def test_ipv6_header_truncated():
    # Enough for an IPv4 header but not an IPv6 one
    with pytest.raises(TruncatedBuffer) as exc:
        IpHeader.decode(bytearray(UDP6_2HOPS[:70]), 38, 6)
    assert exc.value.header == "ip header"
    assert exc.value.needed == 40


def test_int_header_lengths():
    buf = bytearray(UDP4_2HOPS)
    int_hdr = IntHeader.decode(buf, 66)
    assert int_hdr.length == 32
    assert int_hdr.last_index == 98
    assert int_hdr.md.offset == 70
    assert int_hdr.md_stack.offset == 82
    assert int_hdr.md_stack.length == 16
    assert int_hdr.md_stack.num_hops == 2


def test_int_header_with_many_hops():
    data = build_packet_report(hops=tuple(range(1, 11)))
    int_hdr = IntHeader.decode(bytearray(data), 66)
    assert int_hdr.shim.int_length == 16
    assert int_hdr.last_index == 66 + 64
    assert int_hdr.md_stack.hops == list(range(1, 11))
    assert int_hdr.to_dict()["mdStackHdr"]["hops"] == list(range(1, 11))


def test_int_header_rejects_short_length():
    buf = bytearray(UDP4_2HOPS)
    buf[67] = 0
    with pytest.raises(InconsistentLength):
        IntHeader.decode(buf, 66)


def test_proto_header_width():
    assert ProtoHeader.decode(bytearray(UDP4_2HOPS), 98, 17).length == 8
    tcp = ProtoHeader.decode(bytearray(TCP4_2HOPS), 98, 6)
    assert tcp.length == 20
    assert tcp.end == 118
    assert tcp.to_dict() == {"srcPort": 6680, "dstPort": 5792}


def test_proto_header_unknown_protocol():
    with pytest.raises(InconsistentLength):
        ProtoHeader.decode(bytearray(UDP4_2HOPS), 98, 1)
