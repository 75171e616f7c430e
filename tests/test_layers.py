"""
Tests for the scapy report layers: crafted reports must decode.
"""
import pytest

from p4trpt import AddressFamilyMismatch, DropReport, PacketReport, decode_report
from p4trpt.layers import (
    IntMetaHdr,
    IntMetaStack,
    IntShim,
    TelemetryReportHdr,
    craft_drop_report,
    craft_packet_report,
)
from samples import DROP_RPT, PAYLOAD


def test_craft_drop_report_matches_reference():
    assert craft_drop_report() == DROP_RPT


def test_craft_drop_report_payload():
    report = decode_report(craft_drop_report(drop_count=3, payload=b"\x01\x02"))
    assert isinstance(report, DropReport)
    assert report.drop_hdr.drop_count == 3
    assert report.payload == b"\x01\x02"


def test_craft_drop_report_key_length():
    with pytest.raises(ValueError):
        craft_drop_report(drop_key=b"\x00" * 8)


@pytest.mark.parametrize("proto,next_proto,proto_len", [("udp", 17, 8), ("tcp", 6, 20)])
def test_craft_ipv4_packet_report(proto, next_proto, proto_len):
    report = decode_report(craft_packet_report(proto=proto, seq_no=77, hw_id=5))
    assert isinstance(report, PacketReport)
    assert report.trpt_hdr.in_type == 4
    assert report.trpt_hdr.sequence_id == 77
    assert report.trpt_hdr.hardware_id == 5
    assert report.eth_hdr.ether_type == 0x0800
    assert str(report.ip_hdr.src_addr) == "192.168.1.2"
    assert str(report.ip_hdr.dst_addr) == "192.168.1.10"
    assert report.udp_int_hdr.dst_port == 555
    assert report.int_hdr.shim.next_proto == next_proto
    assert report.int_hdr.md_stack.hops == [123, 234]
    assert report.int_hdr.md_stack.orig_mac == "00:00:00:00:01:01"
    assert report.proto_hdr.length == proto_len
    assert report.proto_hdr.src_port == 6680
    assert report.proto_hdr.dst_port == 5792
    assert report.payload == PAYLOAD


def test_craft_ipv6_packet_report():
    data = craft_packet_report(src_addr="::1:1:2", dst_addr="::1:1:1d", hops=(1, 2, 3))
    report = decode_report(data)
    assert report.trpt_hdr.in_type == 5
    assert report.ip_hdr.version == 6
    assert str(report.ip_hdr.dst_addr) == "::1:1:1d"
    assert report.int_hdr.md_stack.hops == [1, 2, 3]
    assert report.get_bytes() == data


def test_craft_without_payload():
    report = decode_report(craft_packet_report(payload=b""))
    assert report.payload == b""


def test_craft_unknown_protocol():
    with pytest.raises(ValueError):
        craft_packet_report(proto="sctp")


def test_report_header_layer_fields():
    hdr = TelemetryReportHdr(bytes(DROP_RPT[:24]))
    assert hdr.ver == 2
    assert hdr.in_type == 2
    assert hdr.node_id == 123
    assert hdr.domain_id == 21587


def test_dissect_crafted_report_to_metadata_stack():
    pkt = TelemetryReportHdr(craft_packet_report(hops=(1, 2, 3), orig_mac="00:00:00:00:02:02"))
    assert IntShim in pkt
    assert pkt[IntShim].length == 9
    assert pkt[IntMetaHdr].remaining_hop_cnt == 9
    # Wire order: most recent hop on top
    assert pkt[IntMetaStack].hops == [3, 2, 1]
    assert pkt[IntMetaStack].orig_mac == "00:00:00:00:02:02"
    assert pkt[IntMetaStack].pad == 0


def test_craft_mixed_address_families():
    with pytest.raises(AddressFamilyMismatch):
        craft_packet_report(src_addr="::1", dst_addr="10.0.0.1")
