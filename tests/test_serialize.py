"""
Tests for structured report output and attribute mapping.
"""
import json

import pytest

from p4trpt import decode_report, extract_field, to_json
from samples import DROP_KEY_HEX, DROP_RPT, PAYLOAD, UDP4_2HOPS, UDP6_2HOPS


def test_packet_report_keys():
    record = decode_report(UDP4_2HOPS).to_dict()
    assert set(record) == {
        "telemRptHdr", "intEthHdr", "ipHdr", "udpIntHdr",
        "intHdr", "protoHdr", "payload", "dropKey",
    }
    assert set(record["telemRptHdr"]) == {
        "domainId", "hardwareId", "inType", "nodeId", "rptLen", "seqNo",
        "version", "metaLen", "rptType", "d", "q", "f", "i",
        "repMdBits", "mdbBits", "mdsBits", "varOptMd",
    }
    assert set(record["intHdr"]) == {"shimHdr", "mdHdr", "mdStackHdr"}
    assert record["intEthHdr"] == {
        "dstMac": "00:00:00:00:05:01",
        "srcMac": "00:00:00:00:01:01",
        "type": 2048,
    }
    assert record["payload"] == PAYLOAD.hex()


def test_drop_report_keys():
    record = decode_report(DROP_RPT).to_dict()
    assert set(record) == {"telemRptHdr", "dropHdr", "payload", "dropKey"}
    assert record["dropHdr"] == {
        "timestamp": 1624470281,
        "dropKey": DROP_KEY_HEX,
        "dropCount": 0,
    }
    assert record["dropKey"] == DROP_KEY_HEX
    assert record["payload"] == ""


def test_to_json_is_compact():
    report = decode_report(UDP6_2HOPS)
    text = to_json(report)
    assert " " not in text
    assert json.loads(text) == report.to_dict()


def test_extract_field():
    record = decode_report(UDP4_2HOPS).to_dict()
    assert extract_field(record, "intHdr.mdStackHdr.origMac") == "00:00:00:00:01:01"
    assert extract_field(record, "ipHdr.dstAddr") == "192.168.1.10"
    assert extract_field(record, "protoHdr.dstPort") == 5792
    assert extract_field(record, "intHdr.mdStackHdr.hops") == [123, 234]
    assert extract_field(record, "telemRptHdr") == record["telemRptHdr"]


def test_extract_field_json_string():
    record = decode_report(DROP_RPT).to_dict()
    assert json.loads(extract_field(record, "jsonString")) == record


@pytest.mark.parametrize("mapping,token", [
    ("ipHdr.ttl", "ttl"),
    ("dropHdr.dropCount", "dropHdr"),
    ("protoHdr.dstPort.value", "value"),
])
def test_extract_field_missing(mapping, token):
    record = decode_report(UDP4_2HOPS).to_dict()
    with pytest.raises(KeyError) as exc:
        extract_field(record, mapping)
    assert exc.value.args[0] == f"Element not found - {token} for mapping - {mapping}"
