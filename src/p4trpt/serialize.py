"""
Structured output for decoded reports.

The key names are a wire contract with the stream processors that consume
reports as JSON or map them into typed attributes, so they must not change.
"""
import json
import logging
from typing import Any, Dict

log = logging.getLogger(__name__)

TRPT_HDR_KEY = "telemRptHdr"
INT_ETH_HDR_KEY = "intEthHdr"
IP_HDR_KEY = "ipHdr"
UDP_INT_HDR_KEY = "udpIntHdr"
INT_HDR_KEY = "intHdr"
PROTO_HDR_KEY = "protoHdr"
DROP_HDR_KEY = "dropHdr"
PAYLOAD_KEY = "payload"
CORRELATION_KEY = "dropKey"

# Attribute mapping that selects the whole report as a JSON string
JSON_STRING_MAPPING = "jsonString"


def report_to_dict(report) -> Dict[str, Any]:
    """Map every decoded field of a PacketReport or DropReport to its key."""
    out = {TRPT_HDR_KEY: report.trpt_hdr.to_dict()}
    if report.kind == "drop":
        out[DROP_HDR_KEY] = report.drop_hdr.to_dict()
    else:
        out[INT_ETH_HDR_KEY] = report.eth_hdr.to_dict()
        out[IP_HDR_KEY] = report.ip_hdr.to_dict()
        out[UDP_INT_HDR_KEY] = report.udp_int_hdr.to_dict()
        out[INT_HDR_KEY] = report.int_hdr.to_dict()
        out[PROTO_HDR_KEY] = report.proto_hdr.to_dict()
    out[PAYLOAD_KEY] = report.payload.hex()
    out[CORRELATION_KEY] = report.correlation_key
    return out


def to_json(report) -> str:
    return json.dumps(report_to_dict(report), separators=(",", ":"), ensure_ascii=True)


def extract_field(record: Dict[str, Any], mapping: str) -> Any:
    """
    Resolve a dotted attribute mapping such as 'intHdr.mdStackHdr.origMac'.

    'jsonString' returns the whole record serialized as JSON.

    Raises:
        KeyError: a path segment is missing
    """
    if mapping == JSON_STRING_MAPPING:
        return json.dumps(record, separators=(",", ":"), ensure_ascii=True)

    node: Any = record
    for token in mapping.split("."):
        if not isinstance(node, dict) or token not in node:
            raise KeyError(f"Element not found - {token} for mapping - {mapping}")
        node = node[token]
    log.debug("Extracted %r with mapping %s", node, mapping)
    return node
