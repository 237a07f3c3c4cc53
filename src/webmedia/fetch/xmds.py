from __future__ import annotations

import logging
from typing import Optional
from xml.etree import ElementTree as ET

from ..models import ResourceIdentity
from ..util.http import DEFAULT_TIMEOUT

LOGGER = logging.getLogger(__name__)

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"
XMDS_NS = "urn:xmds"
GET_RESOURCE_ACTION = f"{XMDS_NS}#GetResource"


class XmdsError(RuntimeError):
    """SOAP fault returned by the display service."""


def _local(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def build_get_resource(identity: ResourceIdentity) -> bytes:
    envelope = ET.Element(f"{{{SOAP_ENV_NS}}}Envelope")
    body = ET.SubElement(envelope, f"{{{SOAP_ENV_NS}}}Body")
    call = ET.SubElement(body, f"{{{XMDS_NS}}}GetResource")
    for name, value in identity.as_params():
        ET.SubElement(call, name).text = value
    return ET.tostring(envelope, encoding="utf-8", xml_declaration=True)


def _find(root: ET.Element, name: str) -> Optional[ET.Element]:
    for node in root.iter():
        if _local(node.tag) == name:
            return node
    return None


def parse_get_resource(content: bytes) -> str:
    try:
        root = ET.fromstring(content)
    except ET.ParseError as exc:
        raise XmdsError(f"Malformed GetResource response: {exc}") from exc

    fault = _find(root, "Fault")
    if fault is not None:
        message = fault.findtext("faultstring") or "Unknown SOAP fault"
        raise XmdsError(message.strip())

    response = _find(root, "GetResourceResponse")
    if response is None:
        raise XmdsError("GetResource response missing from envelope")
    payload = next(iter(response), None)
    if payload is None:
        return response.text or ""
    return payload.text or ""


class XmdsClient:
    def __init__(self, session, url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.session = session
        self.url = url
        self.timeout = timeout

    def get_resource(self, identity: ResourceIdentity) -> str:
        LOGGER.info(
            "Requesting resource layout=%s region=%s media=%s",
            identity.layout_id,
            identity.region_id,
            identity.media_id,
        )
        resp = self.session.post(
            self.url,
            data=build_get_resource(identity),
            headers={
                "Content-Type": "text/xml; charset=utf-8",
                "SOAPAction": f'"{GET_RESOURCE_ACTION}"',
            },
            timeout=self.timeout,
        )
        # Faults arrive with a 500 status, so read the envelope before the status.
        if resp.status_code >= 400 and resp.content and b"Fault" in resp.content:
            parse_get_resource(resp.content)
        resp.raise_for_status()
        return parse_get_resource(resp.content)
