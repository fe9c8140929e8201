"""SOAP envelope building and parsing for the FinanzOnline web services."""

import re
from datetime import datetime, timezone
from typing import Any, Mapping

from lxml import etree

from finanzonline.errors import FinanzonlineError, InvalidXmlError, SoapFaultError

SOAP_ENV_NS = "http://schemas.xmlsoap.org/soap/envelope/"

SOAP_NAMESPACES = {
    "session": "https://finanzonline.bmf.gv.at/fon/ws/session",
    "databox": "https://finanzonline.bmf.gv.at/fon/ws/databox",
}

SNIPPET_LENGTH = 200

_XML_ESCAPES = [
    ("&", "&amp;"),
    ("<", "&lt;"),
    (">", "&gt;"),
    ('"', "&quot;"),
    ("'", "&apos;"),
]

_HTML_TAG = re.compile(r"<html", re.IGNORECASE)
_MAINTENANCE_PATH = re.compile(r"/wartung/", re.IGNORECASE)

SoapParamValue = str | int | float | datetime | None


##########################################
############### BUILDING #################
##########################################

def escape_xml(value: str) -> str:
    """Escape the five reserved XML characters. Ampersands go first."""
    for char, entity in _XML_ESCAPES:
        value = value.replace(char, entity)
    return value


def unescape_xml(value: str) -> str:
    """Inverse of escape_xml. Ampersands go last."""
    for char, entity in reversed(_XML_ESCAPES):
        value = value.replace(entity, char)
    return value


def format_timestamp(value: datetime) -> str:
    """
    Render a datetime as ISO-8601 UTC with milliseconds, e.g. 2024-01-01T00:00:00.000Z.
    Naive datetimes are taken as UTC.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S") + f".{value.microsecond // 1000:03d}Z"


def build_soap_envelope(namespace: str, operation: str, params: Mapping[str, SoapParamValue]) -> str:
    """
    Build a SOAP 1.1 request envelope for a single operation.

    Args:
        namespace (str): Namespace of the operation family (see SOAP_NAMESPACES).
        operation (str): Operation element name, e.g. "login".
        params (Mapping[str, SoapParamValue]): Ordered parameters. None values are omitted.

    Returns:
        str: The serialized envelope.
    """
    serialized_params = []
    for key, value in params.items():
        if value is None:
            continue
        if isinstance(value, datetime):
            text = format_timestamp(value)
        else:
            text = str(value)
        serialized_params.append(f"<{key}>{escape_xml(text)}</{key}>")

    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        f'<soapenv:Envelope xmlns:soapenv="{SOAP_ENV_NS}" xmlns:ns="{namespace}">'
        "<soapenv:Body>"
        f"<ns:{operation}>"
        + "".join(serialized_params)
        + f"</ns:{operation}>"
        "</soapenv:Body>"
        "</soapenv:Envelope>"
    )


##########################################
################ PARSING #################
##########################################

def is_maintenance_response(text: str) -> bool:
    """Return True if the text is the FinanzOnline maintenance HTML page."""
    return bool(_HTML_TAG.search(text)) and bool(_MAINTENANCE_PATH.search(text))


def parse_soap_body(xml: str | bytes, expected_key: str | None = None) -> Any:
    """
    Extract the response payload from a SOAP envelope.

    Args:
        xml (str | bytes): The raw response. Bytes are decoded by the parser
            using the encoding declared in the document.
        expected_key (str | None): Name of the payload element. If omitted, the
            first non-fault element of the body is used.

    Returns:
        Any: The payload converted to plain Python values (dicts, lists, strings).

    Raises:
        SoapFaultError: If the body carries a Fault element.
        InvalidXmlError: If the text is not XML, has no structured Body, or the
            payload element is missing.
    """
    snippet = _snippet(xml)
    try:
        body = _find_body(xml)
        if not isinstance(body, dict) or not body:
            raise InvalidXmlError("SOAP response missing Body", snippet)

        if "Fault" in body:
            fault = body["Fault"]
            fault = fault if isinstance(fault, dict) else {}
            fault_string = fault.get("faultstring")
            fault_code = fault.get("faultcode")
            raise SoapFaultError(
                fault_string if isinstance(fault_string, str) and fault_string else "SOAP fault",
                fault_code if isinstance(fault_code, str) and fault_code else None,
            )

        candidate_keys = [key for key in body if key != "Fault"]
        response_key = expected_key or (candidate_keys[0] if candidate_keys else None)
        if not response_key or response_key not in body:
            raise InvalidXmlError("SOAP response missing expected payload", snippet)

        return body[response_key]
    except FinanzonlineError:
        raise
    except Exception as e:
        raise InvalidXmlError(str(e) or "Failed to parse SOAP response", snippet) from e


def _snippet(xml: str | bytes) -> str:
    if isinstance(xml, bytes):
        return xml[:SNIPPET_LENGTH].decode("utf-8", errors="replace")
    return xml[:SNIPPET_LENGTH]


def _find_body(xml: str | bytes) -> Any:
    parser = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)
    data = xml if isinstance(xml, bytes) else xml.encode("utf-8")
    try:
        root = etree.fromstring(data, parser=parser)
    except etree.XMLSyntaxError as e:
        raise InvalidXmlError(f"Failed to parse SOAP response: {e}", _snippet(xml)) from e
    if root is None or etree.QName(root).localname != "Envelope":
        return None
    envelope = _element_to_value(root)
    if not isinstance(envelope, dict):
        return None
    return envelope.get("Body")


def _element_to_value(element: etree._Element) -> Any:
    """
    Convert an element into plain values with namespace prefixes removed.
    Leaves become trimmed strings, repeated children are collected in a list.
    """
    children = [child for child in element if isinstance(child.tag, str)]
    if not children:
        return (element.text or "").strip()

    result: dict[str, Any] = {}
    for child in children:
        key = etree.QName(child).localname
        value = _element_to_value(child)
        if key not in result:
            result[key] = value
        elif isinstance(result[key], list):
            result[key].append(value)
        else:
            result[key] = [result[key], value]
    return result
