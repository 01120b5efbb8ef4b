"""SAML assertion parsing: which AWS role the assertion grants."""

import base64
import binascii
import xml.etree.ElementTree as ET
from dataclasses import dataclass

from .errors import AssertionParseError

SAML_ROLE_ATTRIBUTE = "https://aws.amazon.com/SAML/Attributes/Role"
SAML_SESSION_ATTRIBUTE = "https://aws.amazon.com/SAML/Attributes/SessionDuration"

_NS = "{urn:oasis:names:tc:SAML:2.0:assertion}"


@dataclass(frozen=True)
class RoleBinding:
    provider_arn: str
    role_arn: str
    session_duration: int = None


def _parse_role_value(text):
    """Parse a single Role attribute value into (provider_arn, role_arn).

    The value is a comma-separated pair of ARNs:
    ``arn:aws:iam::ACCT:saml-provider/P,arn:aws:iam::ACCT:role/R``
    or in reverse order.
    """
    parts = [p.strip() for p in text.split(",")]
    if len(parts) != 2:
        raise AssertionParseError(f"role attribute must hold two ARNs, got {len(parts)}: {text!r}")

    role_arn = next((p for p in parts if ":role/" in p), None)
    provider_arn = next((p for p in parts if ":saml-provider/" in p), None)
    if not role_arn or not provider_arn:
        raise AssertionParseError(f"role attribute is not a provider/role ARN pair: {text!r}")

    return provider_arn, role_arn


def parse_role_bindings(assertion):
    """Decode the base64 SAML response and read its AWS attributes.

    Returns:
        bindings (list[tuple]): (provider_arn, role_arn) pairs in document order.
        session_duration (int | None): the SessionDuration attribute, if present.
    """
    try:
        saml_xml = base64.b64decode(assertion)
        root = ET.fromstring(saml_xml)
    except (binascii.Error, ValueError, ET.ParseError) as exc:
        raise AssertionParseError(f"SAML assertion cannot be decoded: {exc}") from exc

    bindings = []
    session_duration = None
    for attr in root.iter(f"{_NS}Attribute"):
        name = attr.get("Name", "")
        values = [(v.text or "").strip() for v in attr.iter(f"{_NS}AttributeValue")]

        if name == SAML_ROLE_ATTRIBUTE:
            bindings.extend(_parse_role_value(text) for text in values if text)
        elif name == SAML_SESSION_ATTRIBUTE:
            for text in values:
                try:
                    session_duration = int(text)
                except ValueError:
                    pass

    return bindings, session_duration


def extract_role_binding(assertion, role_arn=None):
    """Return the single RoleBinding carried by *assertion*.

    When the assertion grants more than one role, *role_arn* picks one of
    them; without it the assertion is refused.
    """
    bindings, session_duration = parse_role_bindings(assertion)
    if not bindings:
        raise AssertionParseError("SAML assertion carries no AWS role attribute")

    if role_arn:
        bindings = [b for b in bindings if b[1] == role_arn]
        if not bindings:
            raise AssertionParseError(f"SAML assertion does not grant role {role_arn}")

    if len(bindings) > 1:
        available = ", ".join(b[1] for b in bindings)
        raise AssertionParseError(f"SAML assertion grants several roles, choose one with --role-arn: {available}")

    provider_arn, role = bindings[0]
    return RoleBinding(provider_arn, role, session_duration)
