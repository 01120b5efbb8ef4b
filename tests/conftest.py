"""Pytest configuration and shared fixtures."""

import base64
from unittest.mock import MagicMock

import pytest
import requests

from onelogin_aws.identity import AccessToken

ROLE_ATTRIBUTE_VALUE = "arn:aws:iam::111111111111:saml-provider/Idp,arn:aws:iam::111111111111:role/MyRole"


class ScriptedTerminal:
    """Terminal stand-in that answers prompts from prepared lists."""

    def __init__(self, lines=(), secrets=("hunter2",)):
        self.lines = list(lines)
        self.secrets = list(secrets)
        self.prompts = []
        self.messages = []
        self.busy_started = 0
        self.busy_stopped = 0

    def echo(self, message, style=None):
        self.messages.append(message)

    def read_line(self, prompt):
        self.prompts.append(prompt)
        return self.lines.pop(0)

    def read_secret(self, prompt):
        self.prompts.append(prompt)
        return self.secrets.pop(0)

    def start_busy(self, message="Working..."):
        self.busy_started += 1

    def stop_busy(self):
        self.busy_stopped += 1


class FakeClock:
    """Monotonic clock that only moves when ``sleep`` is called."""

    def __init__(self, now=1000.0):
        self.now = now
        self.sleeps = []

    def __call__(self):
        return self.now

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.now += seconds


def make_assertion(role_values=(ROLE_ATTRIBUTE_VALUE,), session_duration=None):
    """Build a base64-encoded SAML response carrying the given AWS attributes."""
    values = "".join(f"<saml:AttributeValue>{v}</saml:AttributeValue>" for v in role_values)
    session = ""
    if session_duration is not None:
        session = (
            '<saml:Attribute Name="https://aws.amazon.com/SAML/Attributes/SessionDuration">'
            f"<saml:AttributeValue>{session_duration}</saml:AttributeValue>"
            "</saml:Attribute>"
        )
    xml = (
        '<samlp:Response xmlns:samlp="urn:oasis:names:tc:SAML:2.0:protocol" '
        'xmlns:saml="urn:oasis:names:tc:SAML:2.0:assertion">'
        "<saml:Assertion><saml:AttributeStatement>"
        '<saml:Attribute Name="https://aws.amazon.com/SAML/Attributes/Role">'
        f"{values}"
        "</saml:Attribute>"
        f"{session}"
        "</saml:AttributeStatement></saml:Assertion>"
        "</samlp:Response>"
    )
    return base64.b64encode(xml.encode("utf-8")).decode("ascii")


def mock_response(status_code=200, body=None):
    """Build a requests.Response-like mock."""
    response = MagicMock()
    response.status_code = status_code
    response.json.return_value = body
    if status_code >= 400:
        error = requests.HTTPError(f"{status_code} Error", response=response)
        response.raise_for_status.side_effect = error
    else:
        response.raise_for_status.return_value = None
    return response


@pytest.fixture(scope="function", autouse=True)
def isolate_environment(monkeypatch):
    """Keep the developer's environment out of the tests."""
    for var in ("ONELOGIN_AWS_CONFIG", "AWS_PROFILE", "AWS_REGION", "AWS_DEFAULT_REGION"):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def terminal():
    return ScriptedTerminal()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def access_token():
    return AccessToken(value="onelogin-token", expires_in=36000)


@pytest.fixture
def saml_assertion():
    return make_assertion()
