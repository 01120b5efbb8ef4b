"""OneLogin API client: access tokens, SAML assertions and MFA verification."""

import logging
from dataclasses import dataclass, field
from enum import Enum

import requests
import structlog

from .errors import AuthError, ProtocolError

logger = structlog.wrap_logger(logging.getLogger(__name__))

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

API_URL_TEMPLATE = "https://api.{region}.onelogin.com"
REQUEST_TIMEOUT = 30  # seconds

# OneLogin Protect is the only device type that supports push notifications.
# https://developers.onelogin.com/api-docs/1/saml-assertions/verify-factor
PUSH_DEVICE_TYPES = frozenset({"OneLogin Protect"})

# ---------------------------------------------------------------------------
# Data types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AccessToken:
    value: str = field(repr=False)
    expires_in: int = 0


@dataclass(frozen=True)
class AssertionRequest:
    username: str
    password: str = field(repr=False)
    app_id: str
    subdomain: str


@dataclass(frozen=True)
class Device:
    device_id: str
    device_type: str

    @property
    def label(self):
        return f"{self.device_id} - {self.device_type}"

    @property
    def supports_push(self):
        return self.device_type in PUSH_DEVICE_TYPES


@dataclass(frozen=True)
class AssertionResponse:
    """Result of a SAML assertion request.

    Either ``assertion`` is set (no MFA needed) or ``state_token`` and
    ``devices`` describe the pending MFA challenge.
    """

    state_token: str = field(default=None, repr=False)
    devices: tuple = ()
    assertion: str = field(default=None, repr=False)

    @property
    def mfa_required(self):
        return self.assertion is None


class VerificationStatus(Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    TIMED_OUT = "timed-out"


@dataclass(frozen=True)
class FactorResult:
    status: VerificationStatus
    message: str = ""
    assertion: str = field(default=None, repr=False)


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------


def _status_message(response):
    """Return OneLogin's ``status.message`` from an error response, if any."""
    try:
        body = response.json()
    except ValueError:
        return None
    status = body.get("status") if isinstance(body, dict) else None
    if isinstance(status, dict):
        return status.get("message")
    return None


class OneLoginClient:
    """Thin wrapper over the OneLogin endpoints used by the credential flow.

    The client keeps no per-flow state: tokens, state tokens and passwords are
    passed in on every call.
    """

    def __init__(self, region, session=None):
        self.base_url = API_URL_TEMPLATE.format(region=region)
        self.http = session or requests.Session()

    def _post(self, path, payload, authorization):
        headers = {
            "Authorization": authorization,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        logger.debug("onelogin request", path=path)
        return self.http.post(
            f"{self.base_url}{path}",
            json=payload,
            headers=headers,
            timeout=REQUEST_TIMEOUT,
        )

    def acquire_token(self, client_id, client_secret):
        """Exchange API client credentials for an access token.

        Raises AuthError on rejected credentials or network failure.
        """
        try:
            response = self._post(
                "/auth/oauth2/v2/token",
                {"grant_type": "client_credentials"},
                f"client_id:{client_id}, client_secret:{client_secret}",
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            message = _status_message(exc.response) or f"HTTP {exc.response.status_code}"
            raise AuthError(f"generating access token: {message}") from exc
        except requests.RequestException as exc:
            raise AuthError(f"generating access token: {exc}") from exc

        try:
            body = response.json()
            value = body["access_token"]
        except (ValueError, KeyError, TypeError) as exc:
            raise ProtocolError("access token response is malformed") from exc

        logger.debug("access token acquired", expires_in=body.get("expires_in"))
        return AccessToken(value=value, expires_in=body.get("expires_in", 0))

    def request_assertion(self, token, request):
        """Ask OneLogin for a SAML assertion for ``request.app_id``.

        Returns an AssertionResponse holding either the assertion or the MFA
        challenge. Raises AuthError when the username/password pair is
        rejected and ProtocolError when the response cannot be understood.
        """
        payload = {
            "username_or_email": request.username,
            "password": request.password,
            "app_id": request.app_id,
            "subdomain": request.subdomain,
        }
        try:
            response = self._post("/api/1/saml_assertion", payload, f"bearer:{token.value}")
            response.raise_for_status()
        except requests.HTTPError as exc:
            message = _status_message(exc.response) or f"HTTP {exc.response.status_code}"
            raise AuthError(f"generating SAML assertion: {message}") from exc
        except requests.RequestException as exc:
            raise AuthError(f"generating SAML assertion: {exc}") from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise ProtocolError("SAML assertion response is not JSON") from exc

        data = body.get("data") if isinstance(body, dict) else None
        if isinstance(data, str) and data:
            logger.debug("saml assertion issued without mfa")
            return AssertionResponse(assertion=data)

        try:
            challenge = data[0]
            state_token = challenge["state_token"]
            devices = tuple(
                Device(device_id=str(d["device_id"]), device_type=d["device_type"])
                for d in challenge.get("devices") or ()
            )
        except (IndexError, KeyError, TypeError) as exc:
            raise ProtocolError("SAML assertion response carries neither an assertion nor an MFA challenge") from exc

        logger.debug("mfa challenge received", devices=len(devices))
        return AssertionResponse(state_token=state_token, devices=devices)

    def verify_factor(self, token, app_id, device_id, state_token, otp_token=None, do_not_notify=False):
        """Send one verify-factor request for the pending MFA challenge.

        With ``do_not_notify=False`` and no OTP this triggers a push
        notification; repeating the call with ``do_not_notify=True`` polls for
        the push result.
        """
        payload = {
            "app_id": app_id,
            "device_id": device_id,
            "state_token": state_token,
            "do_not_notify": do_not_notify,
        }
        if otp_token is not None:
            payload["otp_token"] = otp_token

        try:
            response = self._post("/api/1/saml_assertion/verify_factor", payload, f"bearer:{token.value}")
        except requests.RequestException as exc:
            raise ProtocolError(f"verifying factor: {exc}") from exc

        if response.status_code == 401:
            message = _status_message(response)
            if message is not None:
                logger.debug("factor rejected", message=message)
                return FactorResult(VerificationStatus.REJECTED, message)

        try:
            response.raise_for_status()
            body = response.json()
            status = body["status"]
            status_type = status["type"]
        except requests.HTTPError as exc:
            message = _status_message(exc.response) or f"HTTP {exc.response.status_code}"
            raise ProtocolError(f"verifying factor: {message}") from exc
        except (ValueError, KeyError, TypeError) as exc:
            raise ProtocolError("verify factor response is malformed") from exc

        message = status.get("message", "")
        if status_type == "pending":
            return FactorResult(VerificationStatus.PENDING, message)

        data = body.get("data")
        if status_type == "success" and isinstance(data, str) and data:
            return FactorResult(VerificationStatus.ACCEPTED, message, assertion=data)

        return FactorResult(VerificationStatus.REJECTED, message)
