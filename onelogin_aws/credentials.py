"""AWS STS exchange of a verified SAML assertion for temporary credentials."""

import json
import logging
from dataclasses import dataclass, field

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from .errors import RoleAssumptionError

logger = structlog.wrap_logger(logging.getLogger(__name__))

DEFAULT_DURATION = 3600
FALLBACK_DURATION = 3600  # used once when the role's MaxSessionDuration is exceeded
MIN_DURATION = 900
MAX_DURATION = 43200  # STS max is 12 h

DURATION_EXCEEDED_MESSAGE = (
    "The requested duration exceeds the maximum session duration of the role; "
    f"retrying with {FALLBACK_DURATION} seconds"
)


@dataclass(frozen=True)
class CloudCredentials:
    access_key_id: str
    secret_access_key: str = field(repr=False)
    session_token: str = field(repr=False)
    expiration: object  # timezone-aware datetime

    @classmethod
    def from_sts(cls, credentials):
        return cls(
            access_key_id=credentials["AccessKeyId"],
            secret_access_key=credentials["SecretAccessKey"],
            session_token=credentials["SessionToken"],
            expiration=credentials["Expiration"],
        )

    def to_credential_process(self):
        """Render the JSON document expected from an AWS ``credential_process``."""
        return json.dumps(
            {
                "Version": 1,
                "AccessKeyId": self.access_key_id,
                "SecretAccessKey": self.secret_access_key,
                "SessionToken": self.session_token,
                "Expiration": self.expiration.isoformat(),
            },
            indent=2,
        )

    def to_env(self):
        return "\n".join(
            [
                f"export AWS_ACCESS_KEY_ID={self.access_key_id}",
                f"export AWS_SECRET_ACCESS_KEY={self.secret_access_key}",
                f"export AWS_SESSION_TOKEN={self.session_token}",
            ]
        )


def is_duration_exceeded(error):
    """Tell whether an STS ClientError rejects the requested DurationSeconds."""
    details = error.response.get("Error", {})
    return details.get("Code") == "ValidationError" and "MaxSessionDuration" in details.get("Message", "")


class CredentialExchanger:
    """Calls STS AssumeRoleWithSAML, falling back once to a shorter session."""

    def __init__(self, region=None, sts_client=None):
        self.region = region
        self._sts = sts_client

    @property
    def sts(self):
        if self._sts is None:
            self._sts = boto3.client("sts", region_name=self.region)
        return self._sts

    def _attempt(self, provider_arn, role_arn, assertion, duration):
        logger.debug("assuming role", role_arn=role_arn, duration=duration)
        response = self.sts.assume_role_with_saml(
            RoleArn=role_arn,
            PrincipalArn=provider_arn,
            SAMLAssertion=assertion,
            DurationSeconds=duration,
        )
        return CloudCredentials.from_sts(response["Credentials"])

    def assume_role(self, provider_arn, role_arn, assertion, duration, notify=None):
        """Exchange *assertion* for credentials of *role_arn*.

        If STS refuses *duration* because it exceeds the role's maximum, the
        condition is reported through *notify* and the exchange is retried
        exactly once with FALLBACK_DURATION. Every other failure raises
        RoleAssumptionError.
        """
        try:
            return self._attempt(provider_arn, role_arn, assertion, duration)
        except ClientError as exc:
            if not is_duration_exceeded(exc):
                raise RoleAssumptionError(f"assuming role {role_arn}: {exc}") from exc
        except BotoCoreError as exc:
            raise RoleAssumptionError(f"assuming role {role_arn}: {exc}") from exc

        logger.info("requested duration exceeded", requested=duration, fallback=FALLBACK_DURATION)
        if notify is not None:
            notify(DURATION_EXCEEDED_MESSAGE)

        try:
            return self._attempt(provider_arn, role_arn, assertion, FALLBACK_DURATION)
        except (ClientError, BotoCoreError) as exc:
            raise RoleAssumptionError(f"assuming role {role_arn} with {FALLBACK_DURATION} seconds: {exc}") from exc
