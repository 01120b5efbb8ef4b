"""Errors raised while acquiring AWS credentials through OneLogin.

Every error carries the name of the flow stage it was raised in once the
orchestrator has seen it, so the CLI can tell the user where things broke.
"""


class CredentialFlowError(Exception):
    """Base class for all fatal errors of the credential flow."""

    def __init__(self, message, stage=None):
        super().__init__(message)
        self.message = message
        self.stage = stage

    def __str__(self):
        if self.stage:
            return f"{self.stage}: {self.message}"
        return self.message


class ConfigError(CredentialFlowError):
    """Missing or invalid provider/app configuration."""


class AuthError(CredentialFlowError):
    """OneLogin rejected the client credentials or the username/password."""


class ProtocolError(CredentialFlowError):
    """OneLogin answered with something we cannot interpret."""


class NoDeviceError(CredentialFlowError):
    """OneLogin asked for MFA but returned no device to use."""


class MfaVerificationError(CredentialFlowError):
    """The OTP was rejected or a push verification failed hard."""


class AssertionParseError(CredentialFlowError):
    """The SAML assertion does not carry a usable AWS role binding."""


class RoleAssumptionError(CredentialFlowError):
    """STS refused to exchange the SAML assertion for credentials."""
