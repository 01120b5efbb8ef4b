"""Temporary AWS credentials through OneLogin SAML with MFA."""

from .credentials import CloudCredentials, CredentialExchanger
from .errors import CredentialFlowError
from .flow import get_credentials

__version__ = "0.1.0"

__all__ = ["CloudCredentials", "CredentialExchanger", "CredentialFlowError", "get_credentials", "__version__"]
