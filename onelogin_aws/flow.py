"""End-to-end credential flow: OneLogin login, MFA, SAML, STS."""

import logging
import time
from contextlib import contextmanager

import structlog

from .credentials import DEFAULT_DURATION, MAX_DURATION, MIN_DURATION, CredentialExchanger
from .devices import select_device
from .errors import CredentialFlowError
from .identity import AssertionRequest, OneLoginClient
from .mfa import MfaVerifier
from .saml import extract_role_binding
from .terminal import busy

logger = structlog.wrap_logger(logging.getLogger(__name__))


@contextmanager
def _stage(name):
    """Tag any flow error raised inside the block with the stage name."""
    log = logger.bind(stage=name)
    log.debug("stage started")
    try:
        yield
    except CredentialFlowError as exc:
        if exc.stage is None:
            exc.stage = name
        log.debug("stage failed", error=type(exc).__name__)
        raise


def _login(provider, terminal):
    username = provider.username
    if not username:
        username = terminal.read_line("OneLogin username: ")
    password = terminal.read_secret("OneLogin password: ")
    return username, password


def get_credentials(
    provider,
    app,
    terminal,
    duration=None,
    role_arn=None,
    client=None,
    exchanger=None,
    clock=time.monotonic,
    sleep=time.sleep,
):
    """Get temporary AWS credentials for *app* through *provider*.

    Returns CloudCredentials, or raises the first CredentialFlowError with
    its ``stage`` set.
    """
    client = client or OneLoginClient(provider.region)
    exchanger = exchanger or CredentialExchanger()

    with _stage("token"), busy(terminal, "Getting OneLogin access token..."):
        token = client.acquire_token(provider.client_id, provider.client_secret)

    with _stage("login"):
        username, password = _login(provider, terminal)

    with _stage("assertion"), busy(terminal, "Generating SAML assertion..."):
        request = AssertionRequest(
            username=username,
            password=password,
            app_id=app.app_id,
            subdomain=provider.subdomain,
        )
        response = client.request_assertion(token, request)
    del password, request

    assertion = response.assertion
    if response.mfa_required:
        with _stage("device"):
            device = select_device(response.devices, terminal)

        with _stage("mfa"):
            verifier = MfaVerifier(client, token, app.app_id, terminal, clock=clock, sleep=sleep)
            assertion = verifier.verify(response.state_token, device)

    with _stage("saml"):
        binding = extract_role_binding(assertion, role_arn=role_arn or app.role_arn)

    duration = duration or app.duration or binding.session_duration or DEFAULT_DURATION
    duration = max(MIN_DURATION, min(duration, MAX_DURATION))

    def notify(message):
        terminal.echo(message, style="yellow")

    with _stage("sts"), busy(terminal, "Assuming AWS role..."):
        credentials = exchanger.assume_role(
            binding.provider_arn,
            binding.role_arn,
            assertion,
            duration,
            notify=notify,
        )

    logger.info("credentials acquired", role_arn=binding.role_arn, expiration=str(credentials.expiration))
    return credentials
