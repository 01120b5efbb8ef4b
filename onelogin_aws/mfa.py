"""MFA verification: push notification first, manual OTP as fallback.

The verifier walks an explicit state machine::

    Unstarted -> AwaitingChallenge -> PushPending -> Accepted | Rejected | TimedOut
                                   -> OtpPending  -> Accepted | Rejected
    TimedOut -> OtpPending

A push that is still pending when the timeout runs out is not a failure: the
verifier falls back to asking for a one-time password. Time is read through
injected ``clock`` and ``sleep`` callables.
"""

import logging
import time
from enum import Enum

import structlog

from .errors import AuthError, MfaVerificationError, ProtocolError
from .identity import VerificationStatus
from .terminal import busy

logger = structlog.wrap_logger(logging.getLogger(__name__))

PUSH_TIMEOUT = 30  # seconds to wait for a push approval before asking for an OTP
PUSH_INTERVAL = 1  # seconds between push polls

TIMEOUT_MESSAGE = "MFA verification timed out - falling back to manual OTP input"
OTP_PROMPT = "Please enter the OTP from your MFA device: "


class MfaState(Enum):
    UNSTARTED = "unstarted"
    AWAITING_CHALLENGE = "awaiting-challenge"
    PUSH_PENDING = "push-pending"
    OTP_PENDING = "otp-pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    TIMED_OUT = "timed-out"


_TRANSITIONS = {
    MfaState.UNSTARTED: {MfaState.AWAITING_CHALLENGE},
    MfaState.AWAITING_CHALLENGE: {MfaState.PUSH_PENDING, MfaState.OTP_PENDING},
    MfaState.PUSH_PENDING: {MfaState.ACCEPTED, MfaState.REJECTED, MfaState.TIMED_OUT},
    MfaState.OTP_PENDING: {MfaState.ACCEPTED, MfaState.REJECTED},
    MfaState.TIMED_OUT: {MfaState.OTP_PENDING},
    MfaState.ACCEPTED: set(),
    MfaState.REJECTED: set(),
}


class MfaVerifier:
    """Drives one MFA challenge to completion.

    A verifier is single use: it belongs to one state token and one device.
    """

    def __init__(
        self,
        client,
        token,
        app_id,
        terminal,
        clock=time.monotonic,
        sleep=time.sleep,
        push_timeout=PUSH_TIMEOUT,
        push_interval=PUSH_INTERVAL,
    ):
        self.client = client
        self.token = token
        self.app_id = app_id
        self.terminal = terminal
        self.clock = clock
        self.sleep = sleep
        self.push_timeout = push_timeout
        self.push_interval = push_interval
        self.state = MfaState.UNSTARTED

    def _transition(self, new_state):
        if new_state not in _TRANSITIONS[self.state]:
            raise RuntimeError(f"invalid MFA transition {self.state.value} -> {new_state.value}")
        logger.debug("mfa state change", old=self.state.value, new=new_state.value)
        self.state = new_state

    def _verify(self, device, state_token, otp_token=None, do_not_notify=False):
        try:
            return self.client.verify_factor(
                self.token,
                self.app_id,
                device.device_id,
                state_token,
                otp_token=otp_token,
                do_not_notify=do_not_notify,
            )
        except (AuthError, ProtocolError) as exc:
            self._transition(MfaState.REJECTED)
            raise MfaVerificationError(f"verifying factor: {exc.message}") from exc

    def _reject(self, result):
        self._transition(MfaState.REJECTED)
        message = result.message or "verification rejected"
        raise MfaVerificationError(f"MFA verification failed: {message}")

    def verify(self, state_token, device):
        """Complete the MFA challenge and return the verified SAML assertion.

        Raises MfaVerificationError when the factor is rejected or a
        verify-factor call fails.
        """
        self._transition(MfaState.AWAITING_CHALLENGE)

        result = None
        if device.supports_push:
            result = self._push(state_token, device)

        if result is None:
            result = self._otp(state_token, device)

        self._transition(MfaState.ACCEPTED)
        logger.info("mfa verification accepted", device_type=device.device_type)
        return result.assertion

    def _push(self, state_token, device):
        """Trigger a push and poll for its result.

        Returns the accepted FactorResult, or None if the push timed out.
        """
        self._transition(MfaState.PUSH_PENDING)

        with busy(self.terminal, "Sending push notification..."):
            result = self._verify(device, state_token, do_not_notify=False)
        if result.message:
            self.terminal.echo(result.message)

        deadline = self.clock() + self.push_timeout
        with busy(self.terminal, "Waiting for push approval..."):
            while result.status is VerificationStatus.PENDING and self.clock() < deadline:
                self.sleep(self.push_interval)
                result = self._verify(device, state_token, do_not_notify=True)

        if result.status is VerificationStatus.ACCEPTED:
            return result

        if result.status is VerificationStatus.PENDING:
            self._transition(MfaState.TIMED_OUT)
            logger.info("push verification timed out", timeout=self.push_timeout)
            self.terminal.echo(TIMEOUT_MESSAGE)
            return None

        self._reject(result)

    def _otp(self, state_token, device):
        self._transition(MfaState.OTP_PENDING)

        otp = self.terminal.read_line(OTP_PROMPT)
        if not otp:
            # an empty otp_token would re-trigger a push instead of verifying a code
            self._transition(MfaState.REJECTED)
            raise MfaVerificationError("no OTP entered")

        with busy(self.terminal, "Verifying OTP..."):
            result = self._verify(device, state_token, otp_token=otp)

        if result.status is not VerificationStatus.ACCEPTED:
            self._reject(result)
        return result
