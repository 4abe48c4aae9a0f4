"""
OTP verification state machine.

Per phone: NO_CHALLENGE -> ACTIVE -> VERIFIED | EXPIRED | ATTEMPTS_EXCEEDED.
The terminal states hold until a new code is issued for the phone. Every
branch is a reported outcome; only storage failures raise (InfrastructureError).
"""
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from utils.otp_helper import codes_match


class VerifyStatus(enum.Enum):
    VERIFIED = "verified"
    NO_CHALLENGE = "no_challenge"
    EXPIRED = "expired"
    CODE_MISMATCH = "code_mismatch"
    ATTEMPTS_EXCEEDED = "attempts_exceeded"


@dataclass(frozen=True)
class VerifyOutcome:
    status: VerifyStatus
    remaining_attempts: Optional[int] = None

    @property
    def verified(self):
        return self.status is VerifyStatus.VERIFIED


VERIFIED = VerifyOutcome(VerifyStatus.VERIFIED)
NO_CHALLENGE = VerifyOutcome(VerifyStatus.NO_CHALLENGE)
EXPIRED = VerifyOutcome(VerifyStatus.EXPIRED)
ATTEMPTS_EXCEEDED = VerifyOutcome(VerifyStatus.ATTEMPTS_EXCEEDED)


def code_mismatch(remaining_attempts):
    return VerifyOutcome(VerifyStatus.CODE_MISMATCH, remaining_attempts)


class OtpVerifier:
    """Reads and commands the store; never persists state itself."""

    def __init__(self, store, clock=datetime.utcnow):
        self.store = store
        self.clock = clock

    def verify(self, phone, submitted_code) -> VerifyOutcome:
        with self.store.locked(phone):
            record = self.store.get(phone)
            if record is None:
                return NO_CHALLENGE

            # Expired and exhausted records stay in place, unusable, until
            # evicted or replaced by a new send.
            if record.is_expired(self.clock()):
                return EXPIRED

            # Checked before comparing so a locked record leaks nothing
            if record.attempts_exceeded():
                return ATTEMPTS_EXCEEDED

            if not codes_match(submitted_code, record.code):
                attempts = self.store.increment_attempts(phone)
                if attempts >= record.max_attempts:
                    return ATTEMPTS_EXCEEDED
                return code_mismatch(record.max_attempts - attempts)

            self.store.mark_consumed(phone)
            return VERIFIED
