"""
Error types shared by the OTP flow.
Verification outcomes are return values, not exceptions; only bad input and
infrastructure failures are raised.
"""


class InvalidPhoneFormat(ValueError):
    """Raised when a phone number cannot be normalized to the configured plan."""


class InfrastructureError(Exception):
    """Storage or SMS provider unavailable. Mapped to a generic 500 response."""


class SmsSendError(InfrastructureError):
    """The SMS provider rejected or failed to deliver a message."""
