"""
Short-lived token proving a phone number was just verified by OTP.
Token is issued after successful OTP verify and accepted by the diagnosis endpoints.
"""
from flask import current_app

from utils.auth_utils import create_signed_token, read_signed_token

PHONE_TOKEN_LIFETIME_SECONDS = 15 * 60  # 15 minutes


def create_phone_verification_token(phone):
    """Create a signed token for a verified (normalized) phone number."""
    lifetime = current_app.config.get("VERIFICATION_TOKEN_LIFETIME_SECONDS", PHONE_TOKEN_LIFETIME_SECONDS)
    return create_signed_token(["phone", phone], lifetime)


def verify_phone_verification_token(token):
    """
    Verify token and return the phone number if valid, else None.
    Checks signature and expiry.
    """
    fields = read_signed_token(token, 2)
    if not fields or fields[0] != "phone":
        return None
    return fields[1]
