"""
Authentication utility functions: signed, expiring tokens keyed by SECRET_KEY.
Token layout: base64url("<field>|<field>|...|<expiry>|<hmac-sha256>").
"""
import hmac
import base64
import time
from flask import current_app


def _sign(payload):
    key = current_app.config.get("SECRET_KEY", "").encode("utf-8")
    return hmac.new(key, payload.encode("utf-8"), "sha256").hexdigest()


def create_signed_token(fields, lifetime_seconds):
    """Sign fields together with an expiry timestamp."""
    expiry = int(time.time()) + lifetime_seconds
    payload = "|".join([*fields, str(expiry)])
    raw = f"{payload}|{_sign(payload)}"
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("utf-8").rstrip("=")


def read_signed_token(token, field_count):
    """
    Verify token signature and expiry.
    Returns the list of signed fields if valid, else None.
    """
    if not token or not isinstance(token, str):
        return None
    try:
        raw = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4)).decode("utf-8")
    except (ValueError, UnicodeDecodeError):
        return None

    parts = raw.rsplit("|", 1)
    if len(parts) != 2:
        return None
    payload, sig = parts
    if not hmac.compare_digest(sig.encode("utf-8"), _sign(payload).encode("utf-8")):
        return None

    values = payload.split("|")
    if len(values) != field_count + 1:
        return None
    *fields, expiry_str = values
    if not expiry_str.isdigit() or int(expiry_str) < int(time.time()):
        return None
    return fields
