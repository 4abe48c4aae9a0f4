"""
Input validation helpers
"""
import re

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


def validate_email(email):
    """Check basic email shape (local@domain.tld)"""
    if not email or not isinstance(email, str) or len(email) > 120:
        return False
    return bool(EMAIL_PATTERN.match(email.strip()))


def get_json_payload(request):
    """Request body as a dict: JSON first, form data as fallback"""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form


def client_ip(request):
    """Client IP. Forwarded headers are resolved by ProxyFix for the configured number of trusted proxies."""
    return (request.remote_addr or 'unknown')[:64]
