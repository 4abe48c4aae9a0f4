"""
Configuration for the diagnosis lead funnel Flask app.
Production (Railway/Render): uses DATABASE_URL only; fails if missing.
Local: DATABASE_URL or DB_* fallback.
"""
import os
from datetime import timedelta
from urllib.parse import quote_plus


def _is_production():
    """True when running on Railway, Render, or explicit production."""
    return (
        os.environ.get("RENDER") == "true"
        or os.environ.get("RAILWAY_ENVIRONMENT") is not None
        or os.environ.get("FLASK_ENV") == "production"
    )


def _normalize_database_url(url):
    """Convert postgres:// to postgresql+psycopg2:// for SQLAlchemy/psycopg2."""
    if not url:
        return url
    url = url.strip()
    if url.startswith("postgres://"):
        return "postgresql+psycopg2://" + url[11:]
    if url.startswith("postgresql://") and "psycopg2" not in url:
        return "postgresql+psycopg2://" + url[13:]
    return url


def _get_database_uri():
    """Database URI: production = DATABASE_URL only; local = DATABASE_URL or DB_*."""
    if _is_production():
        url = os.environ.get("DATABASE_URL")
        if not url or not url.strip():
            raise RuntimeError(
                "DATABASE_URL is required in production (Railway/Render). "
                "Set it in your service environment variables."
            )
        return _normalize_database_url(url.strip())

    url = os.environ.get("DATABASE_URL")
    if url and url.strip():
        return _normalize_database_url(url.strip())

    host = os.environ.get("DB_HOST", "localhost")
    port = os.environ.get("DB_PORT", "5432")
    name = os.environ.get("DB_NAME", "diagnosis")
    user = os.environ.get("DB_USER", "diagnosis")
    password = os.environ.get("DB_PASSWORD", "")
    if password:
        password = quote_plus(password)
    return f"postgresql+psycopg2://{user}:{password}@{host}:{port}/{name}"


def _env_int(name, default):
    value = os.environ.get(name)
    return int(value) if value and value.strip() else default


class Config:
    """Base configuration."""
    SECRET_KEY = os.environ.get("SECRET_KEY") or "dev-secret-key-change-in-production"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    PERMANENT_SESSION_LIFETIME = timedelta(hours=8)
    SESSION_COOKIE_SECURE = os.environ.get("SESSION_COOKIE_SECURE", "false").lower() in ("true", "on", "1")
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"

    SQLALCHEMY_DATABASE_URI = _get_database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    MAIL_SERVER = os.environ.get("MAIL_SERVER")
    MAIL_PORT = int(os.environ.get("MAIL_PORT") or 587)
    MAIL_USE_TLS = os.environ.get("MAIL_USE_TLS", "true").lower() in ("true", "on", "1")
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER") or os.environ.get("MAIL_USERNAME") or "noreply@example.com"

    # SMS provider: 'twilio' or 'log' (logs the masked phone only, no SMS is sent; development only)
    SMS_PROVIDER = os.environ.get("SMS_PROVIDER", "twilio").lower()
    SMS_MESSAGE_TEMPLATE = os.environ.get("SMS_MESSAGE_TEMPLATE")
    TWILIO_ACCOUNT_SID = os.environ.get("TWILIO_ACCOUNT_SID")
    TWILIO_AUTH_TOKEN = os.environ.get("TWILIO_AUTH_TOKEN")
    TWILIO_PHONE_NUMBER = os.environ.get("TWILIO_PHONE_NUMBER")
    TWILIO_MESSAGING_SERVICE_SID = os.environ.get("TWILIO_MESSAGING_SERVICE_SID")

    # Phone numbers: national numbers with a leading 0 get this country code
    PHONE_COUNTRY_CODE = os.environ.get("PHONE_COUNTRY_CODE", "81")
    PHONE_VALIDATION_PATTERN = os.environ.get("PHONE_VALIDATION_PATTERN")

    # OTP policy
    OTP_STORE_BACKEND = os.environ.get("OTP_STORE_BACKEND", "database").lower()
    OTP_LENGTH = _env_int("OTP_LENGTH", 6)
    OTP_EXPIRY_MINUTES = _env_int("OTP_EXPIRY_MINUTES", 5)
    OTP_MAX_ATTEMPTS = _env_int("OTP_MAX_ATTEMPTS", 5)
    VERIFICATION_TOKEN_LIFETIME_SECONDS = _env_int("VERIFICATION_TOKEN_LIFETIME_SECONDS", 900)

    # SMS send limits
    OTP_RESEND_COOLDOWN_SECONDS = _env_int("OTP_RESEND_COOLDOWN_SECONDS", 30)
    SMS_MAX_SENDS_PER_PHONE_PER_HOUR = _env_int("SMS_MAX_SENDS_PER_PHONE_PER_HOUR", 3)
    SMS_MAX_SENDS_PER_IP_PER_HOUR = _env_int("SMS_MAX_SENDS_PER_IP_PER_HOUR", 10)
    SMS_MAX_SENDS_GLOBAL_PER_HOUR = _env_int("SMS_MAX_SENDS_GLOBAL_PER_HOUR", 100)
    SMS_MAX_PHONES_PER_IP_WINDOW = _env_int("SMS_MAX_PHONES_PER_IP_WINDOW", 5)
    SMS_PHONES_PER_IP_WINDOW_MINUTES = _env_int("SMS_PHONES_PER_IP_WINDOW_MINUTES", 10)

    # Funnel
    REDIAGNOSIS_INTERVAL_DAYS = _env_int("REDIAGNOSIS_INTERVAL_DAYS", 365)
    DOWNLOAD_LINK_TTL_DAYS = _env_int("DOWNLOAD_LINK_TTL_DAYS", 7)

    # Admin login lockout
    ADMIN_MAX_FAILED_LOGINS = _env_int("ADMIN_MAX_FAILED_LOGINS", 5)
    ADMIN_LOCKOUT_MINUTES = _env_int("ADMIN_LOCKOUT_MINUTES", 15)

    # Reverse proxies in front of the app (Railway/Render: 1). X-Forwarded-For is trusted for this many hops only.
    PROXY_FIX_X_FOR = _env_int("PROXY_FIX_X_FOR", 1)
