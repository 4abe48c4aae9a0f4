"""
OTP generation, hashing and comparison for phone verification.
OTPs are hashed before storage; never store plain OTP in DB.
"""
import hashlib
import hmac
import secrets

# OTP length, expiry and attempt policy defaults (overridable in Config)
OTP_LENGTH = 6
OTP_EXPIRY_MINUTES = 5
MAX_OTP_ATTEMPTS = 5

# Single cryptographically secure source for every generated code
secure_random = secrets.SystemRandom()


def generate_otp(length=OTP_LENGTH, rng=None) -> str:
    """Generate a numeric OTP uniformly distributed over the fixed-width range."""
    if length < 1:
        raise ValueError("OTP length must be positive")
    rng = rng or secure_random
    low = 10 ** (length - 1)
    high = 10 ** length - 1
    return str(rng.randint(low, high))


def hash_otp(otp: str) -> str:
    """Hash OTP for storage."""
    return hashlib.sha256(otp.encode('utf-8')).hexdigest()


def codes_match(plain_otp: str, otp_hash: str) -> bool:
    """Constant-time comparison of a submitted OTP against the stored hash."""
    return hmac.compare_digest(hash_otp(plain_otp), otp_hash)


def is_well_formed(otp, length=OTP_LENGTH) -> bool:
    return isinstance(otp, str) and len(otp) == length and otp.isascii() and otp.isdigit()
