import base64

from utils.auth_utils import create_signed_token, read_signed_token
from utils.verification_token import create_phone_verification_token, verify_phone_verification_token

PHONE = "+819012345678"


def test_token_round_trip(app):
    token = create_phone_verification_token(PHONE)
    assert verify_phone_verification_token(token) == PHONE


def test_expired_token_is_rejected(app):
    token = create_signed_token(["phone", PHONE], -1)
    assert verify_phone_verification_token(token) is None


def test_tampered_token_is_rejected(app):
    token = create_phone_verification_token("+819099999999")
    raw = base64.urlsafe_b64decode(token + "=" * (-len(token) % 4)).decode("utf-8")
    forged = raw.replace("+819099999999", PHONE)
    forged_token = base64.urlsafe_b64encode(forged.encode("utf-8")).decode("utf-8").rstrip("=")
    assert verify_phone_verification_token(forged_token) is None
    assert verify_phone_verification_token("not-a-token") is None
    assert verify_phone_verification_token("") is None
    assert verify_phone_verification_token(None) is None


def test_token_signed_with_other_key_is_rejected(app):
    token = create_phone_verification_token(PHONE)
    app.config['SECRET_KEY'] = "rotated"
    assert verify_phone_verification_token(token) is None


def test_field_count_must_match(app):
    token = create_signed_token(["phone", PHONE, "extra"], 60)
    assert read_signed_token(token, 2) is None
    assert read_signed_token(token, 3) == ["phone", PHONE, "extra"]


def test_token_with_non_ascii_signature_is_rejected(app):
    raw = f"phone|{PHONE}|9999999999|é"
    token = base64.urlsafe_b64encode(raw.encode("utf-8")).decode("utf-8").rstrip("=")
    assert verify_phone_verification_token(token) is None
