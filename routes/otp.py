"""
Phone verification routes: send SMS OTP, verify OTP
"""
from datetime import datetime

from flask import Blueprint, jsonify, current_app, request
from flask_login import login_user
from sqlalchemy.exc import SQLAlchemyError
from models import db
from models.user import User
from utils.audit import audit_otp_lockout
from utils.errors import InfrastructureError, InvalidPhoneFormat, SmsSendError
from utils.otp_service import get_otp_service
from utils.otp_verifier import VerifyStatus
from utils.phone import mask_phone
from utils.sms_rate_limit import SendLimits, check_send_allowed, record_send
from utils.validators import client_ip, get_json_payload
from utils.verification_token import create_phone_verification_token

otp_bp = Blueprint('otp', __name__, url_prefix='/otp')

PHONE_REQUIRED_MSG = "Phone number is required."
PHONE_INVALID_MSG = "Invalid phone number format."
OTP_SEND_FAIL_MSG = "Unable to send verification code. Please try again later."
OTP_FORMAT_MSG = "Invalid verification code format."
OTP_RESEND_COOLDOWN_MSG = "Please wait before requesting another code."
OTP_RATE_LIMIT_MSG = "Too many requests. Please try again in an hour."

# (status code, message, error code) per verification outcome
VERIFY_RESPONSES = {
    VerifyStatus.NO_CHALLENGE: (400, "Verification code not found or expired. Please request a new one.", "OTP_NOT_FOUND"),
    VerifyStatus.EXPIRED: (400, "Verification code has expired. Please request a new one.", "OTP_EXPIRED"),
    VerifyStatus.CODE_MISMATCH: (400, "Invalid verification code.", "INVALID_OTP"),
    VerifyStatus.ATTEMPTS_EXCEEDED: (429, "Too many attempts. Please request a new code.", "TOO_MANY_ATTEMPTS"),
}


@otp_bp.route('/send', methods=['POST'])
def send_otp():
    """
    Send a verification code by SMS.
    Input (JSON or form): phoneNumber.
    """
    service = get_otp_service()
    data = get_json_payload(request)
    raw_phone = data.get("phoneNumber")
    if not raw_phone:
        return jsonify({"success": False, "error": PHONE_REQUIRED_MSG}), 400

    try:
        phone = service.normalize(raw_phone)
    except InvalidPhoneFormat:
        return jsonify({"success": False, "error": PHONE_INVALID_MSG}), 400

    ip = client_ip(request)
    decision = check_send_allowed(phone, ip, SendLimits.from_config(current_app.config))
    if not decision.allowed:
        current_app.logger.warning("OTP send rate limited (%s) for %s", decision.reason, mask_phone(phone))
        if decision.reason == 'cooldown':
            return jsonify({
                "success": False,
                "error": OTP_RESEND_COOLDOWN_MSG,
                "retryAfterSeconds": decision.retry_after_seconds,
            }), 429
        return jsonify({"success": False, "error": OTP_RATE_LIMIT_MSG}), 429

    # Logged before sending so failed provider calls still count against the limits
    record_send(phone, ip)
    try:
        message_id = service.send_code(phone)
    except SmsSendError as e:
        current_app.logger.error(f"Failed to send OTP to {mask_phone(phone)}: {str(e)}", exc_info=True)
        return jsonify({"success": False, "error": OTP_SEND_FAIL_MSG}), 500

    current_app.logger.info("OTP sent to %s (message %s)", mask_phone(phone), message_id)
    return jsonify({"success": True})


@otp_bp.route('/verify', methods=['POST'])
def verify_otp():
    """
    Verify an SMS code. Input (JSON or form): phoneNumber, code.
    On success the phone's user is logged in and a short-lived verification token is returned.
    """
    service = get_otp_service()
    data = get_json_payload(request)
    raw_phone = data.get("phoneNumber")
    code = data.get("code") or data.get("otp")
    if not raw_phone:
        return jsonify({"success": False, "error": PHONE_REQUIRED_MSG}), 400

    try:
        phone = service.normalize(raw_phone)
    except InvalidPhoneFormat:
        return jsonify({"success": False, "error": PHONE_INVALID_MSG}), 400

    code = code.strip() if isinstance(code, str) else code
    if not service.is_well_formed(code):
        return jsonify({"success": False, "error": OTP_FORMAT_MSG, "code": "INVALID_OTP_FORMAT"}), 400

    outcome = service.verify(phone, code)

    if not outcome.verified:
        status, message, error_code = VERIFY_RESPONSES[outcome.status]
        body = {"success": False, "error": message, "code": error_code}
        if outcome.status is VerifyStatus.CODE_MISMATCH:
            body["remainingAttempts"] = outcome.remaining_attempts
        elif outcome.status is VerifyStatus.ATTEMPTS_EXCEEDED:
            audit_otp_lockout(phone)
        current_app.logger.info("OTP verification failed for %s: %s", mask_phone(phone), outcome.status.value)
        return jsonify(body), status

    user = User.query.filter_by(phone_number=phone).first()
    if not user:
        user = User(phone_number=phone)
        db.session.add(user)
    user.last_verified_at = datetime.utcnow()
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise InfrastructureError("User storage unavailable") from exc

    login_user(user)
    current_app.logger.info("OTP verification successful for %s", mask_phone(phone))
    return jsonify({
        "success": True,
        "message": "Phone number verified successfully.",
        "phoneNumber": phone,
        "verificationToken": create_phone_verification_token(phone),
    })
