"""
Diagnosis routes: verified-user check, save diagnosis answers
"""
import secrets
from datetime import datetime, timedelta

from flask import Blueprint, jsonify, current_app, request
from flask_login import current_user
from sqlalchemy.exc import SQLAlchemyError
from models import db
from models.diagnosis import DiagnosisSession
from models.user import User
from utils.errors import InfrastructureError, InvalidPhoneFormat
from utils.otp_service import get_otp_service
from utils.phone import mask_phone
from utils.validators import get_json_payload
from utils.verification_token import verify_phone_verification_token

diagnosis_bp = Blueprint('diagnosis', __name__, url_prefix='/diagnosis')


def _phone_is_verified(phone, token):
    """Proof of phone ownership: a valid verification token for the phone, or the logged-in user's phone."""
    if token and verify_phone_verification_token(token) == phone:
        return True
    return current_user.is_authenticated and current_user.phone_number == phone


@diagnosis_bp.route('/check-verified-user', methods=['POST'])
def check_verified_user():
    """Tell the front end whether this phone already verified within the re-diagnosis interval"""
    data = get_json_payload(request)
    raw_phone = data.get("phoneNumber")
    if not raw_phone:
        return jsonify({"success": False, "error": "Phone number is required."}), 400
    try:
        phone = get_otp_service().normalize(raw_phone)
    except InvalidPhoneFormat:
        return jsonify({"success": False, "error": "Invalid phone number format."}), 400

    interval = timedelta(days=current_app.config.get('REDIAGNOSIS_INTERVAL_DAYS', 365))
    user = User.query.filter_by(phone_number=phone).first()
    if user and user.last_verified_at and user.last_verified_at > datetime.utcnow() - interval:
        next_available = user.last_verified_at + interval
        return jsonify({
            "isVerified": True,
            "userId": user.id,
            "message": f"This phone number has already been diagnosed. Next diagnosis is available from {next_available.date().isoformat()}.",
            "lastVerifiedAt": user.last_verified_at.isoformat(),
            "nextAvailableAt": next_available.isoformat(),
        })

    return jsonify({"isVerified": False, "message": "Verification required."})


@diagnosis_bp.route('/save', methods=['POST'])
def save_diagnosis():
    """
    Save diagnosis answers for a verified phone.
    Input (JSON): phoneNumber, diagnosisAnswers, verificationToken.
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "Request body must be a JSON object."}), 400
    raw_phone = data.get("phoneNumber")
    answers = data.get("diagnosisAnswers")
    if not raw_phone or not answers:
        return jsonify({"success": False, "error": "Phone number and diagnosis answers are required."}), 400
    if not isinstance(answers, (dict, list)):
        return jsonify({"success": False, "error": "Diagnosis answers must be an object or a list."}), 400

    try:
        phone = get_otp_service().normalize(raw_phone)
    except InvalidPhoneFormat:
        return jsonify({"success": False, "error": "Invalid phone number format."}), 400

    if not _phone_is_verified(phone, data.get("verificationToken")):
        current_app.logger.warning("Diagnosis save rejected: %s not verified", mask_phone(phone))
        return jsonify({"success": False, "error": "Phone number is not verified.", "code": "NOT_VERIFIED"}), 401

    user = User.query.filter_by(phone_number=phone).first()
    session_id = f"session_{secrets.token_urlsafe(12)}"
    diagnosis = DiagnosisSession(
        session_id=session_id,
        user_id=user.id if user else None,
        phone_number=phone,
        diagnosis_answers=answers,
        sms_verified=True,
        verification_status='verified',
    )
    db.session.add(diagnosis)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise InfrastructureError("Diagnosis storage unavailable") from exc

    return jsonify({
        "success": True,
        "sessionId": session_id,
        "message": "Diagnosis data saved successfully.",
        "data": {
            "id": diagnosis.id,
            "sessionId": session_id,
            "phoneNumber": phone,
            "savedAt": diagnosis.created_at.isoformat(),
        },
    })
