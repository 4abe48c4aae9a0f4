"""
Email-gated download routes: register email for a result download, one-time download link
"""
import secrets
from datetime import datetime, timedelta

from flask import Blueprint, jsonify, current_app, request, url_for, make_response
from sqlalchemy.exc import SQLAlchemyError
from models import db
from models.email_download import EmailDownload
from models.user import User
from utils.diagnosis_report import render_result_html
from utils.errors import InfrastructureError, InvalidPhoneFormat
from utils.mail import mail_configured, send_download_link_email
from utils.otp_service import get_otp_service
from utils.validators import validate_email

downloads_bp = Blueprint('downloads', __name__, url_prefix='/downloads')


@downloads_bp.route('/email', methods=['POST'])
def save_email_download():
    """
    Store the lead's email and issue a one-time download link.
    Input (JSON): email, phoneNumber, diagnosisData (optional).
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return jsonify({"success": False, "error": "Request body must be a JSON object."}), 400
    email = data.get("email")
    email = email.strip().lower() if isinstance(email, str) else ""
    raw_phone = data.get("phoneNumber")
    if not email or not raw_phone:
        return jsonify({"success": False, "error": "Email address and phone number are required."}), 400
    if not validate_email(email):
        return jsonify({"success": False, "error": "Please enter a valid email address."}), 400

    try:
        phone = get_otp_service().normalize(raw_phone)
    except InvalidPhoneFormat:
        return jsonify({"success": False, "error": "Invalid phone number format."}), 400

    user = User.query.filter_by(phone_number=phone).first()
    if not user:
        return jsonify({"success": False, "error": "User not found."}), 404

    ttl = timedelta(days=current_app.config.get('DOWNLOAD_LINK_TTL_DAYS', 7))
    download = EmailDownload(
        user_id=user.id,
        phone_number=phone,
        email=email,
        download_token=secrets.token_urlsafe(32),
        diagnosis_data=data.get("diagnosisData"),
        expires_at=datetime.utcnow() + ttl,
    )
    db.session.add(download)
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise InfrastructureError("Download storage unavailable") from exc

    download_url = url_for('downloads.download_result', token=download.download_token, _external=True)

    email_sent = False
    if mail_configured():
        try:
            send_download_link_email(email, download_url, download.expires_at)
            email_sent = True
        except Exception as e:
            # The link is still returned to the client; mail is best effort
            current_app.logger.error(f"Error sending download link email: {str(e)}", exc_info=True)

    return jsonify({
        "success": True,
        "downloadUrl": download_url,
        "downloadToken": download.download_token,
        "expiresAt": download.expires_at.isoformat(),
        "emailSent": email_sent,
        "message": "Download link created.",
    })


@downloads_bp.route('/result', methods=['GET'])
def download_result():
    """One-time download of the diagnosis result as an HTML attachment"""
    token = request.args.get('token', '').strip()
    if not token:
        return jsonify({"success": False, "error": "Download token is required."}), 400

    download = EmailDownload.query.filter_by(download_token=token).with_for_update().first()
    if not download:
        return jsonify({"success": False, "error": "Invalid download link."}), 404
    if download.is_expired():
        return jsonify({"success": False, "error": "This download link has expired."}), 410
    if download.is_downloaded:
        return jsonify({"success": False, "error": "This download link has already been used."}), 410

    download.is_downloaded = True
    download.downloaded_at = datetime.utcnow()
    try:
        db.session.commit()
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise InfrastructureError("Download storage unavailable") from exc

    html = render_result_html(download.diagnosis_data)
    response = make_response(html)
    response.headers['Content-Type'] = 'text/html; charset=utf-8'
    filename = f"diagnosis-result-{download.downloaded_at.strftime('%Y%m%d%H%M%S')}.html"
    response.headers['Content-Disposition'] = f'attachment; filename="{filename}"'
    return response
