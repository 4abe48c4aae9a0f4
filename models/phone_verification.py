"""
Phone verification OTP and SMS send-log models (PostgreSQL-compatible).
Used by the database-backed OTP store and send rate limiting.
"""
from models import db
from datetime import datetime


class PhoneVerificationOTP(db.Model):
    """
    Stores hashed OTP for phone verification.
    One record per phone; replaced on new send.
    """
    __tablename__ = 'phone_verification_otp'

    phone_number = db.Column(db.String(20), primary_key=True)
    otp_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)
    attempts = db.Column(db.Integer, nullable=False, default=0)
    max_attempts = db.Column(db.Integer, nullable=False, default=5)
    consumed = db.Column(db.Boolean, nullable=False, default=False)
    consumed_at = db.Column(db.DateTime, nullable=True)

    def __repr__(self):
        return f'<PhoneVerificationOTP {self.phone_number[:5]}...>'


class SmsSendLog(db.Model):
    """Log of OTP SMS sends per phone and IP for rate limiting."""
    __tablename__ = 'sms_send_log'

    id = db.Column(db.Integer, primary_key=True)
    phone_number = db.Column(db.String(20), nullable=False, index=True)
    request_ip = db.Column(db.String(64), nullable=False, default='unknown', index=True)
    sent_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)
