"""
Diagnosis session model definition
"""
from models import db
from datetime import datetime


class DiagnosisSession(db.Model):
    """Answers submitted through the diagnosis flow by a verified phone"""
    __tablename__ = 'diagnosis_sessions'

    id = db.Column(db.Integer, primary_key=True)
    session_id = db.Column(db.String(64), unique=True, nullable=False)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=True)
    phone_number = db.Column(db.String(20), nullable=False, index=True)
    diagnosis_answers = db.Column(db.JSON, nullable=False)
    sms_verified = db.Column(db.Boolean, default=True)
    verification_status = db.Column(db.String(20), default='verified')
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    def __repr__(self):
        return f'<DiagnosisSession {self.session_id}>'
