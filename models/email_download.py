"""
Email-gated download model definition
"""
from models import db
from datetime import datetime


class EmailDownload(db.Model):
    """One-time download link for a diagnosis result, issued against an email address"""
    __tablename__ = 'email_downloads'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    phone_number = db.Column(db.String(20), nullable=False)
    email = db.Column(db.String(120), nullable=False)
    download_token = db.Column(db.String(64), unique=True, nullable=False)
    diagnosis_data = db.Column(db.JSON, nullable=True)
    expires_at = db.Column(db.DateTime, nullable=False)
    is_downloaded = db.Column(db.Boolean, default=False)
    downloaded_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)

    def is_expired(self):
        return datetime.utcnow() >= self.expires_at

    def __repr__(self):
        return f'<EmailDownload {self.id}>'
