"""
User model definition
"""
from models import db
from datetime import datetime
from flask_login import UserMixin

class User(UserMixin, db.Model):
    """Funnel user, identified by a verified phone number"""
    __tablename__ = 'users'
    
    id = db.Column(db.Integer, primary_key=True)
    phone_number = db.Column(db.String(20), unique=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    last_verified_at = db.Column(db.DateTime, nullable=True)
    is_active = db.Column(db.Boolean, default=True)

    # Relationships
    diagnosis_sessions = db.relationship('DiagnosisSession', backref='user', lazy=True)
    email_downloads = db.relationship('EmailDownload', backref='user', lazy=True)
    
    def __repr__(self):
        return f'<User {self.id}>'
