"""
Admin model definition
"""
from models import db
from datetime import datetime, timedelta
from werkzeug.security import generate_password_hash, check_password_hash

class Admin(db.Model):
    """Admin model for back-office accounts"""
    __tablename__ = 'admins'
    
    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(80), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    role = db.Column(db.String(50), default='admin')  # superadmin, admin
    is_active = db.Column(db.Boolean, default=True)
    failed_login_count = db.Column(db.Integer, default=0)
    locked_until = db.Column(db.DateTime, nullable=True)
    last_login_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    
    def set_password(self, password):
        """Set password hash"""
        self.password_hash = generate_password_hash(password)
    
    def check_password(self, password):
        """Check if password matches"""
        return check_password_hash(self.password_hash, password)

    def is_locked(self, now=None):
        now = now or datetime.utcnow()
        return self.locked_until is not None and self.locked_until > now

    def register_failed_login(self, max_failures, lockout_minutes):
        """Count a failed login; lock the account once max_failures is reached. Returns True if locked."""
        self.failed_login_count = (self.failed_login_count or 0) + 1
        if self.failed_login_count >= max_failures:
            self.locked_until = datetime.utcnow() + timedelta(minutes=lockout_minutes)
            self.failed_login_count = 0
            return True
        return False

    def register_successful_login(self):
        self.failed_login_count = 0
        self.locked_until = None
        self.last_login_at = datetime.utcnow()

    def to_dict(self):
        return {
            'id': self.id,
            'username': self.username,
            'email': self.email,
            'role': self.role,
            'last_login_at': self.last_login_at.isoformat() if self.last_login_at else None,
        }
    
    def __repr__(self):
        return f'<Admin {self.username}>'
