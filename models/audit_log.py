"""
Audit log model definition
"""
from models import db
from datetime import datetime

class AuditLog(db.Model):
    """Security-relevant events shown in the admin back office"""
    __tablename__ = 'audit_logs'
    
    id = db.Column(db.Integer, primary_key=True)
    event_type = db.Column(db.String(50), nullable=False, index=True)  # admin_login_success, admin_login_failure, admin_locked, otp_lockout
    username = db.Column(db.String(120), nullable=True)
    description = db.Column(db.Text, nullable=False)
    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)
    severity = db.Column(db.String(20), default='info')  # info, warning, critical
    created_at = db.Column(db.DateTime, default=datetime.utcnow)
    
    def __repr__(self):
        return f'<AuditLog {self.id}: {self.event_type}>'
    
    def to_dict(self):
        """Convert audit event to dictionary for JSON responses"""
        return {
            'id': self.id,
            'event_type': self.event_type,
            'username': self.username,
            'description': self.description,
            'ip_address': self.ip_address,
            'user_agent': self.user_agent,
            'severity': self.severity,
            'created_at': self.created_at.isoformat() if self.created_at else None
        }
