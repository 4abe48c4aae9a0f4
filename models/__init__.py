"""
Models package for the verification funnel
"""
from flask_sqlalchemy import SQLAlchemy

db = SQLAlchemy()

# Import all models here to ensure they're registered
from models.user import User
from models.admin import Admin
from models.audit_log import AuditLog
from models.diagnosis import DiagnosisSession
from models.email_download import EmailDownload
from models.phone_verification import PhoneVerificationOTP, SmsSendLog

__all__ = [
    'db',
    'User',
    'Admin',
    'AuditLog',
    'DiagnosisSession',
    'EmailDownload',
    'PhoneVerificationOTP',
    'SmsSendLog',
]
