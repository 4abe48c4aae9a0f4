"""
Routes package for the diagnosis lead funnel
"""
# Export blueprints for registration in app.py
from routes.otp import otp_bp
from routes.diagnosis import diagnosis_bp
from routes.downloads import downloads_bp
from routes.admin.auth import admin_auth_bp
from routes.admin.dashboard import admin_dashboard_bp

__all__ = [
    'otp_bp',
    'diagnosis_bp',
    'downloads_bp',
    'admin_auth_bp',
    'admin_dashboard_bp',
]
