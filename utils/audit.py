"""
Audit log utility functions
"""
from models import db
from models.audit_log import AuditLog
from flask import current_app, request, has_request_context
from utils.phone import mask_phone
from utils.validators import client_ip

def record_audit_event(event_type, description, username=None, severity='info'):
    """
    Store an audit event
    
    Args:
        event_type: 'admin_login_success', 'admin_login_failure', 'admin_locked' or 'otp_lockout'
        description: Human-readable description (no secrets, phones masked)
        username: Optional admin username or masked phone
        severity: 'info', 'warning' or 'critical'
    
    Returns:
        AuditLog object or None if creation failed
    """
    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = client_ip(request)
        user_agent = (request.headers.get('User-Agent') or '')[:255] or None
    try:
        event = AuditLog(
            event_type=event_type,
            username=username,
            description=description,
            ip_address=ip_address,
            user_agent=user_agent,
            severity=severity,
        )
        db.session.add(event)
        db.session.commit()
        return event
    except Exception as e:
        db.session.rollback()
        current_app.logger.error(f"Failed to record audit event {event_type}: {str(e)}", exc_info=True)
        return None

def audit_admin_login_success(admin):
    return record_audit_event('admin_login_success', 'Admin login successful', username=admin.username)

def audit_admin_login_failure(login_id, reason):
    return record_audit_event('admin_login_failure', f"Admin login failed: {reason}", username=login_id[:120], severity='warning')

def audit_admin_locked(admin):
    return record_audit_event(
        'admin_locked',
        f"Admin account locked until {admin.locked_until.isoformat()} after repeated failures",
        username=admin.username,
        severity='critical',
    )

def audit_otp_lockout(phone):
    return record_audit_event(
        'otp_lockout',
        f"OTP attempts exhausted for {mask_phone(phone)}",
        username=mask_phone(phone),
        severity='warning',
    )
