"""
Admin authentication routes (JSON)
"""
from functools import wraps

from flask import request, Blueprint, session, jsonify, current_app
from models import db
from models.admin import Admin
from utils.audit import audit_admin_login_failure, audit_admin_login_success, audit_admin_locked
from utils.validators import validate_email, get_json_payload
from sqlalchemy import func

admin_auth_bp = Blueprint('admin_auth', __name__, url_prefix='/admin')

INVALID_CREDENTIALS_MSG = "Invalid credentials."
LOCKED_MSG = "Too many failed attempts. Please try again later."

def admin_required(f):
    """Decorator to require admin login and validate admin exists"""
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'admin_id' not in session:
            return jsonify({"success": False, "error": "Authentication required."}), 401

        # Validate admin still exists and is active
        admin = get_current_admin()

        if not admin or not admin.is_active:
            session.clear()
            return jsonify({"success": False, "error": "Admin account not found or inactive."}), 401

        return f(*args, **kwargs)
    return decorated_function

def get_current_admin():
    """Helper function to get current admin from session"""
    admin_id = session.get('admin_id')
    if admin_id is None:
        return None
    return Admin.query.filter_by(id=admin_id).first()

@admin_auth_bp.route('/login', methods=['POST'])
def login():
    """Admin login. Input (JSON or form): username or email, password."""
    data = get_json_payload(request)
    login_id = data.get('username') or data.get('email') or ''
    password = data.get('password') or ''
    if not isinstance(login_id, str) or not isinstance(password, str):
        return jsonify({"success": False, "error": "Username/email and password must be strings."}), 400
    login_id = login_id.strip()

    if not login_id or not password:
        return jsonify({"success": False, "error": "Username/email and password are required."}), 400

    # If input looks like email, validate format
    if '@' in login_id and not validate_email(login_id):
        return jsonify({"success": False, "error": "Invalid email format."}), 400

    # Find admin: try email first (case-insensitive), then username (case-insensitive)
    admin = None
    if '@' in login_id:
        admin = Admin.query.filter(func.lower(Admin.email) == login_id.lower()).first()
    if not admin:
        admin = Admin.query.filter(func.lower(Admin.username) == login_id.lower()).first()

    if admin and admin.is_locked():
        audit_admin_login_failure(login_id, 'account locked')
        return jsonify({"success": False, "error": LOCKED_MSG}), 429

    if not admin or not admin.check_password(password):
        if admin:
            locked = admin.register_failed_login(
                current_app.config.get('ADMIN_MAX_FAILED_LOGINS', 5),
                current_app.config.get('ADMIN_LOCKOUT_MINUTES', 15),
            )
            db.session.commit()
            if locked:
                audit_admin_locked(admin)
        audit_admin_login_failure(login_id, 'invalid credentials')
        current_app.logger.warning("Admin login failed for %s***", login_id[:3])
        return jsonify({"success": False, "error": INVALID_CREDENTIALS_MSG}), 401

    if not admin.is_active:
        audit_admin_login_failure(login_id, 'account disabled')
        return jsonify({"success": False, "error": "Account is disabled."}), 401

    admin.register_successful_login()
    db.session.commit()

    # Create admin session with timeout
    session.clear()
    session['admin_id'] = admin.id
    session['admin_username'] = admin.username
    session['admin_role'] = admin.role
    session.permanent = True  # Enable session timeout

    audit_admin_login_success(admin)
    return jsonify({"success": True, "admin": admin.to_dict()})

@admin_auth_bp.route('/logout', methods=['POST'])
def logout():
    """Admin logout"""
    session.clear()
    return jsonify({"success": True})

@admin_auth_bp.route('/me', methods=['GET'])
@admin_required
def me():
    """Currently logged-in admin"""
    return jsonify({"success": True, "admin": get_current_admin().to_dict()})
