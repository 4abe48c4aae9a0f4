"""
Flask application factory for the diagnosis lead funnel
"""
import logging
import os

import click
from flask import Flask, jsonify
from flask_login import LoginManager
from werkzeug.middleware.proxy_fix import ProxyFix
from config import Config
from models import db
from models.user import User
from utils.errors import InfrastructureError
from utils.mail import mail
from utils.otp_service import init_otp_service, get_otp_service

# Initialize login manager (no DB access at import time)
login_manager = LoginManager()


@login_manager.user_loader
def load_user(user_id):
    """Load user for Flask-Login (runs in request context)."""
    return db.session.get(User, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({"success": False, "error": "Authentication required."}), 401


def create_app(config_class=Config):
    """Application factory pattern. DB init runs inside app_context; non-fatal on failure."""
    app = Flask(__name__)
    app.config.from_object(config_class)
    app.logger.setLevel(app.config.get("LOG_LEVEL", "INFO"))

    proxy_hops = app.config.get("PROXY_FIX_X_FOR", 0)
    if proxy_hops:
        app.wsgi_app = ProxyFix(app.wsgi_app, x_for=proxy_hops, x_proto=proxy_hops)

    db.init_app(app)
    login_manager.init_app(app)
    mail.init_app(app)
    init_otp_service(app)

    @app.errorhandler(InfrastructureError)
    def handle_infrastructure_error(e):
        app.logger.error("Infrastructure failure: %s", e, exc_info=True)
        return jsonify({"success": False, "error": "Internal server error. Please try again later."}), 500

    @app.errorhandler(500)
    def handle_500_error(e):
        return jsonify({"success": False, "error": "Internal server error. Please try again later."}), 500

    # Create tables and seed only inside app context; do not crash if DB temporarily unavailable
    with app.app_context():
        try:
            db.create_all()
            seed_admin()
        except Exception as e:
            logging.getLogger(__name__).warning("Database init/seed skipped (non-fatal): %s", e)

    # Register blueprints
    from routes import otp_bp, diagnosis_bp, downloads_bp, admin_auth_bp, admin_dashboard_bp

    app.register_blueprint(otp_bp)
    app.register_blueprint(diagnosis_bp)
    app.register_blueprint(downloads_bp)
    app.register_blueprint(admin_auth_bp)
    app.register_blueprint(admin_dashboard_bp)

    @app.cli.command('purge-otps')
    def purge_otps():
        """Delete expired, used or exhausted OTP records and old SMS send logs."""
        records, logs = get_otp_service().purge_expired()
        click.echo(f"Purged {records} OTP records and {logs} send log entries.")

    return app


def seed_admin():
    """Create or update the admin named by SEED_ADMIN_* environment variables. No-op without a password."""
    from models.admin import Admin

    seed_password = os.environ.get("SEED_ADMIN_PASSWORD")
    if not seed_password:
        return
    seed_email = os.environ.get("SEED_ADMIN_EMAIL", "admin@example.com").strip().lower()
    seed_username = (os.environ.get("SEED_ADMIN_USERNAME") or (seed_email.split("@")[0] if "@" in seed_email else "admin")).strip()

    admin = Admin.query.filter(Admin.email.ilike(seed_email)).first()
    if not admin:
        admin = Admin(
            username=seed_username,
            email=seed_email,
            role="superadmin",
            is_active=True,
        )
        db.session.add(admin)
    else:
        admin.username = seed_username
        admin.role = "superadmin"
        admin.is_active = True

    admin.set_password(seed_password)

    try:
        db.session.commit()
        logging.getLogger(__name__).info("Seed admin ready: %s", seed_email)
    except Exception as e:
        db.session.rollback()
        logging.getLogger(__name__).error("Error seeding admin: %s", e)
