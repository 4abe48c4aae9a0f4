"""
Script to create an admin user or reset an existing admin's password

    python create_admin.py --email admin@example.com --username admin [--role superadmin]
"""
import argparse
import getpass

from app import create_app
from models import db
from models.admin import Admin


def create_admin(email, username, password, role='admin'):
    """Create or reset admin user. Returns True when a new account was created."""
    admin = Admin.query.filter(Admin.email.ilike(email)).first()
    created = admin is None
    if created:
        admin = Admin(username=username, email=email.lower(), role=role, is_active=True)
        db.session.add(admin)
    else:
        admin.role = role
        admin.is_active = True
        admin.failed_login_count = 0
        admin.locked_until = None
    admin.set_password(password)
    db.session.commit()
    return created


def main():
    parser = argparse.ArgumentParser(description="Create or reset an admin account")
    parser.add_argument('--email', required=True)
    parser.add_argument('--username', required=True)
    parser.add_argument('--role', default='admin', choices=['admin', 'superadmin'])
    args = parser.parse_args()

    password = getpass.getpass("Password: ")
    if len(password) < 8:
        parser.error("password must be at least 8 characters")
    if password != getpass.getpass("Confirm password: "):
        parser.error("passwords do not match")

    app = create_app()
    with app.app_context():
        if create_admin(args.email, args.username, password, args.role):
            print("[SUCCESS] Admin user created successfully!")
        else:
            print("[SUCCESS] Admin user password reset successfully!")
        print("Login: POST /admin/login with email", args.email)


if __name__ == '__main__':
    main()
