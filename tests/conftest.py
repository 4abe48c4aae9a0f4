import pytest

from app import create_app
from config import Config
from models import db
from models.admin import Admin
from utils.errors import SmsSendError


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SMS_PROVIDER = "log"
    OTP_STORE_BACKEND = "database"
    MAIL_SERVER = None
    MAIL_USERNAME = None


class FakeGateway:
    """Records sent codes instead of calling an SMS provider."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def send(self, phone, code):
        if self.fail:
            raise SmsSendError("provider down")
        self.sent.append((phone, code))
        return f"fake-{len(self.sent)}"

    def last_code(self, phone):
        for sent_phone, code in reversed(self.sent):
            if sent_phone == phone:
                return code
        return None


@pytest.fixture
def app():
    app = create_app(TestingConfig)
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def gateway(app):
    fake = FakeGateway()
    app.extensions['otp'].gateway = fake
    return fake


@pytest.fixture
def admin(app):
    admin = Admin(username="ops", email="ops@example.com", role="superadmin", is_active=True)
    admin.set_password("correct-horse-battery")
    db.session.add(admin)
    db.session.commit()
    return admin


@pytest.fixture
def admin_client(client, admin):
    r = client.post("/admin/login", json={"email": "ops@example.com", "password": "correct-horse-battery"})
    assert r.status_code == 200
    return client
