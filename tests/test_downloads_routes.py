from datetime import datetime, timedelta

import pytest

from models import db
from models.email_download import EmailDownload
from models.user import User
from utils.diagnosis_report import get_recommendations, parse_score

PHONE = "+819012345678"
DIAGNOSIS = {"score": 85, "answers": {"goal": "<b>retire early</b>"}}


@pytest.fixture
def user(app):
    user = User(phone_number=PHONE, last_verified_at=datetime.utcnow())
    db.session.add(user)
    db.session.commit()
    return user


def request_link(client, email="lead@example.com"):
    return client.post("/downloads/email", json={
        "email": email,
        "phoneNumber": "090-1234-5678",
        "diagnosisData": DIAGNOSIS,
    })


def test_email_registration_issues_link(client, user):
    r = request_link(client, email="Lead@Example.com")
    assert r.status_code == 200
    body = r.get_json()
    assert body["success"] is True
    assert body["emailSent"] is False
    assert body["downloadToken"] in body["downloadUrl"]

    download = EmailDownload.query.filter_by(download_token=body["downloadToken"]).one()
    assert download.email == "lead@example.com"
    assert download.user_id == user.id
    assert download.expires_at > datetime.utcnow() + timedelta(days=6)


def test_email_registration_validation(client, user):
    assert request_link(client, email="not-an-email").status_code == 400
    r = client.post("/downloads/email", json={"email": "lead@example.com"})
    assert r.status_code == 400


def test_email_registration_requires_known_user(client):
    assert request_link(client).status_code == 404


def test_download_is_one_time(client, user):
    token = request_link(client).get_json()["downloadToken"]

    r = client.get(f"/downloads/result?token={token}")
    assert r.status_code == 200
    assert "attachment" in r.headers["Content-Disposition"]
    html = r.get_data(as_text=True)
    assert "85" in html
    assert "&lt;b&gt;retire early&lt;/b&gt;" in html
    assert "<b>retire early</b>" not in html

    r = client.get(f"/downloads/result?token={token}")
    assert r.status_code == 410


def test_expired_link(client, user):
    token = request_link(client).get_json()["downloadToken"]
    download = EmailDownload.query.filter_by(download_token=token).one()
    download.expires_at = datetime.utcnow() - timedelta(minutes=1)
    db.session.commit()
    assert client.get(f"/downloads/result?token={token}").status_code == 410


def test_unknown_or_missing_token(client):
    assert client.get("/downloads/result?token=nope").status_code == 404
    assert client.get("/downloads/result").status_code == 400


def test_recommendation_bands():
    assert get_recommendations(80) != get_recommendations(79)
    assert get_recommendations(0) == get_recommendations(-5)
    assert parse_score("72.9") == 72
    assert parse_score(None) == 0


def test_link_is_emailed_when_mail_is_configured(app, client, user):
    from utils.mail import mail

    app.config['MAIL_SERVER'] = "smtp.example.com"
    app.config['MAIL_USERNAME'] = "mailer"
    with mail.record_messages() as outbox:
        body = request_link(client).get_json()

    assert body["emailSent"] is True
    assert len(outbox) == 1
    assert outbox[0].recipients == ["lead@example.com"]
    assert body["downloadUrl"] in outbox[0].body


def test_email_registration_rejects_malformed_body(client, user):
    assert client.post("/downloads/email", json=["lead@example.com"]).status_code == 400
    r = client.post("/downloads/email", json={"email": ["lead@example.com"], "phoneNumber": PHONE})
    assert r.status_code == 400
