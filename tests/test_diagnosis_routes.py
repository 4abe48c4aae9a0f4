from datetime import datetime, timedelta

from models import db
from models.diagnosis import DiagnosisSession
from models.user import User
from utils.verification_token import create_phone_verification_token

PHONE = "+819012345678"
ANSWERS = {"q1": "a", "q2": "c", "score": 72}


def verified_client(client, gateway):
    client.post("/otp/send", json={"phoneNumber": PHONE})
    r = client.post("/otp/verify", json={"phoneNumber": PHONE, "code": gateway.last_code(PHONE)})
    return r.get_json()["verificationToken"]


def test_check_unknown_phone_is_not_verified(client):
    r = client.post("/diagnosis/check-verified-user", json={"phoneNumber": "090-1234-5678"})
    assert r.status_code == 200
    assert r.get_json()["isVerified"] is False


def test_check_recently_verified_phone(client):
    db.session.add(User(phone_number=PHONE, last_verified_at=datetime.utcnow() - timedelta(days=3)))
    db.session.commit()
    body = client.post("/diagnosis/check-verified-user", json={"phoneNumber": "090-1234-5678"}).get_json()
    assert body["isVerified"] is True
    assert body["nextAvailableAt"]


def test_check_verification_older_than_interval(client):
    db.session.add(User(phone_number=PHONE, last_verified_at=datetime.utcnow() - timedelta(days=400)))
    db.session.commit()
    body = client.post("/diagnosis/check-verified-user", json={"phoneNumber": PHONE}).get_json()
    assert body["isVerified"] is False


def test_check_invalid_phone(client):
    assert client.post("/diagnosis/check-verified-user", json={"phoneNumber": "x"}).status_code == 400
    assert client.post("/diagnosis/check-verified-user", json={}).status_code == 400


def test_save_with_verification_token(client, gateway):
    token = verified_client(client, gateway)
    r = client.post("/diagnosis/save", json={
        "phoneNumber": "090-1234-5678",
        "diagnosisAnswers": ANSWERS,
        "verificationToken": token,
    })
    assert r.status_code == 200
    body = r.get_json()
    assert body["sessionId"].startswith("session_")
    assert body["data"]["phoneNumber"] == PHONE

    saved = DiagnosisSession.query.filter_by(session_id=body["sessionId"]).one()
    assert saved.diagnosis_answers == ANSWERS
    assert saved.user_id == User.query.filter_by(phone_number=PHONE).one().id


def test_save_with_logged_in_session_only(client, gateway):
    verified_client(client, gateway)
    r = client.post("/diagnosis/save", json={"phoneNumber": PHONE, "diagnosisAnswers": ANSWERS})
    assert r.status_code == 200


def test_save_rejects_unverified_phone(client):
    r = client.post("/diagnosis/save", json={"phoneNumber": PHONE, "diagnosisAnswers": ANSWERS})
    assert r.status_code == 401
    assert r.get_json()["code"] == "NOT_VERIFIED"
    assert DiagnosisSession.query.count() == 0


def test_save_rejects_token_for_other_phone(app, client):
    token = create_phone_verification_token("+819099999999")
    r = client.post("/diagnosis/save", json={
        "phoneNumber": PHONE,
        "diagnosisAnswers": ANSWERS,
        "verificationToken": token,
    })
    assert r.status_code == 401


def test_save_requires_answers(client):
    r = client.post("/diagnosis/save", json={"phoneNumber": PHONE})
    assert r.status_code == 400
    r = client.post("/diagnosis/save", json={"phoneNumber": PHONE, "diagnosisAnswers": "yes"})
    assert r.status_code == 400


def test_save_rejects_non_object_body(client):
    r = client.post("/diagnosis/save", json=[1, 2])
    assert r.status_code == 400


def test_save_with_non_ascii_token_is_unauthorized(client):
    import base64

    raw = f"phone|{PHONE}|9999999999|é"
    token = base64.urlsafe_b64encode(raw.encode("utf-8")).decode("utf-8").rstrip("=")
    r = client.post("/diagnosis/save", json={
        "phoneNumber": PHONE,
        "diagnosisAnswers": ANSWERS,
        "verificationToken": token,
    })
    assert r.status_code == 401
