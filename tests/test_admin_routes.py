from datetime import datetime, timedelta

from models import db
from models.admin import Admin
from models.audit_log import AuditLog
from models.diagnosis import DiagnosisSession
from models.email_download import EmailDownload
from models.user import User
from routes.admin.dashboard import mask_email, mask_token


def login(client, password, login_id="ops@example.com"):
    return client.post("/admin/login", json={"email": login_id, "password": password})


def test_login_by_email_and_username(client, admin):
    r = login(client, "correct-horse-battery")
    assert r.status_code == 200
    assert r.get_json()["admin"]["username"] == "ops"

    client.post("/admin/logout")
    r = client.post("/admin/login", json={"username": "OPS", "password": "correct-horse-battery"})
    assert r.status_code == 200
    assert AuditLog.query.filter_by(event_type='admin_login_success').count() == 2


def test_login_rejects_wrong_password(client, admin):
    r = login(client, "wrong")
    assert r.status_code == 401
    assert r.get_json()["error"] == "Invalid credentials."
    assert db.session.get(Admin, admin.id).failed_login_count == 1


def test_login_requires_both_fields(client):
    assert client.post("/admin/login", json={"email": "ops@example.com"}).status_code == 400


def test_repeated_failures_lock_account(app, client, admin):
    for _ in range(app.config['ADMIN_MAX_FAILED_LOGINS']):
        login(client, "wrong")

    r = login(client, "correct-horse-battery")
    assert r.status_code == 429
    assert AuditLog.query.filter_by(event_type='admin_locked').count() == 1

    locked = db.session.get(Admin, admin.id)
    locked.locked_until = datetime.utcnow() - timedelta(seconds=1)
    db.session.commit()
    assert login(client, "correct-horse-battery").status_code == 200


def test_inactive_admin_cannot_login(client, admin):
    admin.is_active = False
    db.session.commit()
    assert login(client, "correct-horse-battery").status_code == 401


def test_admin_endpoints_require_login(client):
    for path in ("/admin/me", "/admin/statistics", "/admin/downloads", "/admin/duplicate-phones", "/admin/audit-logs"):
        assert client.get(path).status_code == 401


def test_me_and_logout(admin_client):
    assert admin_client.get("/admin/me").get_json()["admin"]["email"] == "ops@example.com"
    admin_client.post("/admin/logout")
    assert admin_client.get("/admin/me").status_code == 401


def _seed_funnel():
    user = User(phone_number="+819012345678", last_verified_at=datetime.utcnow())
    db.session.add(user)
    db.session.flush()
    for i in range(2):
        db.session.add(DiagnosisSession(
            session_id=f"session_{i}",
            user_id=user.id,
            phone_number=user.phone_number,
            diagnosis_answers={"q": i},
        ))
    db.session.add(EmailDownload(
        user_id=user.id,
        phone_number=user.phone_number,
        email="lead@example.com",
        download_token="tok_abcdefghijklmnop",
        expires_at=datetime.utcnow() + timedelta(days=7),
        is_downloaded=True,
        downloaded_at=datetime.utcnow(),
    ))
    db.session.add(EmailDownload(
        user_id=user.id,
        phone_number=user.phone_number,
        email="other@example.com",
        download_token="tok_qrstuvwxyz012345",
        expires_at=datetime.utcnow() + timedelta(days=7),
    ))
    db.session.commit()


def test_statistics(admin_client):
    _seed_funnel()
    data = admin_client.get("/admin/statistics").get_json()["data"]
    assert data["totals"] == {"users": 1, "diagnoses": 2, "downloads": 2, "completedDownloads": 1}
    assert data["today"]["users"] == 1
    assert len(data["dailyUsers"]) == 7
    assert data["dailyUsers"][-1]["count"] == 1
    assert data["recentUsers"][0]["phoneNumber"] == "*********678"


def test_downloads_listing_masks_and_filters(admin_client):
    _seed_funnel()
    body = admin_client.get("/admin/downloads").get_json()
    assert body["pagination"]["total"] == 2
    assert body["stats"]["downloadRate"] == 50.0
    row = body["data"][0]
    assert "@example.com" in row["email"]
    assert "lead@" not in row["email"] and "other@" not in row["email"]
    assert row["phoneNumber"].endswith("678")

    body = admin_client.get("/admin/downloads?downloaded=true").get_json()
    assert body["pagination"]["total"] == 1
    body = admin_client.get("/admin/downloads?email=other").get_json()
    assert body["pagination"]["total"] == 1
    body = admin_client.get("/admin/downloads?page=2&limit=1").get_json()
    assert len(body["data"]) == 1
    assert body["pagination"]["totalPages"] == 2


def test_duplicate_phones(admin_client):
    _seed_funnel()
    body = admin_client.get("/admin/duplicate-phones").get_json()
    assert body["total"] == 1
    assert body["data"][0]["count"] == 2


def test_audit_logs_listing(admin_client):
    login(admin_client, "wrong")
    body = admin_client.get("/admin/audit-logs?event_type=admin_login_failure").get_json()
    assert body["pagination"]["total"] == 1
    assert body["data"][0]["severity"] == "warning"


def test_masking_helpers():
    assert mask_email("lead@example.com") == "l***@example.com"
    assert mask_email("nope") == "[MASKED]"
    assert mask_token("abcdefghijklmnop") == "abcdefgh...mnop"
    assert mask_token("short") == "[MASKED]"


def test_login_rejects_non_string_credentials(client, admin):
    assert client.post("/admin/login", json={"username": ["ops"], "password": "x"}).status_code == 400
    assert client.post("/admin/login", json={"email": "ops@example.com", "password": 12345}).status_code == 400
