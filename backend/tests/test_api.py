import redis
from fastapi.testclient import TestClient

from app.core.security import get_password_hash
from app.main import app
from app.services.application_manager import ApplicationManager
from app.models import Application, Job
from app.models.user import ROLE_USER
from conftest import make_user, make_job, auth_headers


def _apply(client, user, job, **payload):
    return client.post(f"/api/applications/{job.id}/apply", json=payload, headers=auth_headers(user))


# --- auth ---

def test_register_login_refresh_logout(client, db):
    response = client.post("/api/auth/register", json={
        "email": "new@example.com",
        "password": "secret-password",
        "full_name": "New User"
    })
    assert response.status_code == 201
    assert response.json()["role"] == ROLE_USER

    response = client.post("/api/auth/login", data={"username": "new@example.com", "password": "secret-password"})
    assert response.status_code == 200
    tokens = response.json()
    headers = {"Authorization": f"Bearer {tokens['access_token']}"}
    assert client.get("/api/users/me", headers=headers).json()["email"] == "new@example.com"

    response = client.post("/api/auth/refresh", json={"refresh_token": tokens["refresh_token"]})
    assert response.status_code == 200

    assert client.post("/api/auth/logout", headers=headers).status_code == 200
    response = client.get("/api/users/me", headers=headers)
    assert response.status_code == 401
    assert response.json()["error"] == "unauthenticated"


def test_register_duplicate_email(client, db):
    make_user(db, "taken@example.com")
    response = client.post("/api/auth/register", json={"email": "taken@example.com", "password": "x"})
    assert response.status_code == 400


def test_login_with_wrong_password(client, db):
    user = make_user(db, "login@example.com")
    user.password_hash = get_password_hash("right")
    db.commit()

    response = client.post("/api/auth/login", data={"username": "login@example.com", "password": "wrong"})
    assert response.status_code == 401


def test_refresh_with_access_token_is_rejected(client, applicant):
    token = auth_headers(applicant)["Authorization"].split(" ", 1)[1]
    response = client.post("/api/auth/refresh", json={"refresh_token": token})
    assert response.status_code == 401
    assert response.json() == {"error": "unauthenticated", "detail": "Invalid refresh token"}


def test_missing_token_is_unauthenticated(client, db):
    assert client.get("/api/applications").status_code == 401


def test_update_profile_resume(client, applicant):
    response = client.put("/api/users/me", json={"resume_url": "https://files.example.com/new.pdf"},
                          headers=auth_headers(applicant))
    assert response.status_code == 200
    assert response.json()["resume_url"] == "https://files.example.com/new.pdf"


# --- jobs ---

def test_public_job_list_shows_only_published(client, db, job):
    make_job(db, title="Draft position", status="draft")

    response = client.get("/api/jobs")
    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 1
    assert body["items"][0]["id"] == job.id


def test_admin_creates_job_and_user_cannot(client, admin, applicant):
    payload = {
        "title": "Data Engineer",
        "description": "Design pipelines and keep the warehouse healthy.",
        "company": "Acme",
        "location": "Berlin",
        "status": "published"
    }
    response = client.post("/api/admin/jobs", json=payload, headers=auth_headers(applicant))
    assert response.status_code == 403
    assert response.json()["error"] == "forbidden"

    response = client.post("/api/admin/jobs", json=payload, headers=auth_headers(admin))
    assert response.status_code == 201
    assert response.json()["applicants_count"] == 0


def test_admin_recounts_job(client, db, admin, applicant, job):
    _apply(client, applicant, job)
    db.query(Job).filter(Job.id == job.id).update({"applicants_count": 10})
    db.commit()

    response = client.post(f"/api/admin/jobs/{job.id}/recount", headers=auth_headers(admin))
    assert response.status_code == 200
    assert response.json()["applicants_count"] == 1


# --- applications ---

def test_apply_and_list_mine(client, db, applicant, job):
    response = _apply(client, applicant, job, cover_letter="Hi")
    assert response.status_code == 201
    assert response.json()["status"] == "pending"

    response = client.get("/api/applications", headers=auth_headers(applicant))
    assert [item["job_id"] for item in response.json()] == [job.id]


def test_apply_twice_returns_conflict_body(client, applicant, job):
    _apply(client, applicant, job)
    response = _apply(client, applicant, job)
    assert response.status_code == 409
    assert response.json() == {"error": "conflict", "detail": "Already applied"}


def test_apply_to_unknown_job_returns_not_found(client, applicant):
    response = client.post("/api/applications/missing/apply", json={}, headers=auth_headers(applicant))
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_apply_without_resume_returns_validation_error(client, db, job):
    user = make_user(db, "bare@example.com")
    response = _apply(client, user, job)
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"


def test_user_sees_own_application_without_internal_notes(client, db, applicant, admin, job):
    application_id = _apply(client, applicant, job).json()["id"]
    client.patch(f"/api/admin/applications/{application_id}/notes",
                 json={"notes": "visible"}, headers=auth_headers(admin))
    client.patch(f"/api/admin/applications/{application_id}/notes",
                 json={"notes": "hidden", "is_internal": True}, headers=auth_headers(admin))

    response = client.get(f"/api/applications/{application_id}", headers=auth_headers(applicant))
    assert response.status_code == 200
    assert [note["content"] for note in response.json()["notes"]] == ["visible"]

    stranger = make_user(db, "other@example.com")
    response = client.get(f"/api/applications/{application_id}", headers=auth_headers(stranger))
    assert response.status_code == 403


def test_user_history_hides_admin_status_comments(client, applicant, admin, job):
    application_id = _apply(client, applicant, job).json()["id"]
    client.patch(
        f"/api/admin/applications/{application_id}/status",
        json={"status": "rejected", "notes": "culture fit concerns, do not tell", "notify_user": False},
        headers=auth_headers(admin)
    )

    body = client.get(f"/api/applications/{application_id}", headers=auth_headers(applicant)).json()
    assert body["notes"] == []
    assert [entry["new_status"] for entry in body["history"]] == ["rejected"]
    assert "notes" not in body["history"][0]
    assert "culture fit" not in str(body)

    admin_body = client.get(f"/api/admin/applications/{application_id}", headers=auth_headers(admin)).json()
    assert admin_body["history"][0]["notes"] == "culture fit concerns, do not tell"


def test_withdraw_endpoint(client, db, applicant, admin, job):
    application_id = _apply(client, applicant, job).json()["id"]

    response = client.post(f"/api/applications/{application_id}/withdraw", headers=auth_headers(applicant))
    assert response.status_code == 200
    assert response.json()["status"] == "withdrawn"

    response = client.post(f"/api/applications/{application_id}/withdraw", headers=auth_headers(applicant))
    assert response.status_code == 409


# --- admin applications ---

def test_admin_status_update_returns_history(client, db, applicant, admin, job):
    application_id = _apply(client, applicant, job).json()["id"]

    response = client.patch(
        f"/api/admin/applications/{application_id}/status",
        json={"status": "interview", "interview_date": "2025-06-01T10:00:00Z", "notes": "Round one"},
        headers=auth_headers(admin)
    )
    assert response.status_code == 200
    body = response.json()
    assert body["application"]["status"] == "interview"
    assert body["application"]["interview_scheduled"] is True
    assert body["history"]["previous_status"] == "pending"

    detail = client.get(f"/api/admin/applications/{application_id}", headers=auth_headers(admin)).json()
    assert detail["viewed_by_admin"] is True
    assert len(detail["history"]) == 1
    assert detail["notes"][0]["content"] == "Status changed to interview: Round one"


def test_admin_status_update_rejects_invalid_status(client, applicant, admin, job):
    application_id = _apply(client, applicant, job).json()["id"]

    response = client.patch(f"/api/admin/applications/{application_id}/status",
                            json={"status": "hired"}, headers=auth_headers(admin))
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Invalid status. Valid statuses:")

    response = client.patch(f"/api/admin/applications/{application_id}/status",
                            json={}, headers=auth_headers(admin))
    assert response.json()["detail"] == "Status is required"


def test_regular_user_cannot_change_status(client, db, applicant, job):
    application_id = _apply(client, applicant, job).json()["id"]

    response = client.patch(f"/api/admin/applications/{application_id}/status",
                            json={"status": "accepted"}, headers=auth_headers(applicant))
    assert response.status_code == 403
    db.expire_all()
    assert db.query(Application).filter(Application.id == application_id).one().status == "pending"


def test_admin_notes_endpoints(client, applicant, admin, job):
    application_id = _apply(client, applicant, job).json()["id"]
    headers = auth_headers(admin)

    response = client.patch(f"/api/admin/applications/{application_id}/notes",
                            json={"notes": "Call back", "notify_user": True}, headers=headers)
    assert response.status_code == 200
    assert response.json()["user_notified"] is True

    response = client.patch(f"/api/admin/applications/{application_id}/notes",
                            json={"notes": "   "}, headers=headers)
    assert response.status_code == 400

    body = client.get(f"/api/admin/applications/{application_id}/notes", headers=headers).json()
    assert body["application_id"] == application_id
    assert body["summary"] == {"total": 1, "internal_count": 0, "external_count": 1}


def test_admin_bulk_status(client, db, admin, job):
    ids = []
    for i in range(2):
        user = make_user(db, f"bulk{i}@example.com", resume_url="cv")
        ids.append(_apply(client, user, job).json()["id"])

    response = client.post("/api/admin/applications/bulk-status",
                           json={"application_ids": ids + ["missing"], "status": "rejected"},
                           headers=auth_headers(admin))
    assert response.status_code == 200
    body = response.json()
    assert body["summary"] == {"total": 3, "success": 2, "failed": 1}

    response = client.post("/api/admin/applications/bulk-status",
                           json={"application_ids": [], "status": "rejected"},
                           headers=auth_headers(admin))
    assert response.status_code == 400


def test_admin_list_with_filters(client, db, applicant, admin, job):
    _apply(client, applicant, job)
    other = make_user(db, "second@example.com", resume_url="cv")
    _apply(client, other, job)

    response = client.get("/api/admin/applications", params={"limit": 1}, headers=auth_headers(admin))
    body = response.json()
    assert len(body["items"]) == 1
    assert body["pagination"]["total_items"] == 2
    assert body["pagination"]["has_next_page"] is True

    response = client.get("/api/admin/applications", params={"user_id": other.id}, headers=auth_headers(admin))
    assert [item["user_id"] for item in response.json()["items"]] == [other.id]


def test_admin_delete_application(client, db, applicant, admin, job):
    application_id = _apply(client, applicant, job).json()["id"]

    response = client.delete(f"/api/admin/applications/{application_id}", headers=auth_headers(admin))
    assert response.status_code == 200

    response = client.get(f"/api/admin/applications/{application_id}", headers=auth_headers(admin))
    assert response.status_code == 404
    assert response.json() == {"error": "not_found", "detail": "Application not found"}


def test_inactive_user_is_forbidden(client, db, applicant):
    applicant.is_active = False
    db.commit()
    assert client.get("/api/users/me", headers=auth_headers(applicant)).status_code == 403


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


# --- error envelope ---

def test_malformed_body_uses_error_envelope(client, applicant, job):
    response = _apply(client, applicant, job, use_saved_resume="not-a-bool")
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "validation_error"
    assert "use_saved_resume" in body["detail"]


def test_invalid_query_parameter_uses_error_envelope(client, admin):
    response = client.get("/api/admin/applications", params={"page": 0}, headers=auth_headers(admin))
    assert response.status_code == 400
    assert response.json()["error"] == "validation_error"
    assert "page" in response.json()["detail"]


def test_unexpected_failure_uses_error_envelope(db, applicant, monkeypatch):
    def broken(self, user_id):
        raise RuntimeError("boom")

    monkeypatch.setattr(ApplicationManager, "list_for_user", broken)

    with TestClient(app, raise_server_exceptions=False) as test_client:
        response = test_client.get("/api/applications", headers=auth_headers(applicant))

    assert response.status_code == 500
    assert response.json() == {"error": "internal", "detail": "Internal server error"}


# --- auth rate limit ---

def test_login_attempts_are_rate_limited(client, db, fake_redis):
    make_user(db, "limited@example.com")
    form = {"username": "limited@example.com", "password": "wrong"}

    for _ in range(5):
        assert client.post("/api/auth/login", data=form).status_code == 401

    response = client.post("/api/auth/login", data=form)
    assert response.status_code == 429
    assert response.json() == {
        "error": "rate_limited",
        "detail": "Too many login attempts, please try again in an hour."
    }
    assert fake_redis.ttl == {"rate_limit:auth:testclient": 3600}


def test_register_shares_the_auth_limit(client, db):
    for i in range(5):
        client.post("/api/auth/login", data={"username": f"nobody{i}@example.com", "password": "x"})

    response = client.post("/api/auth/register", json={"email": "late@example.com", "password": "secret"})
    assert response.status_code == 429


def test_rate_limit_is_skipped_when_redis_is_down(client, db, fake_redis, monkeypatch):
    def broken(key):
        raise redis.ConnectionError("redis is down")

    monkeypatch.setattr(fake_redis, "incr", broken)

    response = client.post("/api/auth/login", data={"username": "ghost@example.com", "password": "x"})
    assert response.status_code == 401
