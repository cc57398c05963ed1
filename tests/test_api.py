from database.models import Employee, SecurityLog
from services.audit_service import AuditEvent


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["checks"]["database"]["status"] == "ok"


def test_login_returns_token_and_permissions(client):
    response = client.post("/api/auth/login", json={"username": "warden", "password": "Warden2026x"})

    assert response.status_code == 200
    body = response.json()
    assert body["token_type"] == "bearer"
    assert body["employee"]["employee_id"] == "EMP900"
    assert body["employee"]["role"] == "Administrator"

    me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {body['access_token']}"})
    assert me.status_code == 200
    assert me.json()["username"] == "warden"


def test_failed_login_is_remembered(client, seeded):
    response = client.post("/api/auth/login", json={"username": "dreyes", "password": "not-it-123"})

    assert response.status_code == 401
    with seeded.get_session() as session:
        assert session.get(Employee, "EMP001").failed_login_attempts == 1
        assert session.query(SecurityLog).filter(SecurityLog.event_type == AuditEvent.LOGIN_FAILED).count() == 1


def test_missing_token(client):
    assert client.get("/api/prisoners").status_code in (401, 403)


def test_officer_without_grant_is_denied_and_audited(client, seeded, officer_headers):
    response = client.get("/api/prisoners", headers=officer_headers)

    assert response.status_code == 403
    with seeded.get_session() as session:
        denials = session.query(SecurityLog).filter(SecurityLog.event_type == AuditEvent.ACCESS_DENIED).all()
        assert len(denials) == 1
        assert denials[0].employee_id == "EMP001"


def test_administrator_bypasses_module_checks(client, admin_headers):
    assert client.get("/api/prisoners", headers=admin_headers).status_code == 200
    assert client.get("/api/access-controls", headers=admin_headers).status_code == 200


def test_grant_opens_module_for_officer(client, admin_headers, officer_headers):
    granted = client.post(
        "/api/access-controls",
        json={"employee_id": "EMP001", "module": "Prisoners", "permission_level": "View"},
        headers=admin_headers,
    )
    assert granted.status_code == 201
    assert granted.json()["granted_by"] == "EMP900"

    assert client.get("/api/prisoners", headers=officer_headers).status_code == 200
    create = client.post("/api/prisoners", json={"name": "Lee Park"}, headers=officer_headers)
    assert create.status_code == 403

    check = client.get(
        "/api/access-controls/check",
        params={"employee_id": "EMP001", "module": "Prisoners", "required": "Edit"},
        headers=admin_headers,
    )
    assert check.status_code == 200
    assert check.json()["allowed"] is False


def test_intake_into_full_cell_conflicts(client, admin_headers):
    assert client.post(
        "/api/cells", json={"cell_number": "S-001", "capacity": 1}, headers=admin_headers
    ).status_code == 201
    first = client.post("/api/prisoners", json={"name": "Lee Park", "cell_number": "S-001"}, headers=admin_headers)
    assert first.status_code == 201

    second = client.post("/api/prisoners", json={"name": "Tom Hale", "cell_number": "S-001"}, headers=admin_headers)
    assert second.status_code == 409
    assert "S-001" in second.json()["detail"]
    names = [p["name"] for p in client.get("/api/prisoners", headers=admin_headers).json()]
    assert names == ["Lee Park"]


def test_unknown_prisoner_is_404(client, admin_headers):
    response = client.get("/api/prisoners/PR999999", headers=admin_headers)
    assert response.status_code == 404


def test_default_procedures_are_seeded(client, admin_headers):
    response = client.get("/api/security/procedures", headers=admin_headers)

    assert response.status_code == 200
    assert sorted(p["procedure_type"] for p in response.json()) == ["Fire", "Lockdown", "Medical"]
