import pytest

from kanasu.core.config import settings
from kanasu.core.security import decode_access_token
from kanasu.services import otp as otp_service


@pytest.fixture
def strict_otp(monkeypatch):
    monkeypatch.setattr(settings, "OTP_BYPASS_ENABLED", False)


@pytest.fixture
def teacher(make_anganwadi, make_teacher):
    return make_teacher(make_anganwadi(), phone="9845012345")


def _request(client, phone):
    return client.post("/api/v1/teacher-auth/request-otp", json={"phone": phone})


def _verify(client, phone, otp):
    return client.post("/api/v1/teacher-auth/verify-otp", json={"phone": phone, "otp": otp})


def test_otp_login_flow(client, strict_otp, teacher):
    response = _request(client, teacher.phone)
    assert response.status_code == 200
    code = response.json()["data"]["otp"]
    assert len(code) == otp_service.OTP_LENGTH

    response = _verify(client, teacher.phone, code)
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["teacher"]["id"] == str(teacher.id)
    assert data["teacher"]["is_verified"] is True
    assert data["anganwadi"]["id"] == str(teacher.anganwadi_id)

    claims = decode_access_token(data["token"])
    assert claims["role"] == "TEACHER"
    assert claims["anganwadi_id"] == str(teacher.anganwadi_id)


def test_otp_is_single_use(client, strict_otp, teacher):
    code = _request(client, teacher.phone).json()["data"]["otp"]

    assert _verify(client, teacher.phone, code).status_code == 200
    response = _verify(client, teacher.phone, code)
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid or expired OTP"


def test_wrong_otp_is_rejected(client, strict_otp, teacher):
    code = _request(client, teacher.phone).json()["data"]["otp"]
    wrong = "000000" if code != "000000" else "111111"

    assert _verify(client, teacher.phone, wrong).status_code == 401
    assert _verify(client, teacher.phone, None).status_code == 401


def test_bypass_accepts_any_code(client, monkeypatch, teacher):
    monkeypatch.setattr(settings, "OTP_BYPASS_ENABLED", True)

    response = _verify(client, teacher.phone, None)

    assert response.status_code == 200
    assert response.json()["data"]["token"]


def test_bypass_is_off_by_default_in_production(monkeypatch):
    monkeypatch.setattr(settings, "OTP_BYPASS_ENABLED", None)
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")
    assert settings.otp_bypass is False


def test_unknown_phone(client):
    response = _request(client, "9000000000")
    assert response.status_code == 404
    assert response.json()["detail"] == "No teacher found with this phone number"


def test_teacher_without_anganwadi_cannot_request_otp(client, make_teacher):
    teacher = make_teacher(None, phone="9845099999")
    response = _request(client, teacher.phone)
    assert response.status_code == 400


def test_otp_is_hidden_unless_exposed(client, monkeypatch, teacher):
    monkeypatch.setattr(settings, "EXPOSE_OTP_IN_RESPONSE", False)

    response = _request(client, teacher.phone)

    assert response.status_code == 200
    assert "otp" not in response.json()["data"]


def test_expired_entries_are_dropped():
    store = otp_service.InMemoryOtpStore()
    store.save("9845012345", "123456", ttl_seconds=0)
    assert store.get("9845012345") is None


def test_profile_and_anganwadi_views(client, teacher, make_student, teacher_headers):
    make_student(teacher.anganwadi, "Asha")
    headers = teacher_headers(teacher)

    profile = client.get("/api/v1/teacher-auth/profile", headers=headers)
    assert profile.status_code == 200
    assert profile.json()["data"]["total_responses"] == 0

    view = client.get("/api/v1/teacher-auth/anganwadi", headers=headers)
    assert view.status_code == 200
    body = view.json()["data"]
    assert [s["name"] for s in body["students"]] == ["Asha"]
    assert body["active_assessments"] == []


def test_profile_requires_teacher_token(client, admin_headers):
    assert client.get("/api/v1/teacher-auth/profile").status_code == 401
    assert client.get("/api/v1/teacher-auth/profile", headers=admin_headers).status_code == 403
