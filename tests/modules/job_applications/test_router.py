"""
API tests for the job applications router.

Exercise the action-discriminated /api/send-email endpoint through FastAPI's
TestClient with the mail relay patched out.
"""

import pytest
from fastapi.testclient import TestClient

from job_intake.main import app
from job_intake.modules.job_applications.helpers import MAX_ATTACHMENT_BYTES
from job_intake.modules.job_applications.store import get_verification_store

PDF = "application/pdf"


@pytest.fixture
def client(store):
    app.dependency_overrides[get_verification_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


def _files(*slots):
    return {slot: (f"{slot}.pdf", b"%PDF-1.4", PDF) for slot in slots}


def _form(email="a@x.com", **overrides):
    form = {
        "fullName": "Jane Applicant",
        "email": email,
        "phone": "",
        "position": "Mobile Therapist (MT)",
        "location": "Philadelphia Office",
    }
    form.update(overrides)
    return form


def _issue_and_verify(client, store, email="a@x.com"):
    response = client.post("/api/send-email?action=send-verification", json={"email": email})
    assert response.status_code == 200
    code = store.get(email).code
    response = client.post(
        "/api/send-email?action=verify-code", json={"email": email, "code": code}
    )
    assert response.status_code == 200


class TestSendVerification:
    """Tests for action=send-verification."""

    def test_success(self, client, store, mock_mail):
        response = client.post(
            "/api/send-email?action=send-verification", json={"email": "a@x.com"}
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert response.json()["expires_in_minutes"] == 15
        assert "a@x.com" in store

    def test_invalid_email_400(self, client, mock_mail):
        response = client.post(
            "/api/send-email?action=send-verification", json={"email": "nope"}
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "INVALID_EMAIL"

    def test_malformed_json_400(self, client, mock_mail):
        response = client.post(
            "/api/send-email?action=send-verification",
            content=b"{not json",
            headers={"Content-Type": "application/json"},
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "INVALID_INPUT"

    def test_rate_limited_429_with_retry_after(self, client, mock_mail):
        client.post("/api/send-email?action=send-verification", json={"email": "a@x.com"})
        response = client.post(
            "/api/send-email?action=send-verification", json={"email": "a@x.com"}
        )

        assert response.status_code == 429
        assert response.json()["detail"]["error"] == "RATE_LIMITED"
        assert response.headers["Retry-After"] == "60"

    def test_unconfigured_relay_500(self, client, mock_mail):
        from job_intake.core.email import MailNotConfiguredError

        mock_mail["code"].side_effect = MailNotConfiguredError("missing")
        response = client.post(
            "/api/send-email?action=send-verification", json={"email": "a@x.com"}
        )

        assert response.status_code == 500
        assert response.json()["detail"]["message"] == "Email service not configured"


class TestVerifyCode:
    """Tests for action=verify-code."""

    def test_success(self, client, store, mock_mail):
        client.post("/api/send-email?action=send-verification", json={"email": "a@x.com"})
        code = store.get("a@x.com").code

        response = client.post(
            "/api/send-email?action=verify-code", json={"email": "a@x.com", "code": code}
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "verified": True}

    def test_numeric_code_accepted(self, client, store, mock_mail):
        client.post("/api/send-email?action=send-verification", json={"email": "a@x.com"})
        code = int(store.get("a@x.com").code)

        response = client.post(
            "/api/send-email?action=verify-code", json={"email": "a@x.com", "code": code}
        )

        assert response.status_code == 200

    def test_no_request_400(self, client):
        response = client.post(
            "/api/send-email?action=verify-code", json={"email": "a@x.com", "code": "123456"}
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "VERIFICATION_NOT_FOUND"

    def test_too_many_attempts_429(self, client, store, mock_mail):
        client.post("/api/send-email?action=send-verification", json={"email": "a@x.com"})
        code = store.get("a@x.com").code
        wrong = "000000" if code != "000000" else "111111"

        for _ in range(3):
            response = client.post(
                "/api/send-email?action=verify-code", json={"email": "a@x.com", "code": wrong}
            )
            assert response.status_code == 400
            assert response.json()["detail"]["error"] == "INVALID_CODE"

        response = client.post(
            "/api/send-email?action=verify-code", json={"email": "a@x.com", "code": code}
        )
        assert response.status_code == 429


class TestSubmit:
    """Tests for the multipart submission."""

    def test_not_verified_403(self, client, mock_mail):
        response = client.post(
            "/api/send-email", data=_form(), files=_files("resume", "degree", "idProof")
        )

        assert response.status_code == 403
        assert response.json()["detail"]["error"] == "EMAIL_NOT_VERIFIED"

    def test_missing_documents_400(self, client, store, mock_mail):
        _issue_and_verify(client, store)

        response = client.post("/api/send-email", data=_form(), files=_files("resume"))

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Missing documents: degree, idProof"

    def test_missing_fields_400(self, client, store, mock_mail):
        _issue_and_verify(client, store)

        response = client.post(
            "/api/send-email",
            data=_form(position=""),
            files=_files("resume", "degree", "idProof"),
        )

        assert response.status_code == 400
        assert response.json()["detail"]["message"] == "Missing fields: position"

    def test_line_break_in_position_400(self, client, store, mock_mail):
        _issue_and_verify(client, store)

        response = client.post(
            "/api/send-email",
            data=_form(position="Admin\r\nBcc: x@y.com"),
            files=_files("resume", "degree", "idProof"),
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "INVALID_INPUT"
        mock_mail["hr"].assert_not_awaited()

    def test_oversized_file_400(self, client, store, mock_mail):
        _issue_and_verify(client, store)
        files = _files("resume", "degree", "idProof")
        files["experience"] = ("letters.pdf", b"x" * (MAX_ATTACHMENT_BYTES + 10), PDF)

        response = client.post("/api/send-email", data=_form(), files=files)

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "INVALID_ATTACHMENT"
        assert "experience" in response.json()["detail"]["message"]
        mock_mail["hr"].assert_not_awaited()

    def test_success_routes_to_office_and_clears_entry(self, client, store, mock_mail):
        _issue_and_verify(client, store)

        response = client.post(
            "/api/send-email",
            data=_form(),
            files=_files("resume", "degree", "idProof", "experience"),
        )

        assert response.status_code == 200
        assert response.json()["success"] is True
        hr_kwargs = mock_mail["hr"].await_args.kwargs
        assert hr_kwargs["to_email"] == "samantha.power@batp.org"
        assert hr_kwargs["phone"] is None
        assert [a.filename for a in hr_kwargs["attachments"]] == [
            "Jane Applicant_resume_resume.pdf",
            "Jane Applicant_degree_degree.pdf",
            "Jane Applicant_idProof_idProof.pdf",
            "Jane Applicant_experience_experience.pdf",
        ]
        assert mock_mail["confirmation"].await_args.kwargs["to_email"] == "a@x.com"
        assert "a@x.com" not in store

    def test_unknown_office_uses_fallback(self, client, store, mock_mail, fallback_hr_email):
        _issue_and_verify(client, store)

        response = client.post(
            "/api/send-email",
            data=_form(location="Unknown Office"),
            files=_files("resume", "degree", "idProof"),
        )

        assert response.status_code == 200
        assert mock_mail["hr"].await_args.kwargs["to_email"] == fallback_hr_email

    def test_delivery_failure_500_keeps_verification(self, client, store, mock_mail):
        from job_intake.core.email import MailDeliveryError

        _issue_and_verify(client, store)
        mock_mail["hr"].side_effect = MailDeliveryError("smtp down")

        response = client.post(
            "/api/send-email", data=_form(), files=_files("resume", "degree", "idProof")
        )

        assert response.status_code == 500
        assert response.json()["detail"]["error"] == "DELIVERY_FAILED"
        assert store.get("a@x.com").verified is True


class TestMisc:
    """Tests for the options endpoint and action handling."""

    def test_unknown_action_400(self, client):
        response = client.post("/api/send-email?action=delete-everything", json={})

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "UNKNOWN_ACTION"

    def test_application_options(self, client):
        response = client.get("/api/application-options")

        assert response.status_code == 200
        body = response.json()
        assert "Philadelphia Office" in body["locations"]
        assert "Behavior Consultant (BC)" in body["positions"]
        assert body["max_file_size_bytes"] == 5 * 1024 * 1024
        required = {doc["id"] for doc in body["documents"] if doc["required"]}
        assert required == {"resume", "degree", "idProof"}

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}
