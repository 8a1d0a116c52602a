"""
Fixtures for job applications tests.
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from job_intake.modules.job_applications.models import DocumentSlot, VerificationEntry
from job_intake.modules.job_applications.schemas import ApplicationPayload, DocumentAttachment
from job_intake.modules.job_applications.store import VerificationStore

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class FakeClock:
    """Controllable clock for the verification store."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 2, 9, 0, tzinfo=UTC))


@pytest.fixture
def store(clock):
    return VerificationStore(clock=clock)


@pytest.fixture
def mock_mail():
    """Patch every relay call made by the service layer."""
    with (
        patch(
            "job_intake.modules.job_applications.service.send_verification_code",
            new_callable=AsyncMock,
        ) as send_code,
        patch(
            "job_intake.modules.job_applications.service.send_hr_application",
            new_callable=AsyncMock,
        ) as send_hr,
        patch(
            "job_intake.modules.job_applications.service.send_application_confirmation",
            new_callable=AsyncMock,
        ) as send_confirmation,
    ):
        yield {
            "code": send_code,
            "hr": send_hr,
            "confirmation": send_confirmation,
        }


@pytest.fixture
def fallback_hr_email(monkeypatch):
    from job_intake.core.config import settings

    monkeypatch.setattr(settings, "fallback_hr_email", "careers@batp.org")
    return "careers@batp.org"


def _document(slot: DocumentSlot, filename: str = "file.pdf", content_type: str = PDF):
    return DocumentAttachment(
        slot=slot,
        filename=filename,
        content=b"%PDF-1.4 test content",
        content_type=content_type,
    )


@pytest.fixture
def make_document():
    """Factory for DocumentAttachment objects."""
    return _document


@pytest.fixture
def verified_entry(store, clock):
    """A verified entry for applicant@test.com issued just now."""
    entry = VerificationEntry(
        email="applicant@test.com",
        code="123456",
        issued_at=clock(),
        expires_at=clock() + timedelta(minutes=15),
        verified=True,
    )
    store.set(entry)
    return entry


@pytest.fixture
def sample_payload():
    """A complete application with the three mandatory documents."""
    return ApplicationPayload(
        full_name="Jane Applicant",
        email="applicant@test.com",
        phone="+1 215 555 0100",
        position="Behavior Consultant (BC)",
        location="Philadelphia Office",
        documents={
            DocumentSlot.RESUME: _document(DocumentSlot.RESUME, "cv.pdf"),
            DocumentSlot.DEGREE: _document(DocumentSlot.DEGREE, "diploma.pdf"),
            DocumentSlot.ID_PROOF: _document(DocumentSlot.ID_PROOF, "license.docx", DOCX),
        },
    )
