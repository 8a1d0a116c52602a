"""
Job Applications Shared Helpers

Small pure functions used by the service layer and the router: email syntax
checks, HR routing, and attachment naming/validation.
"""

import re
from pathlib import PurePath

from job_intake.core.config import settings
from job_intake.modules.job_applications.models import DocumentSlot
from job_intake.modules.job_applications.schemas import DocumentAttachment

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
CONTROL_CHARACTERS = re.compile(r"[\x00-\x1f\x7f]")

MAX_ATTACHMENT_BYTES = 5 * 1024 * 1024  # 5MB

ALLOWED_CONTENT_TYPES = {
    "application/pdf": ".pdf",
    "application/msword": ".doc",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": ".docx",
}
ALLOWED_EXTENSIONS = set(ALLOWED_CONTENT_TYPES.values())
GENERIC_CONTENT_TYPE = "application/octet-stream"


def is_valid_email(email: str | None) -> bool:
    """Basic `local@domain.tld` syntax check."""
    return bool(email) and EMAIL_PATTERN.match(email) is not None


def has_control_characters(value: str | None) -> bool:
    """True if the text holds CR, LF or any other control character."""
    return bool(value) and CONTROL_CHARACTERS.search(value) is not None


def resolve_hr_email(location: str) -> str | None:
    """
    Get the HR inbox for an office.

    Unknown offices fall back to the configured FALLBACK_HR_EMAIL.

    Args:
        location: Office name as chosen on the form

    Returns:
        The HR email address, or None if the office is unknown and no
        fallback is configured
    """
    return settings.office_hr_emails.get(location) or settings.fallback_hr_email


def build_attachment_filename(full_name: str, slot: DocumentSlot, original_filename: str) -> str:
    """Name an attachment as `{fullName}_{slotName}_{originalFilename}` for HR."""
    return f"{full_name}_{slot.value}_{original_filename}"


def build_document_checklist(
    documents: dict[DocumentSlot, DocumentAttachment],
) -> list[tuple[str, bool]]:
    """(slot name, was submitted) for every recognised slot, in form order."""
    return [(slot.value, slot in documents) for slot in DocumentSlot]


def attachment_problem(document: DocumentAttachment) -> str | None:
    """
    Check a single upload against the size and type limits.

    The filename extension must be .pdf, .doc or .docx. The declared content
    type must be one of the document types or the generic octet-stream, since
    browsers do not always send a useful content type for Word files.

    Returns:
        A human-readable problem description, or None if the file is fine
    """
    if document.size > MAX_ATTACHMENT_BYTES:
        return f"{document.slot.value}: file size should be less than 5MB"

    extension = PurePath(document.filename).suffix.lower()
    content_type_ok = (
        document.content_type in ALLOWED_CONTENT_TYPES
        or document.content_type == GENERIC_CONTENT_TYPE
    )
    if extension not in ALLOWED_EXTENSIONS or not content_type_ok:
        return f"{document.slot.value}: only PDF, DOC, and DOCX files are allowed"

    return None
