"""
Job Applications Service Layer

Business logic for the two-step job application flow:

1. Email Verification:
   - issue_code: generate a 6-digit code, store it for 15 minutes, email it
   - verify_code: check a submitted code with a 3-attempt cap

2. Submission Gate:
   - submit_application: only accepted for a verified, unexpired email;
     forwards the application and attachments to the office HR inbox,
     confirms receipt to the applicant, then clears the verification entry

State machine for one email:
    UNVERIFIED -> CODE_ISSUED -> VERIFIED -> SUBMITTED (entry deleted)
    CODE_ISSUED -> EXPIRED | LOCKED (entry deleted, back to UNVERIFIED)

Security considerations:
- Codes come from the `secrets` CSPRNG and are compared in constant time
- Codes are never logged; email addresses are masked in logs
- Resend is rate limited per email (1 minute window)
- Attempt counting happens before the equality check, so a correct code
  is still rejected once the cap is reached
"""

import logging
import secrets
from datetime import timedelta

from job_intake.core.email import (
    MailAttachment,
    MailDeliveryError,
    MailNotConfiguredError,
    mask_email,
    send_application_confirmation,
    send_hr_application,
    send_verification_code,
)
from job_intake.modules.job_applications.helpers import (
    attachment_problem,
    build_attachment_filename,
    build_document_checklist,
    has_control_characters,
    is_valid_email,
    resolve_hr_email,
)
from job_intake.modules.job_applications.models import (
    REQUIRED_DOCUMENTS,
    DocumentSlot,
    VerificationEntry,
    VerificationState,
    check_transition,
)
from job_intake.modules.job_applications.schemas import ApplicationPayload
from job_intake.modules.job_applications.store import VerificationStore

logger = logging.getLogger(__name__)

# Constants
CODE_EXPIRY_MINUTES = 15
MAX_VERIFY_ATTEMPTS = 3
RESEND_WINDOW_MINUTES = 1
CODE_MIN = 100000
CODE_MAX = 999999


class ApplicationServiceError(Exception):
    """Base exception for application service errors."""

    def __init__(self, message: str, error_code: str, status_code: int = 400):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        super().__init__(message)


class InvalidInputError(ApplicationServiceError):
    """Raised for malformed or incomplete input."""

    def __init__(self, message: str, error_code: str = "INVALID_INPUT"):
        super().__init__(message=message, error_code=error_code, status_code=400)


class MissingFieldsError(InvalidInputError):
    """Raised when required application fields are absent."""

    def __init__(self, fields: list[str]):
        self.fields = fields
        super().__init__(
            message=f"Missing fields: {', '.join(fields)}",
            error_code="MISSING_FIELDS",
        )


class MissingDocumentsError(InvalidInputError):
    """Raised when mandatory document slots are empty."""

    def __init__(self, documents: list[str]):
        self.documents = documents
        super().__init__(
            message=f"Missing documents: {', '.join(documents)}",
            error_code="MISSING_DOCUMENTS",
        )


class InvalidAttachmentError(InvalidInputError):
    """Raised when an upload is too large or of a disallowed type."""

    def __init__(self, problems: list[str]):
        self.problems = problems
        super().__init__(
            message=f"Invalid attachments: {'; '.join(problems)}",
            error_code="INVALID_ATTACHMENT",
        )


class RateLimitedError(ApplicationServiceError):
    """Raised when a new code is requested inside the resend window."""

    def __init__(self, retry_after_seconds: int):
        self.retry_after_seconds = retry_after_seconds
        super().__init__(
            message="Please wait before requesting a new code",
            error_code="RATE_LIMITED",
            status_code=429,
        )


class NotFoundError(ApplicationServiceError):
    """Raised when no verification is in progress for an email."""

    def __init__(self):
        super().__init__(
            message="No verification request found for this email",
            error_code="VERIFICATION_NOT_FOUND",
            status_code=400,
        )


class ExpiredError(ApplicationServiceError):
    """Raised when the verification code has expired."""

    def __init__(self):
        super().__init__(
            message="Verification code expired",
            error_code="CODE_EXPIRED",
            status_code=400,
        )


class TooManyAttemptsError(ApplicationServiceError):
    """Raised when the attempt cap for a code has been reached."""

    def __init__(self):
        super().__init__(
            message="Too many attempts. Please request a new code.",
            error_code="TOO_MANY_ATTEMPTS",
            status_code=429,
        )


class InvalidCodeError(ApplicationServiceError):
    """Raised when the submitted code does not match."""

    def __init__(self, attempts_remaining: int):
        self.attempts_remaining = attempts_remaining
        super().__init__(
            message="Invalid verification code",
            error_code="INVALID_CODE",
            status_code=400,
        )


class NotVerifiedError(ApplicationServiceError):
    """Raised when an application is submitted for an unverified email."""

    def __init__(self):
        super().__init__(
            message="Email not verified. Please complete verification first.",
            error_code="EMAIL_NOT_VERIFIED",
            status_code=403,
        )


class DeliveryFailedError(ApplicationServiceError):
    """Raised when the mail relay fails to deliver a message."""

    def __init__(self, message: str = "Failed to send email. Please try again later."):
        super().__init__(
            message=message,
            error_code="DELIVERY_FAILED",
            status_code=500,
        )


class UnconfiguredError(ApplicationServiceError):
    """Raised when the mail relay has no credentials."""

    def __init__(self):
        super().__init__(
            message="Email service not configured",
            error_code="EMAIL_NOT_CONFIGURED",
            status_code=500,
        )


def _generate_code() -> str:
    """Uniformly random 6-digit code in [100000, 999999]."""
    return str(CODE_MIN + secrets.randbelow(CODE_MAX - CODE_MIN + 1))


async def _deliver(send, *args, **kwargs) -> None:
    """Call a relay function, translating relay errors into service errors."""
    try:
        await send(*args, **kwargs)
    except MailNotConfiguredError as e:
        logger.error("Mail relay is not configured")
        raise UnconfiguredError() from e
    except MailDeliveryError as e:
        raise DeliveryFailedError() from e


async def issue_code(store: VerificationStore, email: str) -> VerificationEntry:
    """
    Issue a fresh verification code for an email and send it.

    The entry is written before the relay call and left in place if the
    relay fails; the applicant may request again once the resend window
    has passed.

    Args:
        store: Verification store
        email: Address to verify

    Returns:
        The newly stored VerificationEntry

    Raises:
        InvalidInputError: If the email is syntactically invalid
        RateLimitedError: If a code was issued for this email under a minute ago
        UnconfiguredError: If the mail relay has no credentials
        DeliveryFailedError: If the code email could not be delivered
    """
    if not is_valid_email(email):
        raise InvalidInputError("Valid email is required", error_code="INVALID_EMAIL")

    now = store.now()
    existing = store.get(email)
    if existing is not None:
        resend_allowed_at = existing.issued_at + timedelta(minutes=RESEND_WINDOW_MINUTES)
        if now < resend_allowed_at:
            retry_after = max(1, int((resend_allowed_at - now).total_seconds()))
            logger.warning(f"Code resend rate limited for {mask_email(email)}")
            raise RateLimitedError(retry_after)

    current_state = (
        existing.state(now, MAX_VERIFY_ATTEMPTS) if existing else VerificationState.UNVERIFIED
    )
    check_transition(current_state, VerificationState.CODE_ISSUED)

    entry = VerificationEntry(
        email=email,
        code=_generate_code(),
        issued_at=now,
        expires_at=now + timedelta(minutes=CODE_EXPIRY_MINUTES),
    )
    store.set(entry)
    logger.info(f"Issued verification code for {mask_email(email)}")

    await _deliver(send_verification_code, email, entry.code, CODE_EXPIRY_MINUTES)

    return entry


def verify_code(store: VerificationStore, email: str, code: str) -> VerificationEntry:
    """
    Check a submitted code against the stored entry.

    Checks run in order: entry exists, not expired, attempt cap not reached,
    code matches. Repeating a correct code on an already verified entry
    succeeds again without changing anything; wrong codes still count
    toward the cap.

    Args:
        store: Verification store
        email: Address being verified
        code: Code the applicant typed

    Returns:
        The verified VerificationEntry

    Raises:
        InvalidInputError: If email or code is missing
        NotFoundError: If no verification is in progress for the email
        ExpiredError: If the code has expired (entry deleted)
        TooManyAttemptsError: If the attempt cap was reached (entry deleted)
        InvalidCodeError: If the code does not match (attempt counted)
    """
    if not email or not code:
        raise InvalidInputError("Email and verification code are required")

    # Look before sweeping so an expired code is reported as expired once
    entry = store.peek(email)
    store.sweep()
    if entry is None:
        raise NotFoundError()

    state = entry.state(store.now(), MAX_VERIFY_ATTEMPTS)

    if state is VerificationState.EXPIRED:
        check_transition(state, VerificationState.UNVERIFIED)
        store.delete(email)
        raise ExpiredError()

    if entry.attempts >= MAX_VERIFY_ATTEMPTS:
        check_transition(VerificationState.LOCKED, VerificationState.UNVERIFIED)
        store.delete(email)
        logger.warning(f"Verification locked after too many attempts for {mask_email(email)}")
        raise TooManyAttemptsError()

    if not secrets.compare_digest(entry.code.encode(), code.strip().encode()):
        entry.attempts += 1
        logger.info(
            f"Invalid code for {mask_email(email)} "
            f"(attempt {entry.attempts}/{MAX_VERIFY_ATTEMPTS})"
        )
        raise InvalidCodeError(MAX_VERIFY_ATTEMPTS - entry.attempts)

    if state is not VerificationState.VERIFIED:
        check_transition(state, VerificationState.VERIFIED)
        entry.verified = True
        logger.info(f"Email verified: {mask_email(email)}")

    return entry


def _validate_payload(payload: ApplicationPayload) -> None:
    missing_fields = [
        form_name
        for form_name, value in (
            ("fullName", payload.full_name),
            ("position", payload.position),
            ("location", payload.location),
        )
        if not value or not value.strip()
    ]
    if missing_fields:
        raise MissingFieldsError(missing_fields)

    # These end up in mail headers (subject, attachment filenames)
    header_values = [payload.full_name, payload.position, payload.location]
    header_values.extend(document.filename for document in payload.documents.values())
    if any(has_control_characters(value) for value in header_values):
        raise InvalidInputError("Fields must not contain line breaks or control characters")

    missing_documents = [slot.value for slot in REQUIRED_DOCUMENTS if slot not in payload.documents]
    if missing_documents:
        raise MissingDocumentsError(missing_documents)

    problems = [
        problem
        for document in payload.documents.values()
        if (problem := attachment_problem(document)) is not None
    ]
    if problems:
        raise InvalidAttachmentError(problems)


async def submit_application(store: VerificationStore, payload: ApplicationPayload) -> str:
    """
    Forward a completed application to HR and confirm to the applicant.

    The email must hold a verified, unexpired entry. HR is mailed first with
    every submitted file attached, then the applicant gets a confirmation.
    If either send fails the request fails and the entry is kept, so the
    applicant can retry without verifying again. On success the entry is
    deleted.

    Args:
        store: Verification store
        payload: The application as received from the form

    Returns:
        The HR address the application was routed to

    Raises:
        NotVerifiedError: If the email has no verified entry
        MissingFieldsError: If fullName, position or location is missing
        InvalidInputError: If a header-bound field holds control characters
        MissingDocumentsError: If resume, degree or idProof is missing
        InvalidAttachmentError: If an upload is too large or of the wrong type
        UnconfiguredError: If the mail relay has no credentials
        DeliveryFailedError: If either message could not be delivered
    """
    entry = store.get(payload.email) if payload.email else None
    if entry is None or entry.state(store.now(), MAX_VERIFY_ATTEMPTS) is not VerificationState.VERIFIED:
        logger.warning(f"Submission rejected for unverified email {mask_email(payload.email)}")
        raise NotVerifiedError()

    _validate_payload(payload)

    hr_email = resolve_hr_email(payload.location)
    if not hr_email:
        logger.error(f"No HR inbox for location {payload.location!r} and no fallback configured")
        raise UnconfiguredError()

    attachments = [
        MailAttachment(
            filename=build_attachment_filename(payload.full_name, slot, document.filename),
            content=document.content,
            content_type=document.content_type,
        )
        for slot in DocumentSlot
        if (document := payload.documents.get(slot)) is not None
    ]

    await _deliver(
        send_hr_application,
        to_email=hr_email,
        full_name=payload.full_name,
        applicant_email=payload.email,
        phone=payload.phone or None,
        position=payload.position,
        location=payload.location,
        document_checklist=build_document_checklist(payload.documents),
        attachments=attachments,
    )
    logger.info(
        f"Application from {mask_email(payload.email)} routed to {mask_email(hr_email)} "
        f"with {len(attachments)} attachment(s)"
    )

    await _deliver(
        send_application_confirmation,
        to_email=payload.email,
        position=payload.position,
        location=payload.location,
    )

    check_transition(VerificationState.VERIFIED, VerificationState.SUBMITTED)
    store.delete(payload.email)
    return hr_email
