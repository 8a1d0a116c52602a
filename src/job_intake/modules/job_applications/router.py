"""
Job Applications Router

Public endpoints for the job application intake form. No authentication:
control of the applicant's email address, proven by a one-time code, is the
only gate.

Endpoints:
- POST /send-email?action=send-verification - Email a verification code
- POST /send-email?action=verify-code - Check a verification code
- POST /send-email - Submit the full application (multipart)
- GET /application-options - Positions, offices and document slots

Security:
- Per-email resend rate limit and verify attempt cap (service layer)
- Upload size and type limits enforced server side
- XSS prevention in email templates
"""

import json
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import ValidationError
from starlette.datastructures import UploadFile

from job_intake.core.config import settings
from job_intake.modules.job_applications import service
from job_intake.modules.job_applications.helpers import (
    ALLOWED_CONTENT_TYPES,
    MAX_ATTACHMENT_BYTES,
)
from job_intake.modules.job_applications.models import POSITIONS, DocumentSlot
from job_intake.modules.job_applications.schemas import (
    ApplicationOptionsResponse,
    ApplicationPayload,
    DocumentAttachment,
    DocumentSlotInfo,
    SendCodeRequest,
    SendCodeResponse,
    SubmitApplicationResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
)
from job_intake.modules.job_applications.service import (
    ApplicationServiceError,
    InvalidInputError,
    RateLimitedError,
)
from job_intake.modules.job_applications.store import VerificationStore, get_verification_store

logger = logging.getLogger(__name__)

router = APIRouter()

ACTION_SEND_VERIFICATION = "send-verification"
ACTION_VERIFY_CODE = "verify-code"


def _to_http_exception(e: ApplicationServiceError) -> HTTPException:
    headers = None
    if isinstance(e, RateLimitedError):
        headers = {"Retry-After": str(e.retry_after_seconds)}
    return HTTPException(
        status_code=e.status_code,
        detail={
            "error": e.error_code,
            "message": e.message,
        },
        headers=headers,
    )


async def _read_json(request: Request, schema):
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidInputError("Request body must be valid JSON") from e

    if not isinstance(body, dict):
        raise InvalidInputError("Request body must be a JSON object")

    try:
        return schema.model_validate(body)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid request: {e.errors()[0]['msg']}") from e


async def _read_application_form(request: Request) -> ApplicationPayload:
    """Turn the multipart submission into an ApplicationPayload."""
    form = await request.form()

    documents: dict[DocumentSlot, DocumentAttachment] = {}
    for slot in DocumentSlot:
        upload = form.get(slot.value)
        if not isinstance(upload, UploadFile) or not upload.filename:
            continue
        documents[slot] = DocumentAttachment(
            slot=slot,
            filename=upload.filename,
            content=await upload.read(MAX_ATTACHMENT_BYTES + 1),
            content_type=upload.content_type or "application/octet-stream",
        )

    def text(name: str) -> str:
        value = form.get(name)
        return value.strip() if isinstance(value, str) else ""

    return ApplicationPayload(
        full_name=text("fullName"),
        email=text("email"),
        phone=text("phone") or None,
        position=text("position"),
        location=text("location"),
        documents=documents,
    )


async def _send_verification(request: Request, store: VerificationStore) -> SendCodeResponse:
    data = await _read_json(request, SendCodeRequest)
    await service.issue_code(store, data.email.strip())
    return SendCodeResponse(expires_in_minutes=service.CODE_EXPIRY_MINUTES)


async def _verify_code(request: Request, store: VerificationStore) -> VerifyCodeResponse:
    data = await _read_json(request, VerifyCodeRequest)
    service.verify_code(store, data.email.strip(), data.code)
    return VerifyCodeResponse()


async def _submit(request: Request, store: VerificationStore) -> SubmitApplicationResponse:
    payload = await _read_application_form(request)
    await service.submit_application(store, payload)
    return SubmitApplicationResponse()


@router.post(
    "/send-email",
    response_model=None,
    summary="Job Application Intake",
    description="""
Single action-discriminated endpoint driving the two-step application flow.

**action=send-verification** (JSON `{"email": ...}`):
Emails a 6-digit code valid for 15 minutes. A new code can be requested
once per minute.

**action=verify-code** (JSON `{"email": ..., "code": ...}`):
Checks the code. After 3 wrong codes the code is discarded and a new one
must be requested.

**No action** (multipart form):
Fields `fullName`, `email`, `phone` (optional), `position`, `location`, and
file parts `resume`, `degree`, `idProof` (required) plus `experience`,
`certification1`, `certification2`, `other`. PDF/DOC/DOCX only, 5MB each.
The email must have been verified first.
""",
    responses={
        200: {"description": "Action completed successfully"},
        400: {
            "description": "Invalid input, unknown/expired code, or missing items",
            "content": {
                "application/json": {
                    "example": {
                        "detail": {
                            "error": "MISSING_DOCUMENTS",
                            "message": "Missing documents: degree, idProof",
                        }
                    }
                }
            },
        },
        403: {"description": "Email not verified"},
        429: {"description": "Resend too soon or too many attempts"},
        500: {"description": "Email service not configured or delivery failed"},
    },
)
async def send_email(
    request: Request,
    action: str | None = Query(None),
    store: VerificationStore = Depends(get_verification_store),
) -> SendCodeResponse | VerifyCodeResponse | SubmitApplicationResponse:
    """
    Dispatch to code issuance, code verification, or application submission.

    Args:
        request: Raw request (body is JSON or multipart depending on action)
        action: send-verification, verify-code, or absent for submission
        store: Verification store (injected)

    Raises:
        HTTPException: With the service error's status and code
    """
    try:
        if action == ACTION_SEND_VERIFICATION:
            return await _send_verification(request, store)
        if action == ACTION_VERIFY_CODE:
            return await _verify_code(request, store)
        if action:
            raise InvalidInputError(f"Unknown action '{action}'", error_code="UNKNOWN_ACTION")
        return await _submit(request, store)

    except ApplicationServiceError as e:
        if e.status_code >= 500:
            logger.error(f"Job application error ({action or 'submit'}): {e.message}")
        else:
            logger.warning(f"Job application rejected ({action or 'submit'}): {e.error_code}")
        raise _to_http_exception(e) from e
    except HTTPException:
        raise
    except Exception as e:
        logger.exception(f"Unexpected error handling job application request: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={
                "error": "INTERNAL_ERROR",
                "message": "An unexpected error occurred. Please try again later.",
            },
        ) from e


@router.get(
    "/application-options",
    response_model=ApplicationOptionsResponse,
    summary="List Application Form Options",
    description="""
Get the positions, offices, and document slots the application form offers,
along with upload limits.
""",
)
async def list_application_options() -> ApplicationOptionsResponse:
    """Return the choices and limits rendered by the intake form."""
    return ApplicationOptionsResponse(
        positions=POSITIONS,
        locations=list(settings.office_hr_emails),
        documents=[DocumentSlotInfo(id=slot, required=slot.required) for slot in DocumentSlot],
        max_file_size_bytes=MAX_ATTACHMENT_BYTES,
        allowed_content_types=list(ALLOWED_CONTENT_TYPES),
    )
