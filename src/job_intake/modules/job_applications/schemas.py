"""
Job Applications Schemas

Pydantic schemas for request validation and response serialization, plus the
transient ApplicationPayload handed from the router to the submission gate.
"""

from pydantic import BaseModel, ConfigDict, Field

from job_intake.modules.job_applications.models import DocumentSlot


class SendCodeRequest(BaseModel):
    """Request body for action=send-verification."""

    # Syntax is checked by the service so a bad address maps to INVALID_INPUT
    email: str = Field("", max_length=320)


class SendCodeResponse(BaseModel):
    success: bool = True
    message: str = "Verification code sent. Please check your inbox."
    expires_in_minutes: int


class VerifyCodeRequest(BaseModel):
    """Request body for action=verify-code."""

    model_config = ConfigDict(coerce_numbers_to_str=True)

    email: str = Field("", max_length=320)
    code: str = Field("", max_length=32)


class VerifyCodeResponse(BaseModel):
    success: bool = True
    verified: bool = True


class SubmitApplicationResponse(BaseModel):
    success: bool = True
    message: str = "Application submitted. A confirmation has been sent to your email."


class DocumentAttachment(BaseModel):
    """One uploaded file bound to a document slot."""

    slot: DocumentSlot
    filename: str
    content: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.content)


class ApplicationPayload(BaseModel):
    """
    A full application as received from the intake form.

    Transient: validated, forwarded to HR, then discarded. Field presence is
    enforced by the submission gate rather than here, so that missing fields
    are reported by their form names alongside missing documents.
    """

    model_config = ConfigDict(populate_by_name=True)

    full_name: str = Field("", alias="fullName")
    email: str = ""
    phone: str | None = None
    position: str = ""
    location: str = ""
    documents: dict[DocumentSlot, DocumentAttachment] = Field(default_factory=dict)


class DocumentSlotInfo(BaseModel):
    id: DocumentSlot
    required: bool


class ApplicationOptionsResponse(BaseModel):
    """Choices and limits the intake form renders."""

    positions: list[str]
    locations: list[str]
    documents: list[DocumentSlotInfo]
    max_file_size_bytes: int
    allowed_content_types: list[str]
