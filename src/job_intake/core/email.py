"""
Email Service

Outbound mail relay for the job application flow. Delivers through SMTP
(aiosmtplib) by default, or through the Resend API when MAIL_BACKEND=resend.

Unlike a fire-and-forget notifier, every send here either succeeds or raises:
callers decide what a failed delivery means for their request.
"""

import asyncio
import logging
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr
from html import escape

import aiosmtplib
import resend

from job_intake.core.config import settings

logger = logging.getLogger(__name__)

_BASE_STYLES = """
            body { font-family: Arial, sans-serif; line-height: 1.6; color: #1f2937; }
            .container { max-width: 600px; margin: 0 auto; padding: 40px 20px; }
            .header { color: #2563eb; margin-bottom: 24px; }
            .footer { margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }
"""


class MailNotConfiguredError(Exception):
    """Raised when the relay has no credentials to send with."""


class MailDeliveryError(Exception):
    """Raised when the relay accepted the request but delivery failed."""


@dataclass
class MailAttachment:
    """A file attached to an outgoing message."""

    filename: str
    content: bytes
    content_type: str = "application/octet-stream"


def mask_email(email: str) -> str:
    """
    Mask an email address for log output.

    Example: john.doe@example.com -> j***@example.com
    """
    if "@" not in email:
        return "***"

    local, domain = email.split("@", 1)
    masked_local = "*" if len(local) <= 1 else f"{local[0]}***"
    return f"{masked_local}@{domain}"


def _sender() -> str:
    return formataddr((settings.email_from_name, settings.sender_address))


def _build_message(
    to_email: str,
    subject: str,
    html_content: str,
    attachments: list[MailAttachment],
) -> EmailMessage:
    message = EmailMessage()
    message["From"] = _sender()
    message["To"] = to_email
    message["Subject"] = subject
    message.set_content(html_content, subtype="html")

    for attachment in attachments:
        maintype, _, subtype = attachment.content_type.partition("/")
        if not subtype:
            maintype, subtype = "application", "octet-stream"
        message.add_attachment(
            attachment.content,
            maintype=maintype,
            subtype=subtype,
            filename=attachment.filename,
        )

    return message


async def _send_via_smtp(
    to_email: str,
    subject: str,
    html_content: str,
    attachments: list[MailAttachment],
) -> None:
    if not settings.email_user or not settings.email_password:
        raise MailNotConfiguredError("Email service not configured")

    message = _build_message(to_email, subject, html_content, attachments)

    # EMAIL_SECURE=true means implicit TLS (port 465), otherwise STARTTLS (port 587)
    try:
        await aiosmtplib.send(
            message,
            hostname=settings.email_host,
            port=settings.email_port,
            use_tls=settings.email_secure,
            start_tls=not settings.email_secure,
            username=settings.email_user,
            password=settings.email_password,
        )
    except Exception as e:
        logger.error(f"SMTP delivery to {mask_email(to_email)} failed: {e}")
        raise MailDeliveryError(f"Failed to send email: {e}") from e


async def _send_via_resend(
    to_email: str,
    subject: str,
    html_content: str,
    attachments: list[MailAttachment],
) -> None:
    if not settings.resend_api_key or not settings.sender_address:
        raise MailNotConfiguredError("Email service not configured")

    resend.api_key = settings.resend_api_key

    params: resend.Emails.SendParams = {
        "from": _sender(),
        "to": [to_email],
        "subject": subject,
        "html": html_content,
    }
    if attachments:
        params["attachments"] = [
            {
                "filename": attachment.filename,
                "content": list(attachment.content),
                "content_type": attachment.content_type,
            }
            for attachment in attachments
        ]

    try:
        # Run sync Resend call in thread pool to avoid blocking event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
    except Exception as e:
        logger.error(f"Resend delivery to {mask_email(to_email)} failed: {e}")
        raise MailDeliveryError(f"Failed to send email: {e}") from e

    logger.debug(f"Resend accepted message id: {email['id']}")


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
    attachments: list[MailAttachment] | None = None,
) -> None:
    """
    Send an email through the configured relay.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email
        attachments: Files to attach, if any

    Raises:
        MailNotConfiguredError: If relay credentials are absent
        MailDeliveryError: If the relay fails to deliver
    """
    attachments = attachments or []

    if settings.mail_backend == "resend":
        await _send_via_resend(to_email, subject, html_content, attachments)
    else:
        await _send_via_smtp(to_email, subject, html_content, attachments)

    logger.info(
        f"Email sent to {mask_email(to_email)} "
        f"(subject: {subject!r}, attachments: {len(attachments)})"
    )


async def send_verification_code(to_email: str, code: str, expiry_minutes: int) -> None:
    """Send the one-time verification code to an applicant."""
    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
{_BASE_STYLES}
            .code {{ background-color: #f3f4f6; padding: 16px; text-align: center; margin: 16px 0; font-size: 24px; font-weight: bold; letter-spacing: 4px; }}
        </style>
    </head>
    <body>
        <div class="container">
            <h2 class="header">Job Application Verification</h2>

            <p>Your verification code is:</p>

            <div class="code">{escape(code)}</div>

            <p>This code expires in {expiry_minutes} minutes.</p>

            <div class="footer">
                <p>If you didn't start a job application, you can safely ignore this email.</p>
            </div>
        </div>
    </body>
    </html>
    """
    await send_email(
        to_email=to_email,
        subject="Your Verification Code",
        html_content=html_content,
    )


async def send_hr_application(
    to_email: str,
    full_name: str,
    applicant_email: str,
    phone: str | None,
    position: str,
    location: str,
    document_checklist: list[tuple[str, bool]],
    attachments: list[MailAttachment],
) -> None:
    """
    Forward a completed application to an office HR inbox.

    Args:
        to_email: HR inbox for the chosen office
        full_name: Candidate's full name
        applicant_email: Candidate's verified email address
        phone: Candidate's phone number, if given
        position: Position applied for
        location: Office applied to
        document_checklist: (slot name, was submitted) for every recognised slot
        attachments: The submitted files, already renamed for HR
    """
    safe_position = escape(position)
    safe_location = escape(location)
    safe_phone = escape(phone) if phone else "Not provided"

    checklist_items = "\n".join(
        f"                    <li>{'&#10003;' if present else '&#10007;'} {escape(slot)}</li>"
        for slot, present in document_checklist
    )

    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
{_BASE_STYLES}
            .section {{ margin-top: 20px; }}
            .documents {{ list-style: none; padding: 0; }}
        </style>
    </head>
    <body>
        <div class="container">
            <h2 class="header">New Application Received</h2>
            <h3>{safe_position} - {safe_location}</h3>

            <div class="section">
                <h4>Candidate Details:</h4>
                <p><strong>Name:</strong> {escape(full_name)}</p>
                <p><strong>Email:</strong> {escape(applicant_email)}</p>
                <p><strong>Phone:</strong> {safe_phone}</p>
            </div>

            <div class="section">
                <h4>Submitted Documents:</h4>
                <ul class="documents">
{checklist_items}
                </ul>
            </div>
        </div>
    </body>
    </html>
    """
    await send_email(
        to_email=to_email,
        subject=f"New Application: {position} - {location}",
        html_content=html_content,
        attachments=attachments,
    )


async def send_application_confirmation(to_email: str, position: str, location: str) -> None:
    """Confirm to the applicant that their application was received."""
    html_content = f"""
    <!DOCTYPE html>
    <html>
    <head>
        <style>
{_BASE_STYLES}
        </style>
    </head>
    <body>
        <div class="container">
            <h2 class="header">Application Received</h2>

            <p>Thank you for applying for the {escape(position)} position at our {escape(location)} office.</p>

            <p>We have received your application materials and will review them carefully. If your qualifications match our needs, we will contact you using the email address you provided.</p>

            <p style="margin-top: 30px;">Best regards,<br>The Hiring Team</p>
        </div>
    </body>
    </html>
    """
    await send_email(
        to_email=to_email,
        subject="Application Received",
        html_content=html_content,
    )
