"""
Core module - Configuration and outbound email.
"""

from job_intake.core.config import get_settings, settings
from job_intake.core.email import (
    MailAttachment,
    MailDeliveryError,
    MailNotConfiguredError,
    send_email,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Email
    "MailAttachment",
    "MailDeliveryError",
    "MailNotConfiguredError",
    "send_email",
]
