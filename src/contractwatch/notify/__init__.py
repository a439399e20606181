"""New-contract notifications."""

from .mailer import EmailNotifier, NotificationError, build_email_body, build_subject

__all__ = [
    "EmailNotifier",
    "NotificationError",
    "build_email_body",
    "build_subject",
]
