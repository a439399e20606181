"""
E-mail notifier for newly found contracts.

Sends one HTML message per run listing every new contract, over SMTP
with STARTTLS when the server offers it. Transient connection failures
are retried with exponential backoff.
"""

from __future__ import annotations

import html
import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Callable, Sequence

from contractwatch.core.config.models import NotifierConfig
from contractwatch.core.extract.base import ContractRecord
from contractwatch.core.logging import LoggerLike
from contractwatch.core.retries import RetryConfig, call_with_retry

logger = logging.getLogger(__name__)

# Failures worth another attempt
TRANSIENT_ERRORS: tuple[type[BaseException], ...] = (
    smtplib.SMTPServerDisconnected,
    smtplib.SMTPConnectError,
    ConnectionError,
    TimeoutError,
)

FOOTER = "This notification was sent automatically by the LED Screen Contract Scraper."


class NotificationError(Exception):
    """E-mail could not be delivered or the SMTP check failed."""

    def __init__(self, message: str, cause: Exception | None = None):
        super().__init__(message)
        self.message = message
        self.cause = cause


def build_subject(count: int) -> str:
    return f"New LED Screen Contracts Found ({count})"


_STYLE = """
    body { font-family: Arial, sans-serif; margin: 20px; }
    .contract { border: 1px solid #ddd; margin: 10px 0; padding: 15px; border-radius: 5px; }
    .contract-id { font-weight: bold; color: #333; }
    .contract-description { margin: 10px 0; }
    .contract-details { color: #666; font-size: 14px; }
    .amount { color: #2c5aa0; font-weight: bold; }
    .status { color: #28a745; font-weight: bold; }
"""


def _contract_card(contract: ContractRecord) -> str:
    e = html.escape
    links = [
        (label, url)
        for label, url in (
            ("Details", contract.link),
            ("Pliego", contract.pliego_link),
            ("Anuncio", contract.anuncio_link),
        )
        if url
    ]
    links_html = ""
    if links:
        anchors = " | ".join(f'<a href="{e(url)}">{label}</a>' for label, url in links)
        links_html = f"<br>{anchors}"

    return f"""
    <div class="contract">
        <div class="contract-id">{e(contract.id)}</div>
        <div class="contract-description">{e(contract.description)}</div>
        <div class="contract-details">
            <strong>Type:</strong> {e(contract.contract_type)}
            | <strong>Status:</strong> <span class="status">{e(contract.status)}</span>
            | <strong>Amount:</strong> <span class="amount">{e(contract.amount)}</span><br>
            <strong>Submission Date:</strong> {e(contract.submission_date)}
            | <strong>Contracting Body:</strong> {e(contract.contracting_body)}{links_html}
        </div>
    </div>"""


def build_email_body(contracts: Sequence[ContractRecord]) -> str:
    """Render the HTML body: one card per contract."""
    cards = "".join(_contract_card(contract) for contract in contracts)
    return f"""<html>
<head>
    <style>{_STYLE}</style>
</head>
<body>
    <h2>New LED Screen Contracts Found</h2>
    <p>We found <strong>{len(contracts)}</strong> new contract(s) for LED screens:</p>
    {cards}
    <p><small>{FOOTER}</small></p>
</body>
</html>
"""


class EmailNotifier:
    """SMTP delivery of new-contract reports."""

    def __init__(
        self,
        config: NotifierConfig | None = None,
        *,
        retry: RetryConfig | None = None,
        smtp_factory: Callable[..., smtplib.SMTP] = smtplib.SMTP,
        log: LoggerLike | None = None,
    ):
        self.config = config or NotifierConfig()
        self.retry = retry or RetryConfig(retry_exceptions=TRANSIENT_ERRORS)
        self._smtp_factory = smtp_factory
        self.log = log or logger

    @property
    def is_configured(self) -> bool:
        return self.config.enabled and self.config.is_configured

    def build_message(self, contracts: Sequence[ContractRecord]) -> MIMEMultipart:
        msg = MIMEMultipart("alternative")
        msg["Subject"] = build_subject(len(contracts))
        msg["From"] = self.config.from_email
        msg["To"] = ", ".join(self.config.to_emails)
        msg.attach(MIMEText(build_email_body(contracts), "html", "utf-8"))
        return msg

    def send_new_contracts(self, contracts: Sequence[ContractRecord]) -> bool:
        """E-mail the new contracts.

        Returns:
            True if a message was sent, False when there was nothing to send

        Raises:
            NotificationError: If the notifier is not configured or delivery fails
        """
        if not contracts:
            return False

        if not self.is_configured:
            raise NotificationError("E-mail notifier is not configured")

        msg = self.build_message(contracts)
        try:
            call_with_retry(self._deliver, msg, config=self.retry)
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"Failed to send email: {e}", cause=e) from e

        self.log.info(f"Email notification sent to {', '.join(self.config.to_emails)}")
        return True

    def test_connection(self) -> None:
        """Connect and authenticate without sending anything.

        Raises:
            NotificationError: If the server is unreachable or rejects the login
        """
        self.log.info("Testing email configuration...")
        if not self.config.smtp_host:
            raise NotificationError("SMTP host is not configured")

        try:
            with self._open() as server:
                server.noop()
        except (smtplib.SMTPException, OSError) as e:
            raise NotificationError(f"SMTP connection test failed: {e}", cause=e) from e

        self.log.info("Email configuration test successful")

    def _open(self) -> smtplib.SMTP:
        cfg = self.config
        server = self._smtp_factory(cfg.smtp_host, cfg.smtp_port, timeout=cfg.timeout_seconds)
        try:
            server.ehlo()
            if server.has_extn("starttls"):
                server.starttls()
                server.ehlo()
            if cfg.smtp_username:
                server.login(cfg.smtp_username, cfg.smtp_password)
        except BaseException:
            server.close()
            raise
        return server

    def _deliver(self, msg: MIMEMultipart) -> None:
        with self._open() as server:
            server.send_message(msg, self.config.from_email, self.config.to_emails)
