"""Tests for the e-mail notifier."""
import smtplib

import pytest

from conftest import DOC_URL, SMTPRecorder, make_contract
from contractwatch.core.config.models import NotifierConfig
from contractwatch.core.retries import RetryConfig
from contractwatch.notify.mailer import (
    FOOTER,
    EmailNotifier,
    NotificationError,
    build_email_body,
    build_subject,
)


def _notifier(config, recorder, attempts=3):
    return EmailNotifier(config, retry=RetryConfig(
        max_attempts=attempts, min_wait=0, max_wait=0, multiplier=0,
        retry_exceptions=(smtplib.SMTPServerDisconnected,),
    ), smtp_factory=recorder)


def test_subject_counts_contracts():
    """The subject carries the number of new contracts."""
    assert build_subject(3) == "New LED Screen Contracts Found (3)"


def test_body_lists_every_contract():
    """Each contract gets its own card with details and links."""
    contracts = [
        make_contract("10892/2024", link="https://x/detalle", pliego_link=DOC_URL.format("P1")),
        make_contract("13/25", contracting_body="Diputación de Cádiz"),
    ]
    body = build_email_body(contracts)

    assert body.count('class="contract"') == 2
    assert "10892/2024" in body
    assert "Diputación de Cádiz" in body
    assert 'href="https://x/detalle"' in body
    assert ">Pliego<" in body
    assert ">Anuncio<" not in body
    assert FOOTER in body


def test_body_escapes_markup():
    """Portal text is escaped before it goes into the HTML body."""
    body = build_email_body([make_contract(description="Pantallas <b>LED</b> & soportes")])

    assert "&lt;b&gt;LED&lt;/b&gt; &amp; soportes" in body
    assert "<b>LED</b>" not in body


def test_send_delivers_one_message(notifier_config):
    """One message goes to every recipient over STARTTLS."""
    recorder = SMTPRecorder()
    sent = _notifier(notifier_config, recorder).send_new_contracts([make_contract(), make_contract("13/25")])

    assert sent is True
    assert len(recorder.sent) == 1
    msg, from_addr, to_addrs = recorder.sent[0]
    assert msg["Subject"] == "New LED Screen Contracts Found (2)"
    assert from_addr == "monitor@example.test"
    assert to_addrs == ["ops@example.test", "sales@example.test"]
    assert recorder.starttls_calls == 1
    assert recorder.logins == [("monitor", "secret")]
    assert recorder.connects[0] == ("smtp.example.test", 587, notifier_config.timeout_seconds)


def test_send_nothing_for_empty_batch(notifier_config):
    """No connection is made when there are no new contracts."""
    recorder = SMTPRecorder()

    assert _notifier(notifier_config, recorder).send_new_contracts([]) is False
    assert recorder.connects == []


def test_send_requires_configuration():
    """An unconfigured notifier refuses to send."""
    config = NotifierConfig(smtp_host="", from_email="", to_emails=[])

    with pytest.raises(NotificationError):
        _notifier(config, SMTPRecorder()).send_new_contracts([make_contract()])


def test_disabled_notifier_is_not_configured(notifier_config):
    """A disabled notifier reports itself as not configured."""
    config = notifier_config.model_copy(update={"enabled": False})
    assert not EmailNotifier(config).is_configured


def test_transient_failure_is_retried(notifier_config):
    """Dropped connections are retried until delivery succeeds."""
    recorder = SMTPRecorder(fail_connect=2)

    assert _notifier(notifier_config, recorder).send_new_contracts([make_contract()])
    assert len(recorder.connects) == 3
    assert len(recorder.sent) == 1


def test_retries_exhausted(notifier_config):
    """Delivery fails once every attempt has been used."""
    recorder = SMTPRecorder(fail_connect=5)

    with pytest.raises(NotificationError) as exc_info:
        _notifier(notifier_config, recorder, attempts=2).send_new_contracts([make_contract()])

    assert isinstance(exc_info.value.cause, smtplib.SMTPServerDisconnected)
    assert len(recorder.connects) == 2


def test_authentication_failure_is_not_retried(notifier_config):
    """Rejected credentials fail on the first attempt."""
    recorder = SMTPRecorder()
    recorder.login_error = smtplib.SMTPAuthenticationError(535, b"5.7.8 Bad credentials")

    with pytest.raises(NotificationError):
        _notifier(notifier_config, recorder).send_new_contracts([make_contract()])

    assert len(recorder.connects) == 1
    assert recorder.closed == 1


def test_no_starttls_when_not_offered(notifier_config):
    """STARTTLS is only issued when the server advertises it."""
    recorder = SMTPRecorder(extensions=())
    _notifier(notifier_config, recorder).send_new_contracts([make_contract()])

    assert recorder.starttls_calls == 0


def test_connection_check(notifier_config):
    """The connection check logs in without sending mail."""
    recorder = SMTPRecorder()
    _notifier(notifier_config, recorder).test_connection()

    assert recorder.noops == 1
    assert recorder.sent == []


def test_connection_check_failure(notifier_config):
    """An unreachable server fails the connection check."""
    recorder = SMTPRecorder(fail_connect=1)

    with pytest.raises(NotificationError):
        _notifier(notifier_config, recorder, attempts=1).test_connection()
