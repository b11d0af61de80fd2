"""
Unit tests for the mail transports.
"""
import logging
from unittest.mock import MagicMock, patch

import httpx
import pytest

from hookmail.config import Settings
from hookmail.mailer import (
    LogTransport,
    MailgunTransport,
    SmtpTransport,
    build_message,
    create_transport,
)


HEADERS = {
    "MIME-Version": "1.0",
    "Content-type": "text/html; charset=UTF-8",
    "From": "no-reply@relay.example.com",
}


def test_build_message_is_html_with_from_header():
    msg = build_message("user@example.com", "Subject ‼️", "<p>hi</p>", HEADERS)
    assert msg["To"] == "user@example.com"
    assert msg["From"] == "no-reply@relay.example.com"
    assert msg["MIME-Version"] == "1.0"
    assert msg.get_content_type() == "text/html"
    assert msg.get_content_charset() == "utf-8"
    assert "<p>hi</p>" in msg.get_content()
    assert len(msg.get_all("Content-Type")) == 1


class TestSmtpTransport:
    def test_sends_message_with_timeout(self):
        with patch("hookmail.mailer.smtplib.SMTP") as smtp_cls:
            smtp = smtp_cls.return_value.__enter__.return_value
            smtp.send_message.return_value = {}
            transport = SmtpTransport("mx.example.com", 25, timeout_seconds=5.0)

            assert transport.send("user@example.com", "s", "<p>x</p>", HEADERS) is True

        smtp_cls.assert_called_once_with("mx.example.com", 25, timeout=5.0)
        smtp.starttls.assert_not_called()
        smtp.login.assert_not_called()
        sent = smtp.send_message.call_args[0][0]
        assert sent["To"] == "user@example.com"

    def test_starttls_and_login(self):
        with patch("hookmail.mailer.smtplib.SMTP") as smtp_cls:
            smtp = smtp_cls.return_value.__enter__.return_value
            smtp.send_message.return_value = {}
            transport = SmtpTransport("mx.example.com", 587, 5.0, username="u", password="p", starttls=True)
            transport.send("user@example.com", "s", "<p>x</p>", HEADERS)

        smtp.starttls.assert_called_once()
        smtp.login.assert_called_once_with("u", "p")

    def test_refused_recipient_reports_failure(self):
        with patch("hookmail.mailer.smtplib.SMTP") as smtp_cls:
            smtp = smtp_cls.return_value.__enter__.return_value
            smtp.send_message.return_value = {"user@example.com": (550, b"no such user")}
            transport = SmtpTransport("mx.example.com", 25, 5.0)

            assert transport.send("user@example.com", "s", "<p>x</p>", HEADERS) is False

    def test_port_465_uses_implicit_tls(self):
        with patch("hookmail.mailer.smtplib.SMTP_SSL") as smtp_cls:
            smtp = smtp_cls.return_value.__enter__.return_value
            smtp.send_message.return_value = {}
            SmtpTransport("mx.example.com", 465, 5.0, starttls=True).send("user@example.com", "s", "x", HEADERS)

        assert smtp_cls.call_args[0] == ("mx.example.com", 465)
        smtp.starttls.assert_not_called()


class TestMailgunTransport:
    def test_posts_to_messages_endpoint(self):
        response = MagicMock(status_code=200, is_success=True)
        with patch("hookmail.mailer.httpx.post", return_value=response) as post:
            transport = MailgunTransport("key-123", "mg.example.com", 5.0)
            assert transport.send("user@example.com", "subj", "<p>x</p>", HEADERS) is True

        post.assert_called_once_with(
            "https://api.mailgun.net/v3/mg.example.com/messages",
            auth=("api", "key-123"),
            data={
                "from": "no-reply@relay.example.com",
                "to": "user@example.com",
                "subject": "subj",
                "html": "<p>x</p>",
            },
            timeout=5.0,
        )

    def test_error_status_reports_failure(self):
        response = MagicMock(status_code=401, is_success=False)
        with patch("hookmail.mailer.httpx.post", return_value=response):
            transport = MailgunTransport("bad", "mg.example.com", 5.0)
            assert transport.send("user@example.com", "subj", "x", HEADERS) is False

    def test_timeout_propagates_to_caller(self):
        with patch("hookmail.mailer.httpx.post", side_effect=httpx.ConnectTimeout("slow")):
            transport = MailgunTransport("key", "mg.example.com", 0.1)
            with pytest.raises(httpx.ConnectTimeout):
                transport.send("user@example.com", "subj", "x", HEADERS)


def test_log_transport_logs_and_succeeds(caplog):
    with caplog.at_level(logging.INFO, logger="hookmail.mailer"):
        assert LogTransport().send("user@example.com", "subj", "<p>x</p>", HEADERS) is True
    record = next(r for r in caplog.records if r.getMessage() == "mail_logged")
    assert record.to == "user@example.com"


class TestCreateTransport:
    def test_default_is_local_smtp(self, monkeypatch):
        for name in ("MAIL_TRANSPORT", "SMTP_HOST", "SMTP_PORT"):
            monkeypatch.delenv(name, raising=False)
        transport = create_transport(Settings())
        assert isinstance(transport, SmtpTransport)
        assert (transport.host, transport.port) == ("localhost", 25)

    def test_log_transport_warns_when_selected(self, monkeypatch, caplog):
        monkeypatch.setenv("MAIL_TRANSPORT", "log")
        with caplog.at_level(logging.WARNING, logger="hookmail.mailer"):
            assert isinstance(create_transport(Settings()), LogTransport)
        assert any(r.getMessage() == "mail_transport_log_only" for r in caplog.records)

    def test_smtp_from_environment(self, monkeypatch):
        monkeypatch.setenv("MAIL_TRANSPORT", "smtp")
        monkeypatch.setenv("SMTP_HOST", "mx.example.com")
        monkeypatch.setenv("SMTP_PORT", "2525")
        monkeypatch.setenv("MAIL_TIMEOUT_MS", "2500")
        transport = create_transport(Settings())
        assert isinstance(transport, SmtpTransport)
        assert (transport.host, transport.port, transport.timeout_seconds) == ("mx.example.com", 2525, 2.5)

    def test_mailgun_requires_credentials(self, monkeypatch):
        monkeypatch.setenv("MAIL_TRANSPORT", "mailgun")
        monkeypatch.delenv("MAILGUN_API_KEY", raising=False)
        with pytest.raises(ValueError):
            create_transport(Settings())

    def test_unknown_transport(self, monkeypatch):
        monkeypatch.setenv("MAIL_TRANSPORT", "pigeon")
        with pytest.raises(ValueError):
            create_transport(Settings())

    def test_malformed_number_falls_back_to_default(self, monkeypatch):
        monkeypatch.setenv("SMTP_PORT", "twenty-five")
        assert Settings().smtp_port == 25
