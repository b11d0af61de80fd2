from __future__ import annotations
import logging
import smtplib
import ssl
from email.message import EmailMessage
from typing import Mapping, Protocol

import httpx

from .config import Settings, settings

logger = logging.getLogger(__name__)


class MailTransport(Protocol):
    def send(self, to: str, subject: str, html_body: str, headers: Mapping[str, str]) -> bool:
        ...


def build_message(to: str, subject: str, html_body: str, headers: Mapping[str, str]) -> EmailMessage:
    msg = EmailMessage()
    msg["To"] = to
    msg["Subject"] = subject
    # set_content writes MIME-Version and Content-Type itself
    msg.set_content(html_body, subtype="html", charset="utf-8")
    for name, value in headers.items():
        if name.lower() in ("mime-version", "content-type"):
            continue
        msg[name] = value
    return msg


class SmtpTransport:
    def __init__(
        self,
        host: str,
        port: int,
        timeout_seconds: float,
        username: str | None = None,
        password: str | None = None,
        starttls: bool = False,
    ) -> None:
        self.host = host
        self.port = port
        self.timeout_seconds = timeout_seconds
        self.username = username
        self.password = password
        self.starttls = starttls

    def _connect(self) -> smtplib.SMTP:
        # Implicit TLS for port 465
        if self.port == 465:
            return smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout_seconds,
                                    context=ssl.create_default_context())
        return smtplib.SMTP(self.host, self.port, timeout=self.timeout_seconds)

    def send(self, to: str, subject: str, html_body: str, headers: Mapping[str, str]) -> bool:
        msg = build_message(to, subject, html_body, headers)
        with self._connect() as smtp:
            if self.starttls and self.port != 465:
                smtp.starttls(context=ssl.create_default_context())
            if self.username and self.password:
                smtp.login(self.username, self.password)
            refused = smtp.send_message(msg)
        if refused:
            logger.warning("smtp_recipients_refused", extra={"refused": list(refused)})
        return not refused


class MailgunTransport:
    def __init__(self, api_key: str, domain: str, timeout_seconds: float,
                 base_url: str = "https://api.mailgun.net") -> None:
        self.api_key = api_key
        self.domain = domain
        self.timeout_seconds = timeout_seconds
        self.base_url = base_url.rstrip("/")

    def send(self, to: str, subject: str, html_body: str, headers: Mapping[str, str]) -> bool:
        data = {
            "from": headers.get("From", f"no-reply@{self.domain}"),
            "to": to,
            "subject": subject,
            "html": html_body,
        }
        resp = httpx.post(
            f"{self.base_url}/v3/{self.domain}/messages",
            auth=("api", self.api_key),
            data=data,
            timeout=self.timeout_seconds,
        )
        logger.info("mailgun_response", extra={"status": resp.status_code})
        return resp.is_success


class LogTransport:
    """Writes the message summary to the log instead of sending it."""

    def send(self, to: str, subject: str, html_body: str, headers: Mapping[str, str]) -> bool:
        logger.info("mail_logged", extra={
            "to": to,
            "subject": subject,
            "from": headers.get("From"),
            "html_bytes": len(html_body.encode("utf-8")),
        })
        return True


def create_transport(cfg: Settings) -> MailTransport:
    timeout_seconds = cfg.mail_timeout_ms / 1000
    if cfg.mail_transport == "smtp":
        return SmtpTransport(
            host=cfg.smtp_host,
            port=cfg.smtp_port,
            timeout_seconds=timeout_seconds,
            username=cfg.smtp_username,
            password=cfg.smtp_password,
            starttls=cfg.smtp_starttls,
        )
    if cfg.mail_transport == "mailgun":
        if not cfg.mailgun_api_key or not cfg.mailgun_domain:
            raise ValueError("MAILGUN_API_KEY and MAILGUN_DOMAIN are required for the mailgun transport")
        return MailgunTransport(cfg.mailgun_api_key, cfg.mailgun_domain, timeout_seconds, cfg.mailgun_base_url)
    if cfg.mail_transport == "log":
        logger.warning("mail_transport_log_only", extra={"detail": "reports are logged, not sent"})
        return LogTransport()
    raise ValueError(f"unknown MAIL_TRANSPORT: {cfg.mail_transport!r}")


_transport: MailTransport | None = None


def get_transport() -> MailTransport:
    global _transport
    if _transport is None:
        _transport = create_transport(settings)
    return _transport
