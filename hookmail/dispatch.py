from __future__ import annotations
import logging
from typing import Dict, Optional

from .mailer import MailTransport
from .models import DeliveryOutcome, Report
from .render import subject_for

logger = logging.getLogger(__name__)

DEFAULT_HOST = "localhost"


def sender_host(request_host: Optional[str], configured: Optional[str] = None) -> str:
    host = configured or request_host
    if not host:
        return DEFAULT_HOST
    if host.startswith("["):
        # Bracketed IPv6 host, possibly with a port
        host = host[1:].split("]", 1)[0]
    elif host.count(":") == 1:
        return host.rsplit(":", 1)[0]
    if ":" in host:
        # IPv6 address literal as a mail domain
        return f"[IPv6:{host.removeprefix('IPv6:')}]"
    return host


def build_headers(host: str) -> Dict[str, str]:
    return {
        "MIME-Version": "1.0",
        "Content-type": "text/html; charset=UTF-8",
        "From": f"no-reply@{host}",
    }


def deliver(report: Report, to: str, host: str, transport: MailTransport) -> DeliveryOutcome:
    """
    Hand the rendered report to the mail transport, once.

    The transport's answer is advisory: a refusal or an exception is logged
    and returned as a failed outcome, never raised.
    """
    subject = subject_for(report.captured_at)
    reason: Optional[str] = None
    try:
        sent = bool(transport.send(to, subject, report.html, build_headers(host)))
        if not sent:
            reason = "mail transport reported failure"
    except Exception as e:
        sent = False
        reason = f"{type(e).__name__}: {e}"

    outcome = DeliveryOutcome(sent=sent, recipient=to, reason=reason)
    if sent:
        logger.info("delivery_sent", extra={"to": to, "subject": subject})
    else:
        logger.error("delivery_failed", extra={"to": to, "reason": reason})
    return outcome
