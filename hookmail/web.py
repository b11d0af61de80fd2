from __future__ import annotations
import logging
from datetime import datetime
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import HTMLResponse, PlainTextResponse, Response

from .address import InvalidAddress, NoAddressProvided, resolve
from .config import settings
from .dispatch import deliver, sender_host
from .logging import configure_json_logging
from .mailer import get_transport
from .models import DeliveryOutcome, Report
from .render import format_timestamp, render
from .snapshot import capture, raw_target


configure_json_logging(settings.log_level)
logger = logging.getLogger(__name__)
app = FastAPI()

DEFAULT_DOCS_PATH = Path(__file__).parent / "static" / "docs.html"


def load_docs() -> str:
    path = Path(settings.docs_path) if settings.docs_path else DEFAULT_DOCS_PATH
    return path.read_text(encoding="utf-8")


@app.get("/health")
async def health():
    return {"status": "ok"}


def dispatch_report(report: Report, recipient: str, host: str) -> DeliveryOutcome:
    try:
        transport = get_transport()
    except ValueError as e:
        # Misconfigured transport; the caller is still acknowledged
        logger.error("delivery_failed", extra={"to": recipient, "reason": str(e)})
        return DeliveryOutcome(sent=False, recipient=recipient, reason=str(e))
    return deliver(report, recipient, host, transport)


async def relay_webhook(request: Request) -> Response:
    try:
        recipient = resolve(raw_target(request))
    except NoAddressProvided:
        return HTMLResponse(load_docs())
    except InvalidAddress as e:
        logger.info("invalid_address", extra={"candidate": e.candidate})
        return PlainTextResponse(str(e), status_code=status.HTTP_400_BAD_REQUEST)

    snapshot = await capture(request)
    report = render(snapshot, format_timestamp(datetime.now()), recipient)

    host = sender_host(request.url.hostname, settings.server_name)
    # Blocking transport call, bounded by MAIL_TIMEOUT_MS; outcome is only logged
    await run_in_threadpool(dispatch_report, report, recipient, host)

    return PlainTextResponse(report.text, media_type="text/plain; charset=UTF-8")


# Registered without a method list so every verb, standard or not, is relayed
app.add_route("/{target:path}", relay_webhook)
