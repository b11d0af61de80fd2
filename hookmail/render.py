"""
Report rendering.

Turns an ``IncomingRequest`` snapshot into the HTML document that is mailed to
the recipient and the plain-text acknowledgement returned to the caller.
Rendering is pure: no I/O beyond the packaged template, and the same snapshot
and timestamp always give byte-identical output.

The HTML report is a Jinja2 template rendered with autoescaping on, so every
value interpolated from the request is escaped and attacker-controlled
headers or bodies can never change the document structure. Only
``markupsafe.Markup`` values pass through unescaped.
"""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict

from jinja2 import Environment, FileSystemLoader, StrictUndefined, select_autoescape
from markupsafe import Markup, escape

from .models import IncomingRequest, Report


TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
SUBJECT_MARKER = "‼️"
REPORT_TEMPLATE = "report.html"

env = Environment(
    loader=FileSystemLoader(Path(__file__).parent / "templates"),
    autoescape=select_autoescape(["html", "xml"]),
    undefined=StrictUndefined,  # Fail on undefined variables
)


def format_timestamp(moment: datetime) -> str:
    return moment.strftime(TIMESTAMP_FORMAT)


def subject_for(captured_at: str) -> str:
    return f"{SUBJECT_MARKER} Webhook Request Received - {captured_at}"


def _dump(value: Any) -> str:
    return json.dumps(value, indent=4, ensure_ascii=False)


def dump_parameters(snapshot: IncomingRequest) -> str:
    """Stable, indented dump of every structured parameter set of the request."""
    data: Dict[str, Any] = {
        "query": snapshot.query,
        "form": snapshot.form,
        "request": snapshot.merged,
        "files": {
            field: [upload.model_dump() for upload in uploads]
            for field, uploads in snapshot.files.items()
        },
    }
    return _dump(data)


def render_html(snapshot: IncomingRequest, captured_at: str) -> Markup:
    template = env.get_template(REPORT_TEMPLATE)
    return Markup(template.render(
        captured_at=captured_at,
        client=snapshot.client_address,
        method=snapshot.method,
        content_type=snapshot.content_type,
        headers=snapshot.headers,
        body=snapshot.body.decode("utf-8", errors="replace"),
        parameters=dump_parameters(snapshot),
    ))


def render_acknowledgement(snapshot: IncomingRequest, recipient: str) -> str:
    return (
        f"Webhook received and forwarded to: {recipient}\n\n"
        f"Request data:\n{_dump(snapshot.merged)}\n"
    )


def render(snapshot: IncomingRequest, captured_at: str, recipient: str) -> Report:
    return Report(
        captured_at=captured_at,
        html=render_html(snapshot, captured_at),
        text=render_acknowledgement(snapshot, recipient),
    )
