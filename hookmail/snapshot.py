from __future__ import annotations
import logging
from typing import Dict, List, Tuple

from starlette.datastructures import UploadFile
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.formparsers import MultiPartException
from starlette.requests import Request

from .models import IncomingRequest, UploadedFile

logger = logging.getLogger(__name__)

FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


def raw_target(request: Request) -> str:
    """Request path exactly as sent by the client, still percent-encoded."""
    raw = request.scope.get("raw_path")
    if raw:
        return raw.decode("utf-8", errors="replace")
    return request.scope.get("path", "")


def canonical_header_name(name: str) -> str:
    # ASGI servers lower-case header names; present them as Word-Word
    return "-".join(part.capitalize() for part in name.split("-"))


def _media_type(content_type: str) -> str:
    return content_type.split(";", 1)[0].strip().lower()


def _multi(items: List[Tuple[str, str]]) -> Dict[str, List[str]]:
    result: Dict[str, List[str]] = {}
    for key, value in items:
        result.setdefault(key, []).append(value)
    return result


def _describe_upload(upload: UploadFile) -> UploadedFile:
    size = upload.size
    if size is None:
        upload.file.seek(0, 2)
        size = upload.file.tell()
    name = getattr(upload.file, "name", None)
    if isinstance(name, str):
        storage = name
    elif isinstance(name, int):
        storage = f"fd:{name}"
    else:
        storage = "memory"
    return UploadedFile(
        filename=upload.filename or "",
        size=size,
        content_type=upload.content_type or "N/A",
        storage=storage,
    )


async def _read_form(request: Request) -> Tuple[Dict[str, List[str]], Dict[str, List[UploadedFile]]]:
    fields: List[Tuple[str, str]] = []
    files: Dict[str, List[UploadedFile]] = {}
    try:
        form = await request.form()
    except (MultiPartException, StarletteHTTPException, ValueError) as e:
        logger.warning("form_parse_failed", extra={"error": str(e)})
        return {}, {}
    try:
        for key, value in form.multi_items():
            if isinstance(value, UploadFile):
                files.setdefault(key, []).append(_describe_upload(value))
            else:
                fields.append((key, value))
    finally:
        # Release spooled upload files before the request completes
        await form.close()
    return _multi(fields), files


async def capture(request: Request) -> IncomingRequest:
    # Buffered once; Starlette replays this buffer for any form parsing below
    body = await request.body()

    headers = [
        (canonical_header_name(key.decode("latin-1")), value.decode("latin-1"))
        for key, value in request.scope.get("headers", [])
    ]
    content_type = request.headers.get("content-type") or "N/A"
    client = request.client

    query = _multi(list(request.query_params.multi_items()))
    form: Dict[str, List[str]] = {}
    files: Dict[str, List[UploadedFile]] = {}
    if _media_type(content_type) in FORM_CONTENT_TYPES:
        form, files = await _read_form(request)

    merged = dict(query)
    merged.update(form)

    snapshot = IncomingRequest(
        method=request.method or "Unknown",
        path=raw_target(request),
        headers=headers,
        content_type=content_type,
        client_address=(client.host if client and client.host else "Unknown"),
        body=body,
        query=query,
        form=form,
        merged=merged,
        files=files,
    )
    logger.info("request_captured", extra={
        "method": snapshot.method,
        "client": snapshot.client_address,
        "content_type": snapshot.content_type,
        "body_bytes": len(body),
    })
    return snapshot
