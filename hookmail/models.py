from typing import Dict, List, Optional, Tuple
from pydantic import BaseModel, ConfigDict


class UploadedFile(BaseModel):
    model_config = ConfigDict(frozen=True)

    filename: str
    size: int
    content_type: str
    storage: str


class IncomingRequest(BaseModel):
    """Immutable snapshot of one HTTP request, built once by the snapshotter."""

    model_config = ConfigDict(frozen=True)

    method: str = "Unknown"
    path: str = "/"
    headers: List[Tuple[str, str]] = []
    content_type: str = "N/A"
    client_address: str = "Unknown"
    body: bytes = b""
    query: Dict[str, List[str]] = {}
    form: Dict[str, List[str]] = {}
    merged: Dict[str, List[str]] = {}
    files: Dict[str, List[UploadedFile]] = {}

    def header(self, name: str) -> Optional[str]:
        wanted = name.lower()
        for key, value in self.headers:
            if key.lower() == wanted:
                return value
        return None


class Report(BaseModel):
    model_config = ConfigDict(frozen=True)

    captured_at: str
    html: str
    text: str


class DeliveryOutcome(BaseModel):
    sent: bool
    recipient: str
    reason: Optional[str] = None
