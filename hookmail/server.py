from __future__ import annotations
import uvicorn

from .config import settings


def main() -> None:
    # Logging is configured by the app module itself; keep uvicorn from replacing it
    uvicorn.run("hookmail.web:app", host=settings.host, port=settings.port, log_config=None)


if __name__ == "__main__":
    main()
