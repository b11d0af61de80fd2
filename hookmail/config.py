import os
from typing import Optional


def _int(name: str, default: int) -> int:
    raw = os.getenv(name)
    try:
        value = int(raw.strip()) if raw else default
        if value < 0:
            raise ValueError
        return value
    except ValueError:
        # Fallback to default if malformed
        return default


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


def _optional(name: str) -> Optional[str]:
    raw = os.getenv(name)
    if not raw or not raw.strip():
        return None
    return raw.strip()


class Settings:
    def __init__(self) -> None:
        # Host used for the synthetic From address; request host when unset
        self.server_name: Optional[str] = _optional("SERVER_NAME")

        # smtp | mailgun | log
        self.mail_transport: str = os.getenv("MAIL_TRANSPORT", "smtp").strip().lower()
        self.mail_timeout_ms: int = _int("MAIL_TIMEOUT_MS", 10000)

        self.smtp_host: str = os.getenv("SMTP_HOST", "localhost")
        self.smtp_port: int = _int("SMTP_PORT", 25)
        self.smtp_username: Optional[str] = _optional("SMTP_USERNAME")
        self.smtp_password: Optional[str] = _optional("SMTP_PASSWORD")
        self.smtp_starttls: bool = _flag("SMTP_STARTTLS")

        # Mailgun settings (for MAIL_TRANSPORT=mailgun)
        self.mailgun_api_key: Optional[str] = _optional("MAILGUN_API_KEY")
        self.mailgun_domain: str = os.getenv("MAILGUN_DOMAIN", "")
        self.mailgun_base_url: str = os.getenv("MAILGUN_BASE_URL", "https://api.mailgun.net").rstrip("/")

        self.docs_path: Optional[str] = _optional("DOCS_PATH")
        self.log_level: str = os.getenv("LOG_LEVEL", "INFO").strip().upper()

        self.host: str = os.getenv("HOST", "0.0.0.0")
        self.port: int = _int("PORT", 8000)


settings = Settings()
