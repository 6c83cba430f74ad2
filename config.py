import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

BASE_DIR = Path(__file__).resolve().parent


@dataclass(frozen=True)
class ServerConfig:
    admin_secret: str
    public_dir: Path
    dist_dir: Path
    site_url: str
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-2.0-flash"
    stripe_secret_key: Optional[str] = None
    stripe_webhook_secret: Optional[str] = None
    stripe_currency: str = "usd"
    resend_api_key: Optional[str] = None
    mail_from: str = "EventForge <bookings@resend.dev>"

    @property
    def uploads_dir(self) -> Path:
        return self.public_dir / "uploads"

    @property
    def manifest_path(self) -> Path:
        return self.public_dir / "events.json"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        return cls(
            admin_secret=os.getenv("ADMIN_SECRET", "secret"),
            public_dir=Path(os.getenv("PUBLIC_DIR", str(BASE_DIR / "public"))),
            dist_dir=Path(os.getenv("DIST_DIR", str(BASE_DIR / "dist"))),
            site_url=os.getenv("SITE_URL", "http://localhost:3000").rstrip("/"),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.0-flash"),
            stripe_secret_key=os.getenv("STRIPE_SECRET_KEY") or None,
            stripe_webhook_secret=os.getenv("STRIPE_WEBHOOK_SECRET") or None,
            stripe_currency=os.getenv("STRIPE_CURRENCY", "usd").lower(),
            resend_api_key=os.getenv("RESEND_API_KEY") or None,
            mail_from=os.getenv("MAIL_FROM", "EventForge <bookings@resend.dev>"),
        )


@dataclass(frozen=True)
class ClientConfig:
    api_url: str
    admin_secret: str
    database_url: str

    @classmethod
    def from_env(cls) -> "ClientConfig":
        return cls(
            api_url=os.getenv("EVENTFORGE_API_URL", "http://localhost:3000").rstrip("/"),
            admin_secret=os.getenv("ADMIN_SECRET", "secret"),
            database_url=os.getenv("EVENTFORGE_DATABASE_URL", "sqlite:///./eventforge.db"),
        )
