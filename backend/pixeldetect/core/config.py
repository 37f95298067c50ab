from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Settings:
    app_name: str = "pixeldetect"
    storage_root: Path = Path(os.getenv("PIXELDETECT_STORAGE_ROOT", "storage"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Auth
    jwt_secret: str = os.getenv("JWT_SECRET", "dev-secret-change-me")
    jwt_issuer: str = os.getenv("JWT_ISSUER", "pixeldetect")
    jwt_ttl_seconds: int = int(os.getenv("JWT_TTL_SECONDS", "86400"))  # 24h
    login_code_ttl_seconds: int = int(os.getenv("LOGIN_CODE_TTL_SECONDS", "600"))  # 10m

    # Email (passwordless codes)
    email_mode: str = os.getenv("EMAIL_MODE", "console")  # console|smtp
    smtp_host: str = os.getenv("SMTP_HOST", "")
    smtp_port: int = int(os.getenv("SMTP_PORT", "587"))
    smtp_user: str = os.getenv("SMTP_USER", "")
    smtp_pass: str = os.getenv("SMTP_PASS", "")
    smtp_from: str = os.getenv("SMTP_FROM", "no-reply@pixeldetect.local")

    # Analysis
    analyzer_backend: str = os.getenv("ANALYZER_BACKEND", "simulated")
    analysis_delay_seconds: float = float(os.getenv("ANALYSIS_DELAY_SECONDS", "2.5"))
    analysis_timeout_seconds: float = float(os.getenv("ANALYSIS_TIMEOUT_SECONDS", "30"))

    @property
    def analyses_db_path(self) -> Path:
        return self.storage_root / "db" / "analyses.sqlite3"

    @property
    def auth_db_path(self) -> Path:
        return self.storage_root / "db" / "auth.sqlite3"


settings = Settings()
