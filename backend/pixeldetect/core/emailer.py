from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage

from .config import settings

logger = logging.getLogger(__name__)


def send_login_code(email: str, code: str) -> None:
    """Deliver a login code.

    EMAIL_MODE=console logs the code (dev).
    EMAIL_MODE=smtp sends via configured SMTP.
    """
    mode = settings.email_mode.lower()
    if mode == "console":
        logger.info("[EMAIL_CODE] to=%s code=%s", email, code)
        return

    if mode != "smtp":
        raise RuntimeError(f"Unknown EMAIL_MODE: {settings.email_mode}")

    if not settings.smtp_host or not settings.smtp_user or not settings.smtp_pass:
        raise RuntimeError("SMTP is not configured (SMTP_HOST/SMTP_USER/SMTP_PASS)")

    msg = EmailMessage()
    msg["Subject"] = "Your PixelDetect login code"
    msg["From"] = settings.smtp_from
    msg["To"] = email
    msg.set_content(
        f"Your PixelDetect login code is: {code}\n\n"
        f"It expires in {settings.login_code_ttl_seconds // 60} minutes. "
        "If you did not ask for it, you can ignore this email."
    )

    with smtplib.SMTP(settings.smtp_host, settings.smtp_port) as s:
        s.starttls()
        s.login(settings.smtp_user, settings.smtp_pass)
        s.send_message(msg)
    logger.info("Login code sent to %s", email)
