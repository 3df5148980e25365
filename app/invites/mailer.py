"""
Outbound email over SMTP.

Sending is optional: when SMTP_SERVER is not configured, `send_email` reports
failure with a clear reason and callers record it instead of raising.
"""

from __future__ import annotations

import logging
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr

logger = logging.getLogger(__name__)


def smtp_configured(config: dict) -> bool:
    return bool((config.get("SMTP_SERVER") or "").strip() and (config.get("SMTP_FROM_EMAIL") or "").strip())


def send_email(
    config: dict,
    *,
    to_email: str,
    to_name: str | None,
    subject: str,
    text_body: str,
    html_body: str | None = None,
) -> tuple[bool, str]:
    """Send one message. Returns (ok, detail)."""
    if not to_email:
        return False, "missing recipient"
    if not smtp_configured(config):
        return False, "SMTP not configured"

    msg = MIMEMultipart("alternative")
    msg["From"] = formataddr((config.get("SMTP_FROM_NAME") or "", config["SMTP_FROM_EMAIL"]))
    msg["To"] = formataddr((to_name or "", to_email))
    msg["Subject"] = subject
    msg.attach(MIMEText(text_body, "plain", "utf-8"))
    if html_body:
        msg.attach(MIMEText(html_body, "html", "utf-8"))

    server = config["SMTP_SERVER"]
    try:
        username = config.get("SMTP_USERNAME") or ""
        password = config.get("SMTP_PASSWORD") or ""
        with smtplib.SMTP(server, int(config.get("SMTP_PORT") or 587), timeout=30) as s:
            if config.get("SMTP_USE_TLS"):
                s.starttls()
            if username:
                s.login(username, password)
            s.send_message(msg)
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("Email to %s failed: %s", to_email, e)
        return False, f"error: {e}"

    logger.info("Email sent to %s (subject=%r)", to_email, subject)
    return True, "sent"
