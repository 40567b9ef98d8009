"""Email copy of alerts via SMTP.

Sends the alert text to the product owner's own address.  Supports
STARTTLS (587) or SSL (465).  Best-effort: failures are logged and never
reach the caller.
"""

from __future__ import annotations

import html as _html
import logging
import smtplib
import ssl
from email.message import EmailMessage

from . import config

logger = logging.getLogger(__name__)


def _build_bodies(subject: str, message: str) -> tuple[str, str]:
    """Return (plain_text, html) bodies."""
    plain = f"{subject}\n\n{message}\n"
    html = (
        "<html>"
        "<body>"
        "<h3>{subject}</h3>"
        "<p>{message}</p>"
        "</body>"
        "</html>"
    ).format(subject=_html.escape(subject), message=_html.escape(message))
    return plain, html


def _send(msg: EmailMessage) -> None:
    if not (config.EMAIL_USERNAME and config.EMAIL_PASSWORD and config.EMAIL_FROM):
        logger.error("Email config incomplete; set EMAIL_USERNAME, EMAIL_PASSWORD, EMAIL_FROM")
        return

    host, port = config.EMAIL_SMTP_HOST, int(config.EMAIL_SMTP_PORT)
    try:
        if config.EMAIL_USE_TLS and port == 587:
            with smtplib.SMTP(host, port, timeout=20) as s:
                s.ehlo()
                s.starttls(context=ssl.create_default_context())
                s.login(config.EMAIL_USERNAME, config.EMAIL_PASSWORD)
                s.send_message(msg)
        else:
            with smtplib.SMTP_SSL(host, port, context=ssl.create_default_context(), timeout=20) as s:
                s.login(config.EMAIL_USERNAME, config.EMAIL_PASSWORD)
                s.send_message(msg)
        logger.info("Email sent to %s (subject=%s)", msg.get("To"), msg.get("Subject"))
    except Exception:
        logger.exception("Failed to send email")


def send_alert(to_address: str, subject: str, message: str) -> None:
    if not to_address:
        return

    plain, html = _build_bodies(subject, message)

    msg = EmailMessage()
    msg["Subject"] = f"{config.EMAIL_SUBJECT_PREFIX} {subject}".strip()
    msg["From"] = config.EMAIL_FROM or (config.EMAIL_USERNAME or "")
    msg["To"] = to_address
    msg.set_content(plain)
    msg.add_alternative(html, subtype="html")
    _send(msg)


__all__ = ["send_alert"]
