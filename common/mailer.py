"""
EShop - Email Sending
======================
Plain-text email over SMTP. When EMAIL_HOST is not configured, messages are
logged instead of sent (local development).
"""

import logging
import smtplib
from email.message import EmailMessage

from config.settings import (
    EMAIL_HOST, EMAIL_PORT, EMAIL_USER, EMAIL_PASSWORD, EMAIL_FROM,
)
from common.exceptions import EmailDeliveryError

logger = logging.getLogger("eshop.mailer")


def send_email(to: str, subject: str, message: str) -> None:
    if not EMAIL_HOST:
        logger.info(f"[DEV EMAIL] To: {to} | Subject: {subject}\n{message}")
        return

    msg = EmailMessage()
    msg["From"] = EMAIL_FROM
    msg["To"] = to
    msg["Subject"] = subject
    msg.set_content(message)

    try:
        with smtplib.SMTP(EMAIL_HOST, EMAIL_PORT, timeout=15) as smtp:
            if EMAIL_PORT == 587:
                smtp.starttls()
            if EMAIL_USER:
                smtp.login(EMAIL_USER, EMAIL_PASSWORD)
            smtp.send_message(msg)
        logger.info(f"Email sent to {to}: {subject}")
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Email to {to} failed: {e}")
        raise EmailDeliveryError("There was an error sending the email. Try again later.")
