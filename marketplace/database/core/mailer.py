"""
Transactional email over SMTP (STARTTLS).

When ``settings.EMAIL_ENABLED`` is false the message is logged instead of
sent, which is how development and test environments run.
"""

import logging
import smtplib
from email.mime.text import MIMEText

from marketplace.database.config.config import settings

logger = logging.getLogger("uvicorn")


def send_email(to: str, subject: str, body: str) -> None:
    """
    Send a plain-text email.

    Parameters
    ----------
    to : str
        Recipient email address.
    subject : str
        Subject line.
    body : str
        Plain-text body.

    Notes
    -----
    - Uses `settings.SENDER_EMAIL` and `settings.APP_PASSWORD` for SMTP auth.
    - Exceptions are propagated to the caller.
    """
    if not settings.EMAIL_ENABLED:
        logger.info(f"Email disabled; skipping '{subject}' to {to}")
        return

    sender_email = settings.SENDER_EMAIL
    msg = MIMEText(body)
    msg["Subject"] = subject
    msg["From"] = sender_email
    msg["To"] = to

    with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT) as server:
        server.starttls()
        server.login(sender_email, settings.APP_PASSWORD)
        server.sendmail(sender_email, to, msg.as_string())


def send_verification_email(email: str, token: str) -> None:
    link = f"{settings.FRONTEND_URL}/verify-email/{token}"
    send_email(email, "Verify your email", f"Confirm your email address by opening: {link}\nThe link expires in 24 hours.")


def send_password_reset_email(email: str, token: str) -> None:
    link = f"{settings.FRONTEND_URL}/reset-password/{token}"
    send_email(email, "Password reset", f"Reset your password by opening: {link}\nThe link expires in 1 hour.")


def send_order_confirmation(email: str, orders: list) -> None:
    """Summarize every per-supplier order created by one checkout."""
    lines = ["Thank you for your order.", ""]
    for order in orders:
        lines.append(f"{order['order_no']}: {len(order['items'])} item(s), total {order['total']:.2f}")
    send_email(email, "Order confirmation", "\n".join(lines))


def send_recovery_email_verification(email: str, token: str) -> None:
    link = f"{settings.FRONTEND_URL}/verify-recovery-email/{token}"
    send_email(email, "Recovery Email Verification", f"Verify your recovery email by opening: {link}\nThe link expires in 24 hours.")


def send_support_notification(kind: str, fullname: str, email: str, subject: str, message: str) -> None:
    """Forward a contact, feedback or support submission to the team inbox."""
    to = settings.SUPPORT_EMAIL if kind == "support" else settings.ADMIN_EMAIL
    body = f"From: {fullname} ({email})\nSubject: {subject or '-'}\n\n{message}"
    send_email(to, f"New {kind} message: {subject}" if subject else f"New {kind} message", body)


def send_support_receipt(email: str, fullname: str, subject: str, ticket_number=None) -> None:
    """Acknowledge a submission to its sender."""
    lines = [f"Dear {fullname},", ""]
    if ticket_number:
        lines.append(f'Your support request "{subject}" was received. Your ticket number is {ticket_number}.')
        title = f"Your Support Request - {ticket_number}"
    else:
        lines.append("We have received your message and will get back to you shortly.")
        title = "Your message has been received"
    send_email(email, title, "\n".join(lines))
