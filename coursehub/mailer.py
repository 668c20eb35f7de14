import logging
import smtplib
from email.message import EmailMessage

from .config import settings

logger = logging.getLogger(__name__)


def send_mail(to: str, subject: str, body: str) -> bool:
    """Send a plain-text mail. Without SMTP settings the message is only logged."""
    if not settings.SMTP_HOST:
        logger.info("SMTP not configured, mail to %s not sent: %s\n%s", to, subject, body)
        return False

    message = EmailMessage()
    message["From"] = settings.MAIL_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=10) as smtp:
            smtp.starttls()
            if settings.SMTP_USER:
                smtp.login(settings.SMTP_USER, settings.SMTP_PASSWORD or "")
            smtp.send_message(message)
    except (smtplib.SMTPException, OSError):
        logger.exception("Failed to send mail to %s", to)
        return False
    return True


def send_verification_email(email: str, username: str, token: str) -> bool:
    link = f"{settings.FRONTEND_URL}/verify-email?token={token}"
    body = (f"Hi {username},\n\nPlease confirm your email address by opening the link below. "
            f"It expires in {settings.VERIFICATION_TOKEN_HOURS} hours.\n\n{link}\n")
    return send_mail(email, "Verify your email", body)


def send_password_reset_email(email: str, username: str, token: str) -> bool:
    link = f"{settings.FRONTEND_URL}/reset-password?token={token}"
    body = (f"Hi {username},\n\nA password reset was requested for your account. "
            f"The link below is valid for {settings.RESET_TOKEN_HOURS} hour(s).\n\n{link}\n")
    return send_mail(email, "Reset your password", body)
