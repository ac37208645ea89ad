"""
Outbound e-mail (password reset) over SMTP.
"""
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from . import config
from .logger import logger


def _reset_html(reset_link: str) -> str:
    return f"""
        <p>Olá,</p>
        <p>Você solicitou a redefinição da sua senha.</p>
        <p>Clique abaixo para definir uma nova senha (válido por {config.RESET_TOKEN_EXPIRE_MINUTES} minutos):</p>
        <p><a href="{reset_link}" style="color:#352f91;font-weight:bold;">Redefinir senha</a></p>
        <p>Se você não solicitou, ignore este e-mail.</p>
    """


def reset_link_for(token: str) -> str:
    return f"{config.FRONTEND_URL}/reset-password?token={token}"


def send_password_reset(to_email: str, token: str) -> bool:
    """
    Send the reset link. Returns False when SMTP is not configured or the
    server refuses; the caller's response does not depend on it.
    """
    if not config.SMTP_USER or not config.SMTP_PASSWORD:
        logger.warning(f"SMTP_USER/SMTP_PASSWORD not set; password reset e-mail to {to_email} not sent")
        return False

    reset_link = reset_link_for(token)
    msg = MIMEMultipart("alternative")
    msg["Subject"] = f"Redefinição de senha - {config.SMTP_FROM_NAME}"
    msg["From"] = f"{config.SMTP_FROM_NAME} <{config.SMTP_FROM_EMAIL}>"
    msg["To"] = to_email
    msg.attach(MIMEText(_reset_html(reset_link), "html", "utf-8"))

    try:
        with smtplib.SMTP(config.SMTP_HOST, config.SMTP_PORT, timeout=30) as server:
            if config.SMTP_USE_TLS:
                server.starttls()
            server.login(config.SMTP_USER, config.SMTP_PASSWORD)
            server.sendmail(config.SMTP_FROM_EMAIL, [to_email], msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.error(f"Failed to send reset e-mail to {to_email}: {e}")
        return False

    logger.info(f"Reset e-mail sent to {to_email}")
    return True
