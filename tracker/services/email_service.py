"""
DOST Project Tracker
Email Service.

Account mail: password-reset codes and account-approval notices.  Messages
go out over SMTP when ``MAIL_SERVER`` is set; otherwise (development,
tests) they are written to the log and reported as delivered.

Delivery never raises into the caller.  ``send`` returns False on an SMTP
or socket failure so the caller can log it and carry on.
"""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from email.utils import formataddr
from string import Template

from flask import current_app

logger = logging.getLogger(__name__)

OFFICE_NAME = "DOST Misamis Oriental"


# ═══════════════════════════════════════════════════════════════════════════
#  Templates  (subject, plain text, HTML; ``$name`` placeholders)
# ═══════════════════════════════════════════════════════════════════════════

_TEMPLATES: dict[str, tuple[str, str, str]] = {
    "password_reset_otp": (
        "Your password reset code",
        "Hi $name,\n\n"
        "Your verification code is $otp. It expires in $ttl_minutes minutes.\n\n"
        "If you did not ask to reset your password you can ignore this message.\n"
        "- $office",
        """
        <div style="font-family: Arial, sans-serif; max-width: 480px; margin: 0 auto; padding: 24px;">
          <h2 style="color: #146184;">Password reset</h2>
          <p>Hi $name, use this code to reset your password.
             It expires in $ttl_minutes minutes.</p>
          <p style="font-size: 32px; font-weight: bold; letter-spacing: 8px; color: #146184;">$otp</p>
          <p style="color: #999; font-size: 12px;">If you did not ask for this, ignore this email.</p>
          <p style="color: #999; font-size: 12px;">$office</p>
        </div>
        """,
    ),
    "account_approved": (
        "Your project tracker account is approved",
        "Hi $name,\n\n"
        "An administrator approved your account. You can now sign in and work on\n"
        "SETUP and CEST projects.\n"
        "- $office",
        """
        <div style="font-family: Arial, sans-serif; max-width: 480px; margin: 0 auto; padding: 24px;">
          <h2 style="color: #146184;">Account approved</h2>
          <p>Hi $name, an administrator approved your account.
             You can now sign in and work on SETUP and CEST projects.</p>
          <p style="color: #999; font-size: 12px;">$office</p>
        </div>
        """,
    ),
}


class EmailService:
    """Template rendering plus SMTP / log-only delivery."""

    @staticmethod
    def is_configured() -> bool:
        return bool(current_app.config.get("MAIL_SERVER"))

    @staticmethod
    def render(template_name: str, context: dict) -> tuple[str, str, str]:
        """Return (subject, text, html) for *template_name*; unknown keys are left as ``$key``."""
        try:
            parts = _TEMPLATES[template_name]
        except KeyError:
            raise KeyError(f"Unknown email template: {template_name}") from None
        values = {"office": OFFICE_NAME, "name": "there", **{k: v for k, v in context.items() if v}}
        return tuple(Template(p).safe_substitute(values) for p in parts)

    @classmethod
    def send(cls, *, to_email: str, to_name: str | None, template_name: str, context: dict) -> bool:
        subject, text, html = cls.render(template_name, {"name": to_name, **context})

        if not cls.is_configured():
            logger.info("Email (log-only): to=%s template=%s", to_email, template_name)
            logger.debug("Email body for %s:\n%s", to_email, text)
            return True

        msg = EmailMessage()
        msg["Subject"] = subject
        msg["From"] = current_app.config.get("MAIL_DEFAULT_SENDER")
        msg["To"] = formataddr((to_name or "", to_email))
        msg.set_content(text)
        msg.add_alternative(html, subtype="html")

        try:
            cls._deliver(msg)
        except (smtplib.SMTPException, OSError) as exc:
            logger.error("Email failed: to=%s template=%s error=%s", to_email, template_name, exc)
            return False
        logger.info("Email sent: to=%s template=%s", to_email, template_name)
        return True

    @classmethod
    def send_otp(cls, *, to_email: str, to_name: str | None, otp: str, ttl_minutes: int) -> bool:
        return cls.send(
            to_email=to_email,
            to_name=to_name,
            template_name="password_reset_otp",
            context={"otp": otp, "ttl_minutes": ttl_minutes},
        )

    @classmethod
    def send_account_approved(cls, *, to_email: str, to_name: str | None) -> bool:
        return cls.send(to_email=to_email, to_name=to_name,
                        template_name="account_approved", context={})

    @staticmethod
    def _deliver(msg: EmailMessage) -> None:
        cfg = current_app.config
        with smtplib.SMTP(cfg["MAIL_SERVER"], cfg.get("MAIL_PORT", 587), timeout=30) as smtp:
            if cfg.get("MAIL_USE_TLS", True):
                smtp.starttls()
            if cfg.get("MAIL_USERNAME") and cfg.get("MAIL_PASSWORD"):
                smtp.login(cfg["MAIL_USERNAME"], cfg["MAIL_PASSWORD"])
            smtp.send_message(msg)
