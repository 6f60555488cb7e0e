"""Composing and sending system emails over SMTP."""

from __future__ import annotations

import logging
import smtplib
from email.message import EmailMessage
from html import escape

from intranet.core.config import settings

logger = logging.getLogger(__name__)


def _wrap_email_html(*, title: str, intro: str, content: str, footer: str) -> str:
    return f"""\
<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>{escape(title)}</title>
  </head>
  <body style="margin:0;padding:24px 12px;background:#f3f6f8;font-family:Arial,sans-serif;color:#0f172a;">
    <div style="max-width:620px;margin:0 auto;background:#ffffff;border-radius:14px;border:1px solid #e2e8f0;">
      <div style="padding:20px 24px;background:#3b82f6;color:#ffffff;border-radius:14px 14px 0 0;">
        <h1 style="margin:0;font-size:20px;">{escape(title)}</h1>
      </div>
      <div style="padding:24px;">
        <p style="margin:0 0 14px;font-size:15px;line-height:1.6;">{escape(intro)}</p>
        {content}
      </div>
      <div style="padding:16px 24px;background:#f8fafc;border-top:1px solid #e2e8f0;">
        <p style="margin:0;font-size:12px;color:#475569;">{escape(footer)}</p>
      </div>
    </div>
  </body>
</html>
"""


def _cta_button(label: str, href: str) -> str:
    return (
        '<p style="margin:20px 0;">'
        f'<a href="{escape(href, quote=True)}" '
        'style="display:inline-block;background:#3b82f6;color:#ffffff;text-decoration:none;'
        'padding:12px 18px;border-radius:8px;font-weight:600;font-size:14px;">'
        f"{escape(label)}</a></p>"
    )


def invite_link(token: str) -> str:
    return f"{settings.FRONTEND_BASE_URL}/auth/accept-invite?token={token}"


def build_invite_email(name: str, token: str, inviter: str | None = None) -> tuple[str, str, str]:
    link = invite_link(token)
    subject = f"You're invited to {settings.APP_NAME}"
    invited_by = f"{inviter} invited you" if inviter else "You have been invited"
    body = (
        f"Hello {name},\n\n"
        f"{invited_by} to join {settings.APP_NAME}.\n\n"
        f"Accept the invitation: {link}\n\n"
        f"The link expires in {settings.INVITE_TOKEN_EXPIRE_HOURS} hours."
    )
    html_content = (
        f'<p style="margin:0 0 12px;font-size:14px;">Hello {escape(name)},</p>'
        f'<p style="margin:0 0 14px;font-size:14px;line-height:1.6;">{escape(invited_by)} to join '
        f"{escape(settings.APP_NAME)}.</p>"
        f"{_cta_button('Accept invitation', link)}"
        '<p style="margin:0;font-size:12px;color:#64748b;">'
        f"The link expires in {settings.INVITE_TOKEN_EXPIRE_HOURS} hours:<br>{escape(link)}</p>"
    )
    html_body = _wrap_email_html(
        title=subject,
        intro="Set a username and password to activate your account.",
        content=html_content,
        footer="If you were not expecting this invitation you can ignore this email.",
    )
    return subject, body, html_body


def build_password_changed_email(name: str) -> tuple[str, str, str]:
    subject = "Your password was reset"
    body = (
        f"Hello {name},\n\n"
        "An administrator reset your password.\n\n"
        f"Sign in: {settings.FRONTEND_BASE_URL}/auth/login"
    )
    html_content = (
        f'<p style="margin:0 0 12px;font-size:14px;">Hello {escape(name)},</p>'
        '<p style="margin:0 0 14px;font-size:14px;">An administrator reset your password.</p>'
        f"{_cta_button('Sign in', f'{settings.FRONTEND_BASE_URL}/auth/login')}"
    )
    html_body = _wrap_email_html(
        title=subject,
        intro="Security notice for your account.",
        content=html_content,
        footer="Contact your administrator if you did not expect this change.",
    )
    return subject, body, html_body


def send_email(to: str, subject: str, body: str, *, html_body: str | None = None) -> bool:
    if not settings.SMTP_HOST:
        logger.info("SMTP not configured; skipping send to %s", to)
        return False
    if not settings.SMTP_FROM:
        logger.warning("SMTP_FROM not configured; skipping send to %s", to)
        return False

    message = EmailMessage()
    message["From"] = settings.SMTP_FROM
    message["To"] = to
    message["Subject"] = subject
    message.set_content(body)
    if html_body:
        message.add_alternative(html_body, subtype="html")

    try:
        with smtplib.SMTP(settings.SMTP_HOST, settings.SMTP_PORT, timeout=30) as server:
            server.ehlo()
            if settings.SMTP_TLS:
                server.starttls()
                server.ehlo()
            if settings.SMTP_USER:
                server.login(settings.SMTP_USER, settings.SMTP_PASSWORD)
            server.send_message(message)
    except (smtplib.SMTPException, OSError):
        logger.exception("Email send failed: %s", to)
        return False
    logger.info("Email sent: %s", to)
    return True
