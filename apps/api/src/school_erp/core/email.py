"""
Email Service using Resend

Best-effort delivery of workflow e-mails. When RESEND_API_KEY is not set the
message is logged instead of sent. Delivery failures are logged and reported
through the boolean return value, never raised.
"""

import asyncio
import logging
from html import escape

import resend

from school_erp.core.config import settings

logger = logging.getLogger(__name__)

resend.api_key = settings.resend_api_key

_LAYOUT = """
<!DOCTYPE html>
<html>
<head>
    <style>
        body {{ font-family: system-ui, -apple-system, sans-serif; line-height: 1.6; color: #1f2937; }}
        .container {{ max-width: 600px; margin: 0 auto; padding: 40px 20px; }}
        .header {{ color: #1a365d; margin-bottom: 24px; }}
        .button {{ display: inline-block; background-color: #1a365d; color: white; padding: 14px 28px; text-decoration: none; border-radius: 8px; margin: 24px 0; }}
        .info-box {{ background-color: #f3f4f6; padding: 16px; border-radius: 8px; margin: 16px 0; }}
        .footer {{ margin-top: 40px; padding-top: 20px; border-top: 1px solid #e5e7eb; color: #6b7280; font-size: 14px; }}
    </style>
</head>
<body>
    <div class="container">
        <h1 class="header">{title}</h1>
        {body}
        <div class="footer">
            <p>School ERP - School Administration Platform</p>
        </div>
    </div>
</body>
</html>
"""


def _render(title: str, body: str) -> str:
    return _LAYOUT.format(title=escape(title), body=body)


async def send_email(
    to_email: str,
    subject: str,
    html_content: str,
) -> bool:
    """
    Send an email using Resend.

    Args:
        to_email: Recipient email address
        subject: Email subject line
        html_content: HTML content of the email

    Returns:
        True if the email was sent (or logged in place of sending)
    """
    if not resend.api_key:
        logger.warning("RESEND_API_KEY not set - logging email instead of sending")
        logger.info(f"EMAIL TO: {to_email} | SUBJECT: {subject}")
        return True

    try:
        params: resend.Emails.SendParams = {
            "from": settings.email_from,
            "to": [to_email],
            "subject": subject,
            "html": html_content,
        }

        # Resend is synchronous; keep it off the event loop
        email = await asyncio.to_thread(resend.Emails.send, params)
        logger.info(f"Email sent successfully to {to_email}, id: {email['id']}")
        return True
    except Exception as e:
        logger.error(f"Failed to send email to {to_email}: {e}")
        return False


async def send_registration_decision(
    to_email: str,
    recipient_name: str,
    resource_kind: str,
    resource_title: str,
    approved: bool,
    comments: str | None = None,
) -> bool:
    """Tell a school admin that a registration/submission was reviewed."""
    decision = "approved" if approved else "rejected"
    safe_name = escape(recipient_name)
    safe_title = escape(resource_title)

    comments_html = ""
    if comments:
        comments_html = f'<div class="info-box"><p><strong>Reviewer comments:</strong></p><p>{escape(comments)}</p></div>'

    body = f"""
        <p>Hello {safe_name},</p>
        <p>Your school's {escape(resource_kind)} registration for <strong>{safe_title}</strong>
        has been <strong>{decision}</strong>.</p>
        {comments_html}
        <a href="{settings.frontend_url}/dashboard" class="button">Open Dashboard</a>
    """
    return await send_email(
        to_email=to_email,
        subject=f"Registration {decision}: {resource_title}",
        html_content=_render(f"Registration {decision.capitalize()}", body),
    )


async def send_account_created(
    to_email: str,
    recipient_name: str,
    role_label: str,
    school_name: str | None = None,
) -> bool:
    """Welcome a newly created user. The password is shared out of band."""
    school_html = f" for <strong>{escape(school_name)}</strong>" if school_name else ""
    body = f"""
        <p>Hello {escape(recipient_name)},</p>
        <p>An account has been created for you as <strong>{escape(role_label)}</strong>{school_html}.</p>
        <p>Your administrator will share your initial password with you. Please change it after
        your first sign-in.</p>
        <a href="{settings.frontend_url}/login" class="button">Sign In</a>
    """
    return await send_email(
        to_email=to_email,
        subject="Your School ERP account",
        html_content=_render("Welcome to School ERP", body),
    )
