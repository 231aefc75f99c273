"""Liquid templates for system mail."""

from datetime import datetime
from typing import Any

import structlog
from liquid import Environment

logger = structlog.get_logger(__name__)

MAGIC_LINK_SUBJECT = "Your Magic Login Link"

MAGIC_LINK_TEXT_TEMPLATE = """Magic Login Link
================

Hello {{ mailbox.address }},

You have received this email because a magic login link was requested for your account.

Click the link below to log in to your account:
{{ url }}

This link will expire on {{ expires_at }}. For security reasons, please do not share this link with anyone.

If you did not request this link, you can safely ignore this email.

Best regards,
The Team"""

MAGIC_LINK_HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
  <meta charset="utf-8">
  <title>Your Magic Login Link</title>
</head>
<body style="font-family: Arial, sans-serif; line-height: 1.6; color: #333;">
  <h2>Magic Login Link</h2>
  <p>Hello {{ mailbox.address }},</p>
  <p>You have received this email because a magic login link was requested for your account.</p>
  <p>
    <a href="{{ url }}"
       style="background-color: #FF9800; color: white; padding: 12px 24px;
              text-decoration: none; border-radius: 5px; display: inline-block;">
      Log In to Your Account
    </a>
  </p>
  <p>This link will expire on {{ expires_at }}. For security reasons, please do not share this link with anyone.</p>
  <p>If you did not request this link, you can safely ignore this email.</p>
  <p>Best regards,<br>The Team</p>
</body>
</html>"""

TEST_MAIL_SUBJECT = "Test DKIM Email"
TEST_MAIL_TEXT = "This is a test email with DKIM signature"

_env = Environment()


def render_template(template: str, **context: Any) -> str:
    """Render a Liquid template. Raises ValueError if rendering fails."""
    try:
        return _env.from_string(template).render(**context)
    except Exception as e:
        logger.exception("template_render_failed", error=str(e), template=template[:100])
        raise ValueError(f"Failed to render template: {e}") from e


def render_magic_link_mail(address: str, url: str, expires_at: datetime) -> tuple[str, str]:
    """Return (text, html) bodies for a magic link mail."""
    context = {"mailbox": {"address": address}, "url": url, "expires_at": expires_at.strftime("%Y-%m-%d")}
    text = render_template(MAGIC_LINK_TEXT_TEMPLATE, **context)
    html = render_template(MAGIC_LINK_HTML_TEMPLATE, **context)
    return text, html
