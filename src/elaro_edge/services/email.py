"""Welcome email rendering and delivery through the Resend API."""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx

from elaro_edge.core.errors import ConfigurationError, EmailDeliveryError
from elaro_edge.core.settings import settings

logger = logging.getLogger(__name__)

WELCOME_SUBJECT = "Welcome to ELARO!"

_WELCOME_TEMPLATE = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Welcome to ELARO</title>
</head>
<body style="margin: 0; padding: 0; font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Arial, sans-serif; background-color: #f5f5f5;">
  <table role="presentation" style="width: 100%; border-collapse: collapse;">
    <tr>
      <td align="center" style="padding: 40px 20px;">
        <table role="presentation" style="max-width: 600px; width: 100%; background-color: #ffffff; border-radius: 12px;">
          <tr>
            <td style="padding: 40px 40px 20px; text-align: center; background: linear-gradient(135deg, #667eea 0%, #764ba2 100%); border-radius: 12px 12px 0 0;">
              <h1 style="margin: 0; color: #ffffff; font-size: 32px;">Welcome to ELARO!</h1>
            </td>
          </tr>
          <tr>
            <td style="padding: 40px; font-size: 16px; color: #555555; line-height: 1.8;">
              <p style="font-size: 18px; color: #333333;">Hi {first_name},</p>
              <p>I'm <strong>Mansur</strong>, the creator of ELARO.</p>
              <p>I just wanted to personally welcome you aboard. I'm genuinely excited to have you join our community of learners who want to think clearer, remember better, and study smarter.</p>
              <p>Along the way, one core problem kept coming up again and again: <strong>forgetfulness</strong>. That's where ELARO begins: smarter reminders, repetition, and structure that actually stick.</p>
              <p>If you have any questions or ideas, just hit reply. I'd love to hear from you.</p>
              <p style="color: #333333;">Warmly,<br><strong>Mansur</strong><br><span style="color: #888888; font-size: 14px;">Creator of ELARO</span></p>
            </td>
          </tr>
          <tr>
            <td style="padding: 30px 40px; background-color: #f8f9fa; border-radius: 0 0 12px 12px; text-align: center;">
              <p style="margin: 0 0 10px; font-size: 14px; color: #888888;">&copy; {year} ELARO. All rights reserved.</p>
              <p style="margin: 0; font-size: 12px; color: #aaaaaa;">You're receiving this email because you signed up for ELARO.</p>
            </td>
          </tr>
        </table>
      </td>
    </tr>
  </table>
</body>
</html>
"""


@dataclass(frozen=True)
class WelcomeEmail:
    """A rendered message ready for delivery."""

    to: str
    subject: str
    html: str


def render_welcome_email(to: str, first_name: str | None, year: int | None = None) -> WelcomeEmail:
    """Render the welcome message for a new user."""
    body = _WELCOME_TEMPLATE.format(
        first_name=html.escape(first_name or "there"),
        year=year or datetime.now(UTC).year,
    )
    return WelcomeEmail(to=to, subject=WELCOME_SUBJECT, html=body)


class ResendEmailClient:
    """Minimal async client for the Resend ``/emails`` endpoint."""

    def __init__(
        self,
        api_key: str | None = None,
        sender: str | None = None,
        base_url: str | None = None,
        timeout_seconds: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else settings.resend_api_key
        self.sender = sender or settings.welcome_email_from
        self.base_url = base_url or settings.resend_base_url
        self.timeout_seconds = timeout_seconds or settings.email_http_timeout_seconds
        self._transport = transport

    async def send(self, email: WelcomeEmail) -> str:
        """Deliver a message and return the provider's email id.

        Raises:
            ConfigurationError: If no API key is configured.
            EmailDeliveryError: If the provider is unreachable or rejects the message.
        """
        if not self.api_key:
            logger.error("RESEND_API_KEY not configured")
            raise ConfigurationError("email api key not configured")

        payload = {
            "from": self.sender,
            "to": [email.to],
            "subject": email.subject,
            "html": email.html,
        }
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout_seconds),
            transport=self._transport,
        ) as client:
            try:
                response = await client.post(
                    "/emails",
                    json=payload,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
            except httpx.HTTPError as exc:
                logger.error("Resend request failed: %s", exc)
                raise EmailDeliveryError(f"network error: {exc}") from exc

        if response.is_error:
            logger.error("Resend responded with %d: %s", response.status_code, response.text)
            raise EmailDeliveryError(f"provider status {response.status_code}")

        email_id = response.json().get("id")
        return str(email_id) if email_id is not None else ""


def get_email_client() -> ResendEmailClient:
    """Return an email client configured from settings."""
    return ResendEmailClient()
