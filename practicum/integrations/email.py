# =============================================================================
# Email Delivery Integration (AWS SES)
# =============================================================================
#
# Setup:
#   1. Verify your sending email in AWS SES console
#   2. Set env vars:
#      - AWS_SES_FROM_EMAIL=noreply@yourdomain.com
#      - AWS_ACCESS_KEY_ID=...
#      - AWS_SECRET_ACCESS_KEY=...
#      - AWS_REGION=us-east-1
#
# Without those settings nothing is sent: the rendered text is logged
# instead, which is what local development and the tests rely on.
#
# =============================================================================

from __future__ import annotations

import asyncio
import logging
from typing import Any

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from practicum.config import Settings

logger = logging.getLogger(__name__)


# =============================================================================
# Email Templates
# =============================================================================

_BUTTON = (
    '<a href="{url}" style="background: #1F5C99; color: white; padding: 12px 30px; '
    'text-decoration: none; border-radius: 6px; display: inline-block;">{label}</a>'
)

TEMPLATES = {
    "invite-user": {
        "subject": "You have been invited to the practicum administration",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #333;">Hello {name},</h1>
            <p>You have been invited to manage the internship program. Choose a password to finish setting up your account:</p>
            <p style="text-align: center; margin: 30px 0;">""" + _BUTTON.format(url="{url}", label="Complete sign up") + """</p>
            <p style="color: #666; font-size: 14px;">Or copy this link: {url}</p>
            <p style="color: #666; font-size: 14px;">This link expires in {expires_in}.</p>
        </body>
        </html>
        """,
        "text": """
Hello {name},

You have been invited to manage the internship program. Finish setting up your account at:
{url}

This link expires in {expires_in}.
        """,
    },

    "invite-student": {
        "subject": "Complete your internship registration",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #333;">Welcome!</h1>
            <p>You have been registered for the internship program. Complete your student profile here:</p>
            <p style="text-align: center; margin: 30px 0;">""" + _BUTTON.format(url="{url}", label="Complete registration") + """</p>
            <p style="color: #666; font-size: 14px;">Or copy this link: {url}</p>
            <p style="color: #666; font-size: 14px;">This link expires in {expires_in}.</p>
        </body>
        </html>
        """,
        "text": """
Welcome!

You have been registered for the internship program. Complete your student profile at:
{url}

This link expires in {expires_in}.
        """,
    },

    "recover-user-password": {
        "subject": "Reset your password",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #333;">Reset Your Password</h1>
            <p>We received a request to reset your password. Click the button below to choose a new one:</p>
            <p style="text-align: center; margin: 30px 0;">""" + _BUTTON.format(url="{url}", label="Reset Password") + """</p>
            <p style="color: #666; font-size: 14px;">Or copy this link: {url}</p>
            <p style="color: #666; font-size: 14px;">This link expires in {expires_in}.</p>
            <p style="color: #666; font-size: 14px;">If you didn't request this, you can safely ignore this email.</p>
        </body>
        </html>
        """,
        "text": """
Reset Your Password

We received a request to reset your password. Visit this link to choose a new one:
{url}

This link expires in {expires_in}.

If you didn't request this, you can safely ignore this email.
        """,
    },

    "recover-student-password": {
        "subject": "Reset your student password",
        "html": """
        <html>
        <body style="font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif; max-width: 600px; margin: 0 auto; padding: 20px;">
            <h1 style="color: #333;">Reset Your Password</h1>
            <p>We received a request to reset the password of your student account. Choose a new one here:</p>
            <p style="text-align: center; margin: 30px 0;">""" + _BUTTON.format(url="{url}", label="Reset Password") + """</p>
            <p style="color: #666; font-size: 14px;">Or copy this link: {url}</p>
            <p style="color: #666; font-size: 14px;">This link expires in {expires_in}.</p>
            <p style="color: #666; font-size: 14px;">If you didn't request this, you can safely ignore this email.</p>
        </body>
        </html>
        """,
        "text": """
Reset Your Password

We received a request to reset the password of your student account. Choose a new one at:
{url}

This link expires in {expires_in}.

If you didn't request this, you can safely ignore this email.
        """,
    },
}


def _humanize(minutes: int) -> str:
    if minutes % 60 == 0:
        hours = minutes // 60
        return "1 hour" if hours == 1 else f"{hours} hours"
    return f"{minutes} minutes"


# =============================================================================
# Email Service
# =============================================================================

class EmailService:
    """Send emails via AWS SES."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self._client = None

    @property
    def client(self):
        """Lazy-load SES client."""
        if self._client is None and self.settings.use_aws:
            self._client = boto3.client(
                "ses",
                region_name=self.settings.aws_region,
                aws_access_key_id=self.settings.aws_access_key_id,
                aws_secret_access_key=self.settings.aws_secret_access_key,
            )
        return self._client

    @property
    def is_configured(self) -> bool:
        """Check if email sending is properly configured."""
        return self.settings.use_aws and bool(self.settings.aws_ses_from_email)

    def url(self, path: str, token: str) -> str:
        return f"{self.settings.web_url.rstrip('/')}{path}?token={token}"

    async def send(
        self,
        to: str,
        template: str,
        data: dict[str, Any] | None = None,
    ) -> bool:
        """
        Send an email using a template.

        Args:
            to: Recipient email address
            template: Template name (e.g., "invite-user", "recover-user-password")
            data: Template variables to substitute

        Returns:
            True if sent successfully, False otherwise
        """
        if template not in TEMPLATES:
            logger.error("Unknown email template: %s", template)
            return False

        tpl = TEMPLATES[template]
        data = data or {}

        try:
            subject = tpl["subject"]
            html_body = tpl["html"].format(**data)
            text_body = tpl["text"].format(**data)
        except KeyError as e:
            logger.error("Missing template variable for '%s': %s", template, e)
            return False

        if not self.is_configured:
            # Links carry live tokens; keep them at debug level
            logger.info("Email not configured - would send '%s' to %s", template, to)
            logger.debug("Email content: %s", text_body)
            return False

        try:
            response = await asyncio.to_thread(
                self.client.send_email,
                Source=self.settings.aws_ses_from_email,
                Destination={"ToAddresses": [to]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {
                        "Html": {"Data": html_body, "Charset": "UTF-8"},
                        "Text": {"Data": text_body, "Charset": "UTF-8"},
                    },
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.error("Failed to send email to %s: %s", to, e)
            return False

        logger.info("Email sent to %s: %s (MessageId: %s)", to, template, response["MessageId"])
        return True

    async def send_user_invite(self, email: str, name: str, token: str) -> bool:
        """Send the staff invitation with its completion link."""
        return await self.send(
            to=email,
            template="invite-user",
            data={
                "name": name,
                "url": self.url("/invite-user", token),
                "expires_in": _humanize(self.settings.invite_token_ttl_hours * 60),
            },
        )

    async def send_student_invite(self, email: str, token: str) -> bool:
        """Send the student invitation with its completion link."""
        return await self.send(
            to=email,
            template="invite-student",
            data={
                "url": self.url("/invite", token),
                "expires_in": _humanize(self.settings.invite_token_ttl_hours * 60),
            },
        )

    async def send_user_recovery(self, email: str, token: str) -> bool:
        """Send a staff password reset link."""
        return await self.send(
            to=email,
            template="recover-user-password",
            data={
                "url": self.url("/recover-password", token),
                "expires_in": _humanize(self.settings.recovery_token_ttl_minutes),
            },
        )

    async def send_student_recovery(self, email: str, token: str) -> bool:
        """Send a student password reset link."""
        return await self.send(
            to=email,
            template="recover-student-password",
            data={
                "url": self.url("/student/recover-password", token),
                "expires_in": _humanize(self.settings.recovery_token_ttl_minutes),
            },
        )
