"""
Email client for the Communications Service.

Usage:
    from libs.common.emails.client import get_email_client

    email_client = get_email_client()

    await email_client.send(
        to_email="user@example.com",
        subject="Hello",
        body="Plain text body",
        html_body="<p>HTML body</p>",
    )

    await email_client.send_password_reset(
        to_email="user@example.com",
        reset_url="https://app.example.com/reset-password?token=...",
    )
"""

from functools import lru_cache
from typing import Any, Optional

import httpx
from libs.common.config import get_settings
from libs.common.logging import get_logger, get_request_id

logger = get_logger(__name__)


class EmailClient:
    """
    HTTP client for sending emails through the Communications Service.

    Every method returns a success flag; transport and API errors are
    logged, never raised, so a failed delivery cannot roll back the
    operation that triggered it.
    """

    def __init__(self, base_url: Optional[str] = None, timeout: float = 30.0):
        settings = get_settings()
        self.base_url = base_url or settings.COMMUNICATIONS_SERVICE_URL
        self.from_email = settings.EMAIL_FROM
        self.timeout = timeout

    async def send(
        self,
        to_email: str,
        subject: str,
        body: str,
        html_body: Optional[str] = None,
    ) -> bool:
        """
        Send a single email.

        Returns:
            True if the Communications Service accepted the email.
        """
        payload: dict[str, Any] = {
            "to_email": to_email,
            "from_email": self.from_email,
            "subject": subject,
            "body": body,
        }
        if html_body:
            payload["html_body"] = html_body

        headers = {}
        request_id = get_request_id()
        if request_id:
            headers["X-Request-ID"] = request_id

        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                response = await client.post(
                    f"{self.base_url}/email/send",
                    json=payload,
                    headers=headers,
                )
        except httpx.HTTPError as e:
            logger.error("Failed to reach Communications Service: %s", e)
            return False

        if response.status_code != 200:
            logger.error(
                "Email API returned %s: %s", response.status_code, response.text
            )
            return False
        return bool(response.json().get("success", False))

    async def send_password_reset(
        self, to_email: str, reset_url: str, ttl_minutes: int = 60
    ) -> bool:
        html_body = (
            "<p>You requested a password reset. "
            f'<a href="{reset_url}">Click here to reset your password</a>. '
            f"This link is valid for {ttl_minutes} minutes.</p>"
        )
        return await self.send(
            to_email=to_email,
            subject="Password Reset",
            body=f"Reset your password: {reset_url}",
            html_body=html_body,
        )


@lru_cache
def get_email_client() -> EmailClient:
    return EmailClient()
