"""Email Dispatchers — deliver OTP codes to users.

Invariants:
    - Any delivery failure raises EmailDispatchError; callers never see transport exceptions
    - No retries here: the caller reports the failure and the user asks for a new code

Design Decisions:
    - WebhookEmailDispatcher POSTs JSON to a transactional-email HTTP endpoint via httpx
    - LoggingEmailDispatcher is selected when no webhook is configured (local development)
"""

import logging

import httpx

from parley.core.errors import EmailDispatchError

logger = logging.getLogger(__name__)

OTP_SUBJECT = "Your Parley login code"


def render_otp_text(code: str, ttl_seconds: int) -> str:
    minutes = max(ttl_seconds // 60, 1)
    return (
        f"Your one-time login code is {code}.\n"
        f"It expires in {minutes} minutes. If you did not request it, ignore this email."
    )


class LoggingEmailDispatcher:
    """Writes the code to the application log instead of sending mail."""

    async def send_otp(self, email: str, code: str) -> None:
        logger.info("Sending OTP to email: %s - %s", email, code)


class WebhookEmailDispatcher:
    """Sends OTP mails through an HTTP email API."""

    def __init__(
        self,
        webhook_url: str,
        sender: str,
        timeout_seconds: float = 10.0,
        otp_ttl_seconds: int = 300,
        client: httpx.AsyncClient | None = None,
    ):
        self.webhook_url = webhook_url
        self.sender = sender
        self.otp_ttl_seconds = otp_ttl_seconds
        self.client = client or httpx.AsyncClient(timeout=timeout_seconds)

    async def send_otp(self, email: str, code: str) -> None:
        payload = {
            "from": self.sender,
            "to": email,
            "subject": OTP_SUBJECT,
            "text": render_otp_text(code, self.otp_ttl_seconds),
        }
        try:
            response = await self.client.post(self.webhook_url, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"Email webhook unreachable: {e}")
            raise EmailDispatchError(f"transport error: {e}")
        if response.is_error:
            logger.error(
                "Email webhook rejected OTP mail (status=%s)", response.status_code,
            )
            raise EmailDispatchError(f"webhook returned {response.status_code}")

    async def close(self) -> None:
        await self.client.aclose()
