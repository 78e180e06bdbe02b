"""
Resend email sender adapter - Implements EmailSender protocol.

Delivers verification codes through the Resend HTTP API. Failures are
reported as False; the domain turns that into EmailDeliveryFailed.
"""

import logging

import httpx

logger = logging.getLogger(__name__)

SUBJECT = "Your verification code"


class ResendEmailSender:
    """Implements EmailSender protocol via the Resend HTTP API."""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        api_url: str = "https://api.resend.com/emails",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._from_email = from_email
        self._api_url = api_url
        self._timeout = timeout
        self._transport = transport

    def send_verification_code(self, email: str, code: str, valid_minutes: int) -> bool:
        if not self._api_key:
            logger.error("RESEND_API_KEY is not configured")
            return False

        payload = {
            "from": self._from_email,
            "to": [email],
            "subject": SUBJECT,
            "text": f"Your verification code is {code}. It expires in {valid_minutes} minutes.",
        }
        headers = {"Authorization": f"Bearer {self._api_key}"}

        try:
            with httpx.Client(timeout=self._timeout, transport=self._transport) as client:
                response = client.post(self._api_url, json=payload, headers=headers)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            logger.error(
                "Email send failed: status=%s body=%s",
                e.response.status_code,
                e.response.text[:200],
            )
            return False
        except httpx.HTTPError as e:
            logger.error("Email send error: %s", e)
            return False

        logger.info("Verification email sent to %s", email)
        return True
