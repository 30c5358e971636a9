"""Caller side of the signed-request protocol.

``sign_request`` produces the ``X-Timestamp``/``X-Nonce``/``X-Signature``
headers for a body; ``WelcomeEmailTrigger`` posts new-user payloads to the
welcome-email function the way the signup hook does.
"""

from __future__ import annotations

import json
import logging
import secrets
import time
from typing import Any

import httpx

from elaro_edge.core.security import compute_signature
from elaro_edge.services.hmac_auth import NONCE_HEADER, SIGNATURE_HEADER, TIMESTAMP_HEADER

logger = logging.getLogger(__name__)

WELCOME_EMAIL_PATH = "/functions/v1/send-welcome-email"


class TriggerError(RuntimeError):
    """Raised when the welcome-email function rejects a triggered request."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"send-welcome-email responded with {status_code}")
        self.status_code = status_code
        self.body = body


def generate_nonce() -> str:
    """Generate a unique nonce for request signing."""
    return secrets.token_hex(16)


def sign_request(
    secret: str,
    raw_body: bytes,
    *,
    timestamp: int | None = None,
    nonce: str | None = None,
) -> dict[str, str]:
    """Return the signature headers for ``raw_body``.

    The body must be sent byte-for-byte as passed here.
    """
    ts = int(time.time()) if timestamp is None else int(timestamp)
    nonce = nonce or generate_nonce()
    return {
        TIMESTAMP_HEADER: str(ts),
        NONCE_HEADER: nonce,
        SIGNATURE_HEADER: compute_signature(secret, ts, nonce, raw_body),
    }


class WelcomeEmailTrigger:
    """HTTP client that asks the edge function to send a welcome email."""

    def __init__(
        self,
        base_url: str,
        secret: str,
        service_role_key: str,
        timeout_seconds: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url
        self.secret = secret
        self.service_role_key = service_role_key
        self.timeout_seconds = timeout_seconds
        self._transport = transport

    def build_request(
        self, user_email: str, user_id: str, first_name: str | None = None
    ) -> tuple[bytes, dict[str, str]]:
        """Serialise the payload once and sign the resulting bytes."""
        body = json.dumps(
            {
                "userEmail": user_email,
                "userFirstName": first_name or "there",
                "userId": user_id,
            },
            separators=(",", ":"),
        ).encode()
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.service_role_key}",
            **sign_request(self.secret, body),
        }
        return body, headers

    async def send(
        self, user_email: str, user_id: str, first_name: str | None = None
    ) -> dict[str, Any]:
        body, headers = self.build_request(user_email, user_id, first_name)
        async with httpx.AsyncClient(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.timeout_seconds),
            transport=self._transport,
        ) as client:
            response = await client.post(WELCOME_EMAIL_PATH, content=body, headers=headers)

        if response.is_error:
            logger.warning(
                "Welcome email trigger for user %s failed with %d", user_id, response.status_code
            )
            raise TriggerError(response.status_code, response.text)
        return response.json()
