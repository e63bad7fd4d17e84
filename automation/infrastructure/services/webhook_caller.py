"""Outbound webhook caller (implements IWebhookCaller) over httpx."""

from __future__ import annotations

import hashlib
import hmac
import json
from typing import Any

import httpx

from automation.domain.exceptions import ProviderException
from automation.shared.telemetry.logging import get_logger

logger = get_logger(__name__)

IDEMPOTENCY_HEADER = "Idempotency-Key"
SIGNATURE_HEADER = "X-Webhook-Signature-256"
_RESPONSE_PREVIEW_CHARS = 1000


def sign_body(secret: str, body: bytes) -> str:
    """Return the signature header value for body: sha256=<hex hmac>."""
    digest = hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    return f"sha256={digest}"


class HttpxWebhookCaller:
    """Sends JSON webhooks with an idempotency key and optional HMAC signature.

    The client is shared (connection reuse) and owned by the caller of
    aclose(). Non-2xx responses and transport errors raise ProviderException.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        timeout_seconds: float = 10.0,
        signing_secret: str | None = None,
    ) -> None:
        self._client = client or httpx.AsyncClient(timeout=timeout_seconds)
        self._owns_client = client is None
        self._signing_secret = signing_secret

    async def call(
        self,
        url: str,
        method: str,
        headers: dict[str, str],
        body: dict[str, Any],
        *,
        idempotency_key: str,
    ) -> dict[str, Any]:
        content = json.dumps(body, separators=(",", ":"), default=str).encode()
        request_headers = {
            "Content-Type": "application/json",
            **headers,
            IDEMPOTENCY_HEADER: idempotency_key,
        }
        if self._signing_secret:
            request_headers[SIGNATURE_HEADER] = sign_body(self._signing_secret, content)
        try:
            response = await self._client.request(
                method, url, content=content, headers=request_headers
            )
        except httpx.HTTPError as e:
            raise ProviderException(
                "webhook", f"request to {url} failed: {e.__class__.__name__}", url=url
            ) from e
        if not response.is_success:
            logger.warning(
                "Webhook %s %s returned %d (key=%s)",
                method,
                url,
                response.status_code,
                idempotency_key,
            )
            raise ProviderException(
                "webhook",
                f"Webhook request failed: {response.status_code} {response.reason_phrase}",
                url=url,
                status_code=response.status_code,
            )
        return {
            "status": response.status_code,
            "ok": True,
            "url": url,
            "response": response.text[:_RESPONSE_PREVIEW_CHARS],
        }

    async def aclose(self) -> None:
        """Close the HTTP client if this caller created it."""
        if self._owns_client:
            await self._client.aclose()
