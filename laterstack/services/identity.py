"""Identity provider (Clerk) integration: profile lookup and webhook verification."""

import logging
from dataclasses import dataclass
from typing import Any, Mapping

import httpx
from svix.webhooks import Webhook, WebhookVerificationError

from laterstack.config import get_settings

logger = logging.getLogger(__name__)


class IdentityProviderError(Exception):
    """The identity provider could not return a profile."""


@dataclass
class IdentityProfile:
    """Profile fields owned by the identity provider."""

    email: str
    name: str | None


def profile_from_clerk_user(data: Mapping[str, Any]) -> IdentityProfile:
    """Build a profile from a Clerk user object (API response or webhook payload)."""
    emails = data.get("email_addresses") or []
    email = ""
    if emails and isinstance(emails[0], Mapping):
        email = emails[0].get("email_address") or ""
    name = f"{data.get('first_name') or ''} {data.get('last_name') or ''}".strip()
    return IdentityProfile(email=email, name=name or None)


class ClerkService:
    """Async client for the Clerk backend API."""

    def __init__(
        self,
        secret_key: str | None = None,
        api_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()
        self._secret_key = secret_key if secret_key is not None else settings.clerk_secret_key
        self._api_url = (api_url or settings.clerk_api_url).rstrip("/")
        self._transport = transport

    async def get_profile(self, external_id: str) -> IdentityProfile:
        """Fetch a user's profile by identity-provider id."""
        try:
            async with httpx.AsyncClient(timeout=10.0, transport=self._transport) as client:
                response = await client.get(
                    f"{self._api_url}/users/{external_id}",
                    headers={"Authorization": f"Bearer {self._secret_key}"},
                )
                response.raise_for_status()
                data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            raise IdentityProviderError(f"Could not fetch profile for {external_id}: {e}") from e

        if not isinstance(data, dict):
            raise IdentityProviderError(f"Unexpected profile payload for {external_id}")
        return profile_from_clerk_user(data)


def verify_webhook(secret: str, body: bytes, headers: Mapping[str, str]) -> Any:
    """Verify a Svix-signed webhook delivery and return the decoded event.

    Raises:
        WebhookVerificationError: headers missing, timestamp outside the
            Svix tolerance, or no matching signature.
    """
    try:
        webhook = Webhook(secret)
    except ValueError as e:
        raise WebhookVerificationError("Invalid webhook secret") from e
    return webhook.verify(body, dict(headers))


# Singleton instance
_service: ClerkService | None = None


def get_identity_service() -> ClerkService:
    """Get or create the Clerk service singleton."""
    global _service
    if _service is None:
        _service = ClerkService()
    return _service
