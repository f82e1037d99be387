"""Identity Provider over HTTP

Validates bearer tokens by asking the auth service for the token's user
(``GET /auth/v1/user``). A 401/403 answer means the token is invalid; any
other failure is an infrastructure error.
"""

import logging
from typing import Optional
import httpx
from src.app.errors import IdentityProviderError
from src.app.services.identity_provider import AuthenticatedUser, IdentityProvider

logger = logging.getLogger(__name__)


class HttpIdentityProvider(IdentityProvider):

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport

    async def get_user(self, token: str) -> Optional[AuthenticatedUser]:
        if not self.base_url:
            raise IdentityProviderError("Auth service not configured")

        headers = {"Authorization": f"Bearer {token}"}
        if self.api_key:
            headers["apikey"] = self.api_key

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.get("/auth/v1/user", headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"Auth service unreachable: {e!r}")
            raise IdentityProviderError("Auth service unreachable") from e

        if response.status_code in (401, 403):
            return None
        if response.status_code >= 400:
            raise IdentityProviderError(f"Auth service returned {response.status_code}")

        body = response.json()
        if not body.get("id"):
            return None

        user_metadata = body.get("user_metadata") or {}
        return AuthenticatedUser(
            id=body["id"],
            email=body.get("email"),
            name=user_metadata.get("full_name") or user_metadata.get("name") or "",
        )
