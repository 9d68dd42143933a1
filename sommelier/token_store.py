"""OAuth client-credentials token acquisition and single-slot caching."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional

import httpx

from .errors import AuthError, ConfigurationError

logger = logging.getLogger(__name__)

# Tokens are treated as expired this many seconds before the provider says so.
TOKEN_SAFETY_MARGIN_SECONDS = 1800

# Salesforce client-credentials responses usually omit expires_in.
DEFAULT_EXPIRES_IN_SECONDS = 7200


@dataclass
class BearerToken:
    """Access token for the agent platform."""
    value: str
    expires_at: float
    instance_url: Optional[str] = None

    def is_valid(self, now: float) -> bool:
        return now < self.expires_at


class TokenAcquirer:
    """
    Performs the client-credentials exchange against the org's identity endpoint.

    The exchange is a form-encoded POST to /services/oauth2/token. Missing
    credentials fail before any network traffic.
    """

    def __init__(self, client: httpx.AsyncClient, clock: Callable[[], float] = time.time):
        self.client = client
        self.clock = clock

    async def acquire(self, client_id: str, client_secret: str, domain: str) -> BearerToken:
        if not client_id or not client_secret:
            raise ConfigurationError("Salesforce credentials not configured")

        issued_at = self.clock()
        resp = await self.client.post(
            f"{domain.rstrip('/')}/services/oauth2/token",
            data={
                "grant_type": "client_credentials",
                "client_id": client_id,
                "client_secret": client_secret,
            },
        )

        if not resp.is_success:
            logger.error(f"Salesforce token exchange failed: {resp.status_code} {resp.text}")
            raise AuthError(resp.status_code, resp.text)

        data = resp.json()
        access_token = data.get("access_token")
        if not access_token:
            logger.error(f"Salesforce token response missing access_token: {data}")
            raise AuthError(resp.status_code, "response did not include an access_token")

        expires_in = int(data.get("expires_in") or DEFAULT_EXPIRES_IN_SECONDS)
        token = BearerToken(
            value=access_token,
            expires_at=issued_at + (expires_in - TOKEN_SAFETY_MARGIN_SECONDS),
            instance_url=data.get("instance_url"),
        )
        logger.info(f"Acquired Salesforce access token (usable for {expires_in - TOKEN_SAFETY_MARGIN_SECONDS}s)")
        return token


class TokenStore:
    """
    Process-wide single slot holding the current bearer token.

    No lock guards the slot: concurrent requests that see an expired token
    may each refresh it.
    """

    def __init__(
        self,
        acquirer: TokenAcquirer,
        client_id: str,
        client_secret: str,
        domain: str,
        clock: Callable[[], float] = time.time,
    ):
        self.acquirer = acquirer
        self.client_id = client_id
        self.client_secret = client_secret
        self.domain = domain
        self.clock = clock
        self._token: Optional[BearerToken] = None

    @property
    def token(self) -> Optional[BearerToken]:
        return self._token

    async def get_token(self) -> BearerToken:
        """Return the cached token, refreshing it first if absent or expired."""
        if self._token is not None and self._token.is_valid(self.clock()):
            return self._token

        logger.debug("No valid Salesforce token cached, acquiring a new one")
        self._token = await self.acquirer.acquire(self.client_id, self.client_secret, self.domain)
        return self._token

    def clear(self):
        """Drop the cached token."""
        self._token = None
