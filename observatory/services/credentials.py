"""
GitHub App credentials.

One RSA private key signs short-lived app JWTs, which are exchanged for
per-installation access tokens. Both kinds are cached in memory until they
expire. Tokens are usable only strictly before ``expires_at``.

https://docs.github.com/en/apps/creating-github-apps/authenticating-with-a-github-app/generating-a-json-web-token-jwt-for-a-github-app
"""

import asyncio
import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, NamedTuple, Optional

import httpx
from jose import jwt
from jose.exceptions import JOSEError
from pydantic import ValidationError

from observatory.core.exceptions import KeySigningError, TokenExchangeError
from observatory.schemas.github import InstallationToken
from observatory.services.github_api import GitHub, default_headers

logger = logging.getLogger(__name__)

JWT_BACKDATE = timedelta(minutes=1)  # Tolerate clock skew with GitHub
JWT_LIFETIME = timedelta(minutes=7)
INSTALLATION_TOKEN_MARGIN = timedelta(minutes=5)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenKind(NamedTuple):
    kind: str
    installation_id: Optional[int] = None

    @classmethod
    def jwt(cls) -> "TokenKind":
        return cls("jwt")

    @classmethod
    def installation(cls, installation_id: int) -> "TokenKind":
        return cls("installation", installation_id)


@dataclass(frozen=True)
class Token:
    value: str
    kind: TokenKind
    created_at: datetime
    expires_at: datetime

    def expired(self, now: datetime) -> bool:
        return not now < self.expires_at


class CredentialStore:
    def __init__(
        self,
        app_id: str,
        private_key: str,
        http_client: httpx.AsyncClient,
        timeout: float = 10.0,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.app_id = app_id
        self.private_key = private_key
        self.http_client = http_client
        self.timeout = timeout
        self.clock = clock

        self._lock = threading.Lock()
        self._tokens: Dict[TokenKind, Token] = {}
        self._mint_locks: Dict[TokenKind, asyncio.Lock] = {}
        # Bumped on eviction so an in-flight exchange cannot resurrect a removed tenant's token
        self._generations: Dict[int, int] = {}

    def _cached_token(self, kind: TokenKind) -> Optional[str]:
        with self._lock:
            token = self._tokens.get(kind)
            if token is not None and not token.expired(self.clock()):
                return token.value
        return None

    def _mint_lock(self, kind: TokenKind) -> asyncio.Lock:
        with self._lock:
            return self._mint_locks.setdefault(kind, asyncio.Lock())

    def _generate_jwt(self) -> Token:
        now = self.clock()
        created_at = now - JWT_BACKDATE
        expires_at = now + JWT_LIFETIME
        claims = {
            "iat": int(created_at.timestamp()),
            "exp": int(expires_at.timestamp()),
            "iss": self.app_id,
        }
        try:
            value = jwt.encode(claims, self.private_key, algorithm="RS256")
        except (JOSEError, ValueError, TypeError) as e:
            logger.critical(f"Failed to sign GitHub App JWT, check the private key: {e}")
            raise KeySigningError(f"Failed to sign GitHub App JWT: {e}") from e
        return Token(value, TokenKind.jwt(), created_at, expires_at)

    def get_jwt(self) -> str:
        """Return the app JWT, signing a new one if the cached one expired"""
        kind = TokenKind.jwt()
        cached = self._cached_token(kind)
        if cached is not None:
            return cached

        token = self._generate_jwt()
        with self._lock:
            self._tokens[kind] = token
        logger.debug(f"Generated app JWT valid until {token.expires_at.isoformat()}")
        return token.value

    async def _exchange(self, installation_id: int) -> Token:
        url = GitHub.installation_tokens(installation_id)
        try:
            response = await self.http_client.post(
                url, headers=default_headers(self.get_jwt()), timeout=self.timeout
            )
            response.raise_for_status()
            payload = InstallationToken.model_validate(response.json())
        except httpx.TimeoutException as e:
            logger.error(f"Timed out exchanging token for installation {installation_id}")
            raise TokenExchangeError(f"Timed out requesting {url}") from e
        except httpx.HTTPStatusError as e:
            logger.error(
                f"Error at {url}: HTTP {e.response.status_code}: {e.response.text}"
            )
            logger.error(f"Headers: {dict(e.response.headers)}")
            raise TokenExchangeError(
                f"HTTP {e.response.status_code} requesting {url}"
            ) from e
        except (httpx.HTTPError, ValidationError, ValueError) as e:
            logger.error(f"Error at {url}: {e}")
            raise TokenExchangeError(f"Failed requesting {url}: {e}") from e

        return Token(
            value=payload.token,
            kind=TokenKind.installation(installation_id),
            created_at=self.clock(),
            expires_at=payload.expires_at - INSTALLATION_TOKEN_MARGIN,
        )

    async def get_installation_token(self, installation_id: int) -> str:
        """
        Return an access token scoped to an installation.

        Concurrent misses for the same installation share one exchange. The
        exchange runs outside the cache lock so other installations are not
        held up by it.
        """
        kind = TokenKind.installation(installation_id)
        cached = self._cached_token(kind)
        if cached is not None:
            return cached

        async with self._mint_lock(kind):
            cached = self._cached_token(kind)
            if cached is not None:
                return cached

            with self._lock:
                generation = self._generations.get(installation_id, 0)
            token = await self._exchange(installation_id)
            with self._lock:
                if self._generations.get(installation_id, 0) == generation:
                    self._tokens[kind] = token
                else:
                    logger.info(
                        f"Installation {installation_id} was removed during token exchange, not caching"
                    )
            logger.info(
                f"Issued token for installation {installation_id}, valid until {token.expires_at.isoformat()}"
            )
            return token.value

    def evict(self, installation_id: int) -> None:
        kind = TokenKind.installation(installation_id)
        with self._lock:
            self._tokens.pop(kind, None)
            self._generations[installation_id] = self._generations.get(installation_id, 0) + 1
        logger.debug(f"Evicted token for installation {installation_id}")
