"""Request identity resolution.

Derives who is calling (authenticated user id, if any) and from where
(client network address). The identity feeds both the rate limiter, which
needs a stable non-empty key, and the authorizer.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping

from fastapi import Request

UNKNOWN_ADDRESS = "unknown"


@dataclass(frozen=True)
class Identity:
    """Resolved caller identity.

    Attributes:
        user_id: Authenticated principal id, or None for anonymous callers.
        network_address: Client address; "unknown" when the transport hides it.
    """

    user_id: int | None
    network_address: str

    @property
    def is_authenticated(self) -> bool:
        return self.user_id is not None

    def address_key(self) -> str:
        return f"ip:{self.network_address or UNKNOWN_ADDRESS}"

    def rate_limit_key(self) -> str:
        """Return the user key when authenticated, otherwise the address key."""
        if self.user_id is not None:
            return f"user:{self.user_id}"
        return self.address_key()


def parse_api_tokens(tokens_string: str | None) -> dict[str, int]:
    """Parse comma-separated ``token:user_id`` pairs into a lookup table.

    Args:
        tokens_string: Raw configuration value, or None.

    Returns:
        Mapping of bearer token to user id. Malformed entries are skipped.

    Examples:
        >>> parse_api_tokens("tok-a:1, tok-b:2")
        {'tok-a': 1, 'tok-b': 2}
        >>> parse_api_tokens(None)
        {}
        >>> parse_api_tokens("no-user-id,tok:abc")
        {}
    """
    if not tokens_string:
        return {}

    tokens: dict[str, int] = {}
    for entry in tokens_string.split(","):
        token, sep, user_id = entry.strip().rpartition(":")
        token = token.strip()
        if not sep or not token:
            continue
        try:
            tokens[token] = int(user_id.strip())
        except ValueError:
            continue
    return tokens


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token part of an ``Authorization: Bearer <token>`` header."""
    if not authorization:
        return None
    scheme, _, token = authorization.strip().partition(" ")
    if scheme.lower() != "bearer":
        return None
    return token.strip() or None


def client_address(request: Request) -> str:
    """Return the originating network address of the request."""
    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_ADDRESS


def resolve_identity(request: Request, token_store: Mapping[str, int]) -> Identity:
    """Resolve the caller identity for a request.

    Unknown or missing tokens produce an anonymous identity; resolution
    itself never fails.

    Args:
        request: Incoming HTTP request.
        token_store: Mapping of bearer token to user id.

    Returns:
        Identity with user id (if authenticated) and network address.
    """
    token = extract_bearer_token(request.headers.get("Authorization"))
    user_id = token_store.get(token) if token else None
    return Identity(user_id=user_id, network_address=client_address(request))
