"""
multisig.identity — identity collaborator.

The engine never verifies signatures. The host authenticates the caller by
whatever means it has and presents the resulting 32-byte identity; the engine
only compares that identity with the wallet's owner list.

    class Authenticator(Protocol):
        def authenticate(self, credentials) -> bytes: ...

Two authenticators ship here:

* PresentedIdentity  — the transport already authenticated the caller
  (signed envelope checked upstream, local CLI user). Credentials are the
  identity itself, as raw bytes or hex.
* TokenAuthenticator — opaque session tokens mapped to identities, for hosts
  that hand out tokens after their own login step.
"""

from __future__ import annotations

import hmac
from typing import Any, Dict, Mapping, Optional, Protocol, runtime_checkable

from .errors import UnauthorizedCaller
from .keys import IdentityLike, parse_identity


@runtime_checkable
class Authenticator(Protocol):
    def authenticate(self, credentials: Any) -> bytes: ...


class PresentedIdentity:
    def authenticate(self, credentials: IdentityLike) -> bytes:
        return parse_identity(credentials)


class TokenAuthenticator:
    """Resolve bearer tokens to identities. Unknown tokens are UnauthorizedCaller."""

    def __init__(self, tokens: Optional[Mapping[str, IdentityLike]] = None):
        self._tokens: Dict[str, bytes] = {}
        for token, ident in (tokens or {}).items():
            self.register(token, ident)

    def register(self, token: str, identity: IdentityLike) -> None:
        if not token:
            raise ValueError("token must be non-empty")
        self._tokens[token] = parse_identity(identity)

    def revoke(self, token: str) -> None:
        self._tokens.pop(token, None)

    def authenticate(self, credentials: str) -> bytes:
        if isinstance(credentials, str):
            for token, ident in self._tokens.items():
                if hmac.compare_digest(token.encode(), credentials.encode()):
                    return ident
        raise UnauthorizedCaller("unknown or revoked session token")


__all__ = ["Authenticator", "PresentedIdentity", "TokenAuthenticator"]
