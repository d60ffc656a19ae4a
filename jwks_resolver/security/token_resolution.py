from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

import jwt
from jwt import InvalidTokenError
from jwt.algorithms import RSAAlgorithm
from jwt.exceptions import InvalidKeyError

from jwks_resolver.resolver_errors import (
    Err,
    Ok,
    ResolutionError,
    ResolutionErrorKind,
    Result,
)
from jwks_resolver.security.key_resolver import KeyResolver, ResolutionSource
from jwks_resolver.security.signing_key import SigningKey

RS256 = "RS256"


def peek_kid(token: str) -> Result[str, ResolutionError]:
    """Reads ``kid`` from the token header without checking the signature."""
    raw = (token or "").strip()
    if not raw:
        return Err(ResolutionError(ResolutionErrorKind.MALFORMED_TOKEN, "Missing token."))

    try:
        header = jwt.get_unverified_header(raw)
    except InvalidTokenError as exc:
        return Err(
            ResolutionError(
                ResolutionErrorKind.MALFORMED_TOKEN,
                f"Invalid token header: {exc}",
            )
        )

    kid = header.get("kid")
    if not isinstance(kid, str) or not kid.strip():
        return Err(
            ResolutionError(
                ResolutionErrorKind.MALFORMED_TOKEN,
                "Token header missing key id (kid).",
            )
        )
    return Ok(kid)


@dataclass(frozen=True)
class RS256Verifier:
    kid: str
    public_key: Any
    source: ResolutionSource

    @classmethod
    def from_signing_key(
        cls, key: SigningKey, source: ResolutionSource
    ) -> Result["RS256Verifier", ResolutionError]:
        try:
            public_key = RSAAlgorithm.from_jwk(json.dumps(key.to_jwk()))
        except (InvalidKeyError, ValueError) as exc:
            return Err(
                ResolutionError(
                    ResolutionErrorKind.INVALID_KEY,
                    f"Signing key '{key.kid}' is not a valid RSA public key: {exc}",
                )
            )
        return Ok(cls(kid=key.kid, public_key=public_key, source=source))

    def decode(self, token: str, **kwargs: Any) -> dict[str, Any]:
        """
        Verifies the RS256 signature and returns the claims.

        Claim checks (exp, aud, iss) are configured by the caller through
        ``kwargs`` exactly as for ``jwt.decode``. Raises ``InvalidTokenError``.
        """
        return jwt.decode(token, key=self.public_key, algorithms=[RS256], **kwargs)


def resolve_signing_key_for_token(
    token: str, resolver: KeyResolver
) -> Result[RS256Verifier, ResolutionError]:
    kid = peek_kid(token)
    if isinstance(kid, Err):
        return kid

    resolved = resolver.resolve(kid.value)
    if isinstance(resolved, Err):
        return resolved

    return RS256Verifier.from_signing_key(resolved.value.key, resolved.value.source)
