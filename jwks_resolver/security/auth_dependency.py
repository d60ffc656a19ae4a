from __future__ import annotations

from functools import lru_cache

from fastapi import Header, HTTPException

from jwks_resolver.config import build_key_resolver, load_settings
from jwks_resolver.resolver_errors import (
    Err,
    ResolutionError,
    ResolutionErrorKind,
    ResolverConfigurationError,
)
from jwks_resolver.security.key_resolver import KeyResolver
from jwks_resolver.security.token_resolution import (
    RS256Verifier,
    resolve_signing_key_for_token,
)

_STATUS_BY_KIND = {
    ResolutionErrorKind.MALFORMED_TOKEN: 401,
    ResolutionErrorKind.KID_NOT_FOUND: 401,
    ResolutionErrorKind.FETCH_ERROR: 503,
    ResolutionErrorKind.CACHE_UNAVAILABLE: 503,
    ResolutionErrorKind.PARSE_ERROR: 502,
    ResolutionErrorKind.NO_ELIGIBLE_KEYS: 502,
    ResolutionErrorKind.INVALID_KEY: 502,
}


@lru_cache(maxsize=1)
def _cached_key_resolver() -> KeyResolver:
    return build_key_resolver(load_settings())


def get_key_resolver() -> KeyResolver:
    return _cached_key_resolver()


def close_key_resolver() -> None:
    if _cached_key_resolver.cache_info().currsize:
        _cached_key_resolver().fetcher.close()
        _cached_key_resolver.cache_clear()


def resolver_or_500() -> KeyResolver:
    try:
        return get_key_resolver()
    except ResolverConfigurationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


def http_error(error: ResolutionError) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_KIND.get(error.kind, 500),
        detail={"error": error.kind.value, "message": error.detail},
    )


def _extract_bearer_token(authorization: str | None) -> str | None:
    header = authorization or ""
    prefix = "Bearer "
    if not header.startswith(prefix):
        return None
    token = header[len(prefix) :].strip()
    return token or None


def require_token_verifier(
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> RS256Verifier:
    token = _extract_bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Missing Bearer access token.")

    result = resolve_signing_key_for_token(token, resolver_or_500())
    if isinstance(result, Err):
        raise http_error(result.error)
    return result.value
