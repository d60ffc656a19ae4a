from __future__ import annotations

import os
from dataclasses import dataclass

from jwks_resolver.resolver_errors import ResolverConfigurationError
from jwks_resolver.security.cache_store import InMemoryCacheStore
from jwks_resolver.security.jwks_fetcher import JwksFetcher
from jwks_resolver.security.key_resolver import KeyResolver
from jwks_resolver.security.key_store import DEFAULT_CACHE_KEY, KeyStore


def _as_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "y", "on"}


def _as_int(value: str | None, default: int) -> int:
    if value is None:
        return default
    try:
        return int(value.strip())
    except ValueError:
        return default


def _jwks_uri() -> str:
    jwks_uri = (os.getenv("JWKS_URI", "") or "").strip()
    if jwks_uri:
        return jwks_uri
    domain = (os.getenv("AUTH0_DOMAIN", "") or "").strip()
    if not domain:
        return ""
    return f"https://{domain}/.well-known/jwks.json"


@dataclass(frozen=True)
class ResolverSettings:
    jwks_uri: str
    timeout_sec: int = 5
    cache_ttl_sec: int = 0
    cache_key: str = DEFAULT_CACHE_KEY
    require_x5c: bool = False
    log_level: str = "info"


def load_settings() -> ResolverSettings:
    return ResolverSettings(
        jwks_uri=_jwks_uri(),
        timeout_sec=max(1, _as_int(os.getenv("JWKS_TIMEOUT_SEC"), 5)),
        cache_ttl_sec=max(0, _as_int(os.getenv("JWKS_CACHE_TTL_SEC"), 0)),
        cache_key=(os.getenv("JWKS_CACHE_KEY", "") or "").strip() or DEFAULT_CACHE_KEY,
        require_x5c=_as_bool(os.getenv("JWKS_REQUIRE_X5C"), False),
        log_level=(os.getenv("LOG_LEVEL", "info") or "info").strip().lower(),
    )


def build_key_resolver(settings: ResolverSettings) -> KeyResolver:
    if not settings.jwks_uri:
        raise ResolverConfigurationError("JWKS URI is not configured (set JWKS_URI or AUTH0_DOMAIN).")

    key_store = KeyStore(
        cache=InMemoryCacheStore(ttl_seconds=settings.cache_ttl_sec),
        cache_key=settings.cache_key,
    )
    fetcher = JwksFetcher(jwks_uri=settings.jwks_uri, timeout_sec=settings.timeout_sec)
    return KeyResolver(
        key_store=key_store,
        fetcher=fetcher,
        require_x5c=settings.require_x5c,
    )
