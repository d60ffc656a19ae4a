from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import structlog

from jwks_resolver.resolver_errors import (
    Err,
    Ok,
    ResolutionError,
    ResolutionErrorKind,
    Result,
)
from jwks_resolver.security.jwks_fetcher import JwksFetcher
from jwks_resolver.security.key_store import KeyStore, KeyStoreError
from jwks_resolver.security.signing_key import KeySet, SigningKey, filter_eligible

logger = structlog.get_logger(__name__)


class ResolutionSource(str, Enum):
    CACHE = "cache"
    REFRESH = "refresh"


@dataclass(frozen=True)
class ResolvedKey:
    key: SigningKey
    source: ResolutionSource


class KeyResolver:
    """
    Maps a token's ``kid`` to a cached signing key.

    A miss triggers exactly one refetch of the JWKS document followed by one
    more lookup. Concurrent misses may each refetch; the last successful
    replacement wins.
    """

    def __init__(
        self,
        *,
        key_store: KeyStore,
        fetcher: JwksFetcher,
        require_x5c: bool = False,
    ) -> None:
        self.key_store = key_store
        self.fetcher = fetcher
        self.require_x5c = require_x5c

    def resolve(self, kid: str) -> Result[ResolvedKey, ResolutionError]:
        cached = self.key_store.lookup(kid)
        if isinstance(cached, Ok):
            logger.debug("signing_key_cache_hit", kid=kid)
            return Ok(ResolvedKey(cached.value, ResolutionSource.CACHE))

        refreshed = self.refresh()
        if isinstance(refreshed, Err):
            return refreshed

        found = self.key_store.lookup(kid)
        if isinstance(found, Err):
            logger.warning(
                "signing_key_not_found",
                kid=kid,
                cached_kids=[key.kid for key in refreshed.value],
            )
            return Err(
                ResolutionError(
                    ResolutionErrorKind.KID_NOT_FOUND,
                    f"No signing key published for kid '{kid}'.",
                )
            )
        return Ok(ResolvedKey(found.value, ResolutionSource.REFRESH))

    def refresh(self) -> Result[KeySet, ResolutionError]:
        logger.info("jwks_refresh_started", jwks_uri=self.fetcher.jwks_uri)
        fetched = self.fetcher.fetch_raw()
        if isinstance(fetched, Err):
            return fetched

        eligible = filter_eligible(fetched.value, require_x5c=self.require_x5c)
        replaced = self.key_store.replace(eligible)
        if isinstance(replaced, Err):
            if replaced.error is KeyStoreError.WRITE_FAILED:
                logger.warning("jwks_cache_write_failed", jwks_uri=self.fetcher.jwks_uri)
                return Err(
                    ResolutionError(
                        ResolutionErrorKind.CACHE_UNAVAILABLE,
                        "Signing key cache rejected the refreshed key set.",
                    )
                )
            logger.warning(
                "jwks_no_eligible_keys",
                jwks_uri=self.fetcher.jwks_uri,
                published=len(fetched.value),
            )
            return Err(
                ResolutionError(
                    ResolutionErrorKind.NO_ELIGIBLE_KEYS,
                    "JWKS document contains no usable RSA signing keys.",
                )
            )

        logger.info(
            "jwks_refresh_succeeded",
            jwks_uri=self.fetcher.jwks_uri,
            kids=[key.kid for key in replaced.value],
        )
        return replaced
