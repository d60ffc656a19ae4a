from __future__ import annotations

from collections import Counter
from enum import Enum
from typing import Sequence

import structlog

from jwks_resolver.resolver_errors import Err, Ok, Result
from jwks_resolver.security.cache_store import CacheStore, InMemoryCacheStore
from jwks_resolver.security.signing_key import KeySet, SigningKey

logger = structlog.get_logger(__name__)

DEFAULT_CACHE_KEY = "signing_keys"


class KeyStoreError(str, Enum):
    NOT_FOUND = "not_found"
    EMPTY_SET = "empty_set"
    WRITE_FAILED = "write_failed"


class KeyStore:
    """
    Holds the issuer's current key set under a single cache entry.

    The entry is only ever replaced as a whole. Key sets are stored as tuples,
    so a concurrent lookup sees either the old set or the new one.
    """

    def __init__(
        self,
        *,
        cache: CacheStore | None = None,
        cache_key: str = DEFAULT_CACHE_KEY,
    ) -> None:
        self._cache = cache if cache is not None else InMemoryCacheStore()
        self._cache_key = cache_key

    def current(self) -> KeySet:
        keys = self._cache.get(self._cache_key)
        return keys if keys else ()

    def lookup(self, kid: str) -> Result[SigningKey, KeyStoreError]:
        for key in self.current():
            if key.kid == kid:
                return Ok(key)
        return Err(KeyStoreError.NOT_FOUND)

    def replace(self, keys: Sequence[SigningKey]) -> Result[KeySet, KeyStoreError]:
        key_set: KeySet = tuple(keys)
        if not key_set:
            return Err(KeyStoreError.EMPTY_SET)

        duplicates = sorted(kid for kid, count in Counter(k.kid for k in key_set).items() if count > 1)
        if duplicates:
            # Lookup returns the first key in stored order for a duplicated kid.
            logger.warning("jwks_duplicate_kids", kids=duplicates)

        if not self._cache.put(self._cache_key, key_set):
            return Err(KeyStoreError.WRITE_FAILED)
        return Ok(key_set)
