from __future__ import annotations

from typing import Any

import httpx
import structlog

from jwks_resolver.resolver_errors import (
    Err,
    Ok,
    ResolutionError,
    ResolutionErrorKind,
    Result,
)

logger = structlog.get_logger(__name__)


class JwksFetcher:
    """Downloads the issuer's JWKS document. Retrying is left to the resolver."""

    def __init__(
        self,
        *,
        jwks_uri: str,
        timeout_sec: float = 5,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.jwks_uri = jwks_uri.strip()
        self._owns_client = http_client is None
        self._client = http_client or httpx.Client(timeout=max(1.0, float(timeout_sec)))

    def close(self) -> None:
        # Injected clients belong to the caller.
        if self._owns_client:
            self._client.close()

    def fetch_raw(self) -> Result[list[Any], ResolutionError]:
        try:
            response = self._client.get(self.jwks_uri)
        except httpx.HTTPError as e:
            logger.warning("jwks_fetch_failed", jwks_uri=self.jwks_uri, error=str(e))
            return Err(
                ResolutionError(
                    ResolutionErrorKind.FETCH_ERROR,
                    f"JWKS request failed: {e}",
                )
            )

        if not 200 <= response.status_code < 300:
            logger.warning(
                "jwks_fetch_failed",
                jwks_uri=self.jwks_uri,
                status_code=response.status_code,
            )
            return Err(
                ResolutionError(
                    ResolutionErrorKind.FETCH_ERROR,
                    f"JWKS endpoint returned HTTP {response.status_code}",
                )
            )

        try:
            payload = response.json()
        except (ValueError, RecursionError):
            logger.warning("jwks_parse_failed", jwks_uri=self.jwks_uri, reason="invalid_json")
            return Err(
                ResolutionError(
                    ResolutionErrorKind.PARSE_ERROR,
                    "JWKS endpoint returned invalid JSON.",
                )
            )

        keys = payload.get("keys") if isinstance(payload, dict) else None
        if not isinstance(keys, list):
            logger.warning("jwks_parse_failed", jwks_uri=self.jwks_uri, reason="missing_keys")
            return Err(
                ResolutionError(
                    ResolutionErrorKind.PARSE_ERROR,
                    "JWKS document is missing a 'keys' array.",
                )
            )
        return Ok(keys)
