from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI
from pydantic import BaseModel, Field

from jwks_resolver.config import load_settings
from jwks_resolver.log_config import configure_logging
from jwks_resolver.resolver_errors import Err
from jwks_resolver.security.auth_dependency import (
    close_key_resolver,
    http_error,
    require_token_verifier,
    resolver_or_500,
)
from jwks_resolver.security.token_resolution import RS256, RS256Verifier

configure_logging(load_settings().log_level)


@asynccontextmanager
async def lifespan(_app: FastAPI):
    yield
    close_key_resolver()


app = FastAPI(title="JWKS RSA Key Resolver", version="0.1.0", lifespan=lifespan)


class HealthResponse(BaseModel):
    status: str = "ok"


class CachedKeysResponse(BaseModel):
    kids: list[str] = Field(default_factory=list, description="Key ids currently held in the cache")


class SigningKeyResponse(BaseModel):
    kid: str
    source: str = Field(..., description="'cache' or 'refresh'")
    jwk: dict[str, Any]


class TokenKeyResponse(BaseModel):
    kid: str
    alg: str
    source: str


@app.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse()


@app.get("/signing-keys", response_model=CachedKeysResponse)
def list_cached_signing_keys():
    resolver = resolver_or_500()
    return CachedKeysResponse(kids=[key.kid for key in resolver.key_store.current()])


@app.get("/signing-keys/{kid}", response_model=SigningKeyResponse)
def get_signing_key(kid: str):
    """
    Resolves a kid, refetching the JWKS on a cache miss.

    Unauthenticated: every unknown kid costs one request to the issuer, so
    expose this route only on an internal network.
    """
    result = resolver_or_500().resolve(kid)
    if isinstance(result, Err):
        raise http_error(result.error)
    resolved = result.value
    return SigningKeyResponse(
        kid=resolved.key.kid,
        source=resolved.source.value,
        jwk=resolved.key.to_jwk(),
    )


@app.get("/token/signing-key", response_model=TokenKeyResponse)
def get_token_signing_key(verifier: RS256Verifier = Depends(require_token_verifier)):
    return TokenKeyResponse(kid=verifier.kid, alg=RS256, source=verifier.source.value)
