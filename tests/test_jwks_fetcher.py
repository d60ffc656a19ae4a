import os
import sys

import httpx
import pytest

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from jwks_resolver.resolver_errors import Err, Ok, ResolutionErrorKind
from jwks_resolver.security.jwks_fetcher import JwksFetcher
from jwk_fixtures import record

JWKS_URI = "https://issuer.example.com/.well-known/jwks.json"


def _fetcher(handler) -> JwksFetcher:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return JwksFetcher(jwks_uri=JWKS_URI, http_client=client)


def test_fetch_returns_raw_key_records():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        return httpx.Response(200, json={"keys": [record("K1"), {"kty": "EC"}]})

    result = _fetcher(handler).fetch_raw()

    assert seen["url"] == JWKS_URI
    assert result == Ok([record("K1"), {"kty": "EC"}])


@pytest.mark.parametrize("status_code", [301, 404, 500, 503])
def test_non_success_status_is_fetch_error(status_code):
    result = _fetcher(lambda request: httpx.Response(status_code, json={"keys": []})).fetch_raw()

    assert isinstance(result, Err)
    assert result.error.kind is ResolutionErrorKind.FETCH_ERROR
    assert str(status_code) in result.error.detail


@pytest.mark.parametrize(
    "exc_type",
    [httpx.ConnectError, httpx.ReadTimeout, httpx.ConnectTimeout],
)
def test_transport_failures_and_timeouts_are_fetch_errors(exc_type):
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type("issuer unreachable", request=request)

    result = _fetcher(handler).fetch_raw()

    assert isinstance(result, Err)
    assert result.error.kind is ResolutionErrorKind.FETCH_ERROR


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, content=b"<html>not json</html>"),
        httpx.Response(200, json=[record("K1")]),
        httpx.Response(200, json={"jwks": []}),
        httpx.Response(200, json={"keys": {"kid": "K1"}}),
        httpx.Response(200, content=b"[" * 200000 + b"]" * 200000),
    ],
)
def test_malformed_documents_are_parse_errors(response):
    result = _fetcher(lambda request: response).fetch_raw()

    assert isinstance(result, Err)
    assert result.error.kind is ResolutionErrorKind.PARSE_ERROR


def test_close_releases_only_the_fetchers_own_client():
    injected = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    JwksFetcher(jwks_uri=JWKS_URI, http_client=injected).close()
    owned = JwksFetcher(jwks_uri=JWKS_URI)
    owned.close()

    assert not injected.is_closed
    assert owned._client.is_closed
    injected.close()
