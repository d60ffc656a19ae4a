import os
import sys
import threading

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from jwks_resolver.resolver_errors import Err, Ok
from jwks_resolver.security.cache_store import InMemoryCacheStore
from jwks_resolver.security.key_store import KeyStore, KeyStoreError
from jwks_resolver.security.signing_key import filter_eligible
from jwk_fixtures import record


def test_lookup_on_empty_store_is_not_found():
    store = KeyStore()

    assert store.lookup("K1") == Err(KeyStoreError.NOT_FOUND)
    assert store.current() == ()


def test_replace_then_lookup_returns_exact_key():
    store = KeyStore()
    keys = filter_eligible([record("K1"), record("K2")])

    assert store.replace(keys) == Ok(keys)
    assert store.lookup("K2") == Ok(keys[1])
    assert store.lookup("k2") == Err(KeyStoreError.NOT_FOUND)


def test_replace_with_empty_set_keeps_previous_keys():
    store = KeyStore()
    keys = filter_eligible([record("K1")])
    store.replace(keys)

    assert store.replace([]) == Err(KeyStoreError.EMPTY_SET)
    assert store.current() == keys


def test_replace_discards_previous_set_wholesale():
    store = KeyStore()
    store.replace(filter_eligible([record("K1")]))
    store.replace(filter_eligible([record("K2")]))

    assert store.lookup("K1") == Err(KeyStoreError.NOT_FOUND)
    assert isinstance(store.lookup("K2"), Ok)


def test_duplicate_kid_resolves_to_first_stored_key():
    store = KeyStore()
    keys = filter_eligible([record("K1", n="first"), record("K1", n="second")])
    store.replace(keys)

    result = store.lookup("K1")

    assert isinstance(result, Ok)
    assert result.value.n == "first"


def test_failed_cache_write_is_reported():
    class _ReadOnlyCache:
        def get(self, cache_key):
            return None

        def put(self, cache_key, value):
            return False

    store = KeyStore(cache=_ReadOnlyCache())

    assert store.replace(filter_eligible([record("K1")])) == Err(KeyStoreError.WRITE_FAILED)


def test_store_uses_configured_cache_key():
    cache = InMemoryCacheStore()
    store = KeyStore(cache=cache, cache_key="issuer-a")
    keys = filter_eligible([record("K1")])
    store.replace(keys)

    assert cache.get("issuer-a") == keys
    assert cache.get("signing_keys") is None


def test_in_memory_cache_expires_entries_only_with_ttl(monkeypatch):
    clock = {"now": 100.0}
    monkeypatch.setattr("jwks_resolver.security.cache_store.time.monotonic", lambda: clock["now"])

    forever = InMemoryCacheStore()
    short = InMemoryCacheStore(ttl_seconds=10)
    forever.put("k", "v")
    short.put("k", "v")

    clock["now"] = 111.0

    assert forever.get("k") == "v"
    assert short.get("k") is None


def test_in_memory_cache_delete():
    cache = InMemoryCacheStore()
    cache.put("k", "v")
    cache.delete("k")

    assert cache.get("k") is None


def test_concurrent_lookups_see_whole_key_sets():
    store = KeyStore()
    old_set = filter_eligible([record("K1"), record("K2")])
    new_set = filter_eligible([record("K3")])
    store.replace(old_set)
    stop = threading.Event()
    observed = []

    def _writer():
        for i in range(2000):
            store.replace(new_set if i % 2 else old_set)
        stop.set()

    def _reader():
        while True:
            observed.append(store.current())
            store.lookup("K1")
            if stop.is_set():
                break

    readers = [threading.Thread(target=_reader) for _ in range(4)]
    writer = threading.Thread(target=_writer)
    for thread in readers:
        thread.start()
    writer.start()
    writer.join()
    for thread in readers:
        thread.join()

    assert observed
    assert all(keys in (old_set, new_set) for keys in observed)
