"""Fetch-on-miss cache of a platform's published signing keys."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, Mapping, Optional

import jwt
import requests

from .errors import KeyFetchFailed, KeyNotFound
from .models import PublicKeySet
from .utils.retry import sleep_before_retry

logger = logging.getLogger(__name__)

# Any error a fetcher raises other than KeyFetchFailed is treated as transient.
KeySetFetcher = Callable[[], Mapping[str, Any]]


class HttpKeySetFetcher:
    """Downloads a JWKS document with a bounded timeout."""

    def __init__(self, url: str, timeout: float = 5.0) -> None:
        self.url = url
        self.timeout = timeout

    def __call__(self) -> Mapping[str, Any]:
        if not self.url:
            raise KeyFetchFailed("No key-set URL configured")
        resp = requests.get(self.url, timeout=self.timeout)
        resp.raise_for_status()
        return resp.json()


def parse_key_set(document: Mapping[str, Any]) -> Dict[str, jwt.PyJWK]:
    """Convert a JWKS document into a mapping of key id to key.

    Entries without a ``kid`` or with key types PyJWT cannot load are skipped.
    """
    entries = document.get("keys") if isinstance(document, Mapping) else None
    if not isinstance(entries, list):
        raise KeyFetchFailed("Key-set document has no 'keys' array")

    keys: Dict[str, jwt.PyJWK] = {}
    for entry in entries:
        kid = entry.get("kid") if isinstance(entry, Mapping) else None
        if not isinstance(kid, str) or not kid:
            logger.warning("Skipping key-set entry without a key id")
            continue
        try:
            keys[kid] = jwt.PyJWK(dict(entry))
        except (jwt.PyJWKError, jwt.InvalidKeyError) as exc:
            logger.warning(f"Skipping unusable key {kid}: {exc}")
    return keys


class KeyResolver:
    """Resolves key ids against a cached :class:`PublicKeySet`.

    Lookups read the current snapshot without locking. A miss fetches the
    key-set once, replaces the snapshot wholesale and looks up again, so keys
    that rotated out of the published set are dropped at that point. There is
    no time-based expiry; a stale key stays usable until a miss forces a
    refetch.

    Concurrent misses may each fetch; the lock only guards the swap so that an
    older snapshot never replaces a newer one.
    """

    def __init__(
        self,
        fetcher: KeySetFetcher,
        retries: int = 1,
        retry_backoff: float = 0.5,
        name: str = "default",
    ) -> None:
        self._fetcher = fetcher
        self._retries = max(0, min(retries, 1))
        self._retry_backoff = retry_backoff
        self._key_set = PublicKeySet()
        self._swap_lock = threading.Lock()
        self.name = name

    @classmethod
    def from_url(
        cls,
        url: str,
        timeout: float = 5.0,
        retries: int = 1,
        retry_backoff: float = 0.5,
        name: str = "default",
    ) -> "KeyResolver":
        return cls(
            HttpKeySetFetcher(url, timeout=timeout),
            retries=retries,
            retry_backoff=retry_backoff,
            name=name,
        )

    @property
    def key_set(self) -> PublicKeySet:
        return self._key_set

    def resolve(self, key_id: str) -> jwt.PyJWK:
        """Return the verification key for ``key_id``.

        Raises:
            KeyFetchFailed: The key-set could not be downloaded.
            KeyNotFound: The key id is absent even after a refetch.
        """
        key = self._key_set.get(key_id)
        if key is not None:
            return key

        logger.debug(f"Key {key_id} not cached for {self.name}, refreshing key-set")
        key = self.refresh().get(key_id)
        if key is None:
            raise KeyNotFound(key_id)
        return key

    def refresh(self) -> PublicKeySet:
        """Fetch the published key-set and replace the cached snapshot."""
        started_at = time.time()
        document = self._fetch()
        key_set = PublicKeySet.build(parse_key_set(document), fetched_at=started_at)
        with self._swap_lock:
            if key_set.fetched_at >= self._key_set.fetched_at:
                self._key_set = key_set
        logger.info(f"Refreshed {self.name} key-set with {len(key_set)} keys")
        return key_set

    def _fetch(self) -> Mapping[str, Any]:
        last_error: Optional[Exception] = None
        for attempt in range(self._retries + 1):
            if attempt:
                sleep_before_retry(attempt - 1, base=self._retry_backoff)
            try:
                return self._fetcher()
            except KeyFetchFailed:
                raise
            except Exception as exc:
                last_error = exc
                logger.warning(
                    f"Key-set fetch for {self.name} failed on attempt {attempt + 1}: {exc}"
                )

        logger.error(f"Giving up on {self.name} key-set fetch: {last_error}")
        raise KeyFetchFailed(f"Could not fetch {self.name} key-set: {last_error}") from last_error
