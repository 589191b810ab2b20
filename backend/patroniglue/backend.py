"""HTTP client for the Patroni REST API, backed by the status cache."""

from __future__ import annotations

import logging
from typing import Optional

import httpx

from patroniglue.cache import Cache, CacheWriteError
from patroniglue.log import httpx_event_hooks
from patroniglue.models import BackendConfig

logger = logging.getLogger("patroniglue.backend")

PRIMARY = "primary"
READ_WRITE = "read-write"
REPLICA = "replica"
READ_ONLY = "read-only"
STATUS_KEYS: tuple[str, ...] = (PRIMARY, READ_WRITE, REPLICA, READ_ONLY)


class TransportError(RuntimeError):
    """Raised when the backend cannot be reached or did not answer."""


class HTTPBackend:
    """Resolves status keys against the cache, then against the backend."""

    def __init__(
        self,
        config: BackendConfig,
        cache: Cache,
        *,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.config = config
        self.cache = cache
        self._owns_client = client is None
        self._client = client

    def _http_client(self) -> httpx.AsyncClient:
        # Owned clients are rebuilt after aclose(); injected ones are used as given.
        if self._client is None or (self._owns_client and self._client.is_closed):
            self._client = httpx.AsyncClient(
                verify=not self.config.insecure,
                timeout=httpx.Timeout(timeout=self.config.timeout),
                event_hooks=httpx_event_hooks(),
            )
        return self._client

    @property
    def base_url(self) -> str:
        return self.config.base_url

    async def resolve(self, key: str) -> bool:
        """Return the state of ``key``, from cache or from a single upstream GET.

        HTTP 200 means True, any other response means False; the body is
        never read. Transport failures raise TransportError and leave the
        cache untouched. A value that could not be cached is not returned:
        CacheWriteError propagates.
        """
        if key not in STATUS_KEYS:
            raise ValueError(f"unknown status key: {key!r}")

        state = await self.cache.get(key)
        if state is not None:
            return state

        url = f"{self.base_url}/{key}"
        client = self._http_client()
        try:
            response = await client.send(client.build_request("GET", url), stream=True)
        except httpx.TransportError as exc:
            logger.warning("could not request remote backend %s (%s): %s", url, exc.__class__.__name__, exc)
            raise TransportError(f"could not request {url}: {exc.__class__.__name__}") from exc

        try:
            state = response.status_code == httpx.codes.OK
        finally:
            await response.aclose()

        try:
            await self.cache.set(key, state)
        except CacheWriteError as exc:
            logger.warning("could not save %s key to cache: %s", key, exc)
            raise
        return state

    async def is_primary(self) -> bool:
        return await self.resolve(PRIMARY)

    async def is_read_write(self) -> bool:
        return await self.resolve(READ_WRITE)

    async def is_replica(self) -> bool:
        return await self.resolve(REPLICA)

    async def is_read_only(self) -> bool:
        return await self.resolve(READ_ONLY)

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
