from __future__ import annotations

import logging
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Optional, Protocol

from ..models import ResourceIdentity

LOGGER = logging.getLogger(__name__)


class FetchFailure(RuntimeError):
    """The resource could not be retrieved, whatever the cause."""


class ResourceClient(Protocol):
    def get_resource(self, identity: ResourceIdentity) -> str:  # pragma: no cover - structural contract
        ...


class ResourceFetcher:
    """One-shot asynchronous retrieval of a resource's markup.

    Each call dispatches exactly one request; the outcome is delivered through
    the returned future, either the markup or a ``FetchFailure``.
    """

    def __init__(self, client: ResourceClient, executor: Optional[Executor] = None) -> None:
        self.client = client
        self._owns_executor = executor is None
        self.executor = executor or ThreadPoolExecutor(max_workers=1, thread_name_prefix="webmedia-fetch")

    def _fetch(self, identity: ResourceIdentity) -> str:
        try:
            return self.client.get_resource(identity)
        except Exception as exc:
            raise FetchFailure(str(exc) or exc.__class__.__name__) from exc

    def fetch_async(self, identity: ResourceIdentity) -> Future:
        LOGGER.debug("Dispatching fetch for media %s", identity.media_id)
        return self.executor.submit(self._fetch, identity)

    def close(self) -> None:
        if self._owns_executor:
            self.executor.shutdown(wait=False)
