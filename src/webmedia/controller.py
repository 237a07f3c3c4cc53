from __future__ import annotations

import logging
import threading
from concurrent.futures import Future
from enum import Enum
from typing import Callable, Optional

from .cache.freshness import is_fresh
from .cache.store import CacheStore
from .content.duration import extract_duration
from .content.rewrite import rewrite
from .fetch.fetcher import ResourceFetcher
from .models import CachePolicy, PresentationOptions, ResourceIdentity

LOGGER = logging.getLogger(__name__)

# Seconds given to the scheduler when there is nothing to show.
EXPIRED_DURATION = 5

ReadyCallback = Callable[[str, Optional[int]], None]
ExpiredCallback = Callable[[int], None]


class ControllerState(str, Enum):
    IDLE = "idle"
    EVALUATING = "evaluating"
    LOADING = "loading"
    FETCHING = "fetching"
    FALLBACK_LOADING = "fallback_loading"
    LOADED = "loaded"
    EXPIRED = "expired"
    TORN_DOWN = "torn_down"


FINAL_STATES = frozenset({ControllerState.LOADED, ControllerState.EXPIRED, ControllerState.TORN_DOWN})


class ResourceController:
    """Keeps one cached web resource in step with the display service.

    ``activate`` decides synchronously whether the cached artifact can be shown.
    When it cannot, a single fetch is dispatched and its completion drives the
    rest of the activation: store and show the new markup, fall back to the
    stale artifact, or report that nothing is available. ``on_ready`` or
    ``on_expired`` is called at most once, and never after ``teardown``.
    """

    def __init__(
        self,
        policy: CachePolicy,
        presentation: PresentationOptions,
        identity: ResourceIdentity,
        fetcher: ResourceFetcher,
        store: Optional[CacheStore] = None,
        on_ready: Optional[ReadyCallback] = None,
        on_expired: Optional[ExpiredCallback] = None,
        default_duration: int = 0,
        native_path: Optional[str] = None,
    ) -> None:
        self.policy = policy
        self.presentation = presentation
        self.identity = identity
        self.fetcher = fetcher
        # A failed store must leave the stale artifact intact for fallback.
        self.store = store or CacheStore(policy.file_path, atomic=True)
        self.on_ready = on_ready
        self.on_expired = on_expired
        self.native_path = native_path
        self.duration = default_duration
        self.duration_override: Optional[int] = None

        self._state = ControllerState.IDLE
        self._pending: Optional[Future] = None
        self._lock = threading.Lock()

    @property
    def state(self) -> ControllerState:
        return self._state

    def activate(self) -> None:
        if not self._advance(ControllerState.IDLE, ControllerState.EVALUATING):
            LOGGER.warning("Media %s already activated (state=%s)", self.identity.media_id, self._state.value)
            return

        if self.native_path:
            self._emit_ready(self.native_path, None)
            return

        try:
            exists = self.store.exists()
            last_write = self.store.last_write_time() if exists else None
        except OSError as exc:
            LOGGER.warning("Unable to inspect cached resource %s: %s", self.store.path, exc)
            exists, last_write = False, None

        if is_fresh(self.policy, exists, last_write):
            if self._advance(ControllerState.EVALUATING, ControllerState.LOADING):
                LOGGER.info("Serving cached resource %s", self.store.path)
                self._serve_cached()
            return

        self._dispatch_fetch()

    def teardown(self) -> None:
        with self._lock:
            previous = self._state
            self._state = ControllerState.TORN_DOWN
            self._pending = None
        if previous is ControllerState.FETCHING:
            LOGGER.info("Media %s torn down with a fetch outstanding", self.identity.media_id)

    def _advance(self, current: ControllerState, target: ControllerState) -> bool:
        with self._lock:
            if self._state is not current:
                return False
            self._state = target
            return True

    def _dispatch_fetch(self) -> None:
        if not self._advance(ControllerState.EVALUATING, ControllerState.FETCHING):
            return
        try:
            future = self.fetcher.fetch_async(self.identity)
        except Exception:
            LOGGER.exception("Unable to dispatch fetch for media %s", self.identity.media_id)
            self._expire()
            return
        with self._lock:
            if self._state is not ControllerState.FETCHING:
                return
            self._pending = future
        future.add_done_callback(self._on_fetch_complete)

    def _on_fetch_complete(self, future: Future) -> None:
        with self._lock:
            if future is not self._pending:
                LOGGER.info(
                    "Retrieved resource for media %s but it has already expired; ignoring",
                    self.identity.media_id,
                )
                return
            self._pending = None

        try:
            try:
                markup = future.result()
            except Exception as exc:
                LOGGER.error("Unable to get resource for media %s: %s", self.identity.media_id, exc)
                self._fallback_or_expire()
                return

            html = rewrite(markup, self.presentation, force=True)
            if not self._advance(ControllerState.FETCHING, ControllerState.LOADING):
                LOGGER.info("Media %s torn down before the resource was stored", self.identity.media_id)
                return
            try:
                self.store.write_text(html)
            except OSError as exc:
                LOGGER.error("Unable to store resource %s: %s", self.store.path, exc)
                self._fallback_or_expire(ControllerState.LOADING)
                return
            self._emit_ready(str(self.store.path), extract_duration(html))
        except Exception:
            LOGGER.exception("Unexpected failure completing fetch for media %s", self.identity.media_id)
            self._expire()

    def _fallback_or_expire(self, current: ControllerState = ControllerState.FETCHING) -> None:
        if not self.store.exists():
            LOGGER.warning("No cached copy of media %s to fall back to", self.identity.media_id)
            self._expire()
            return
        if self._advance(current, ControllerState.FALLBACK_LOADING):
            LOGGER.warning("Falling back to stale resource %s", self.store.path)
            self._serve_cached()

    def _serve_cached(self) -> None:
        try:
            markup = self.store.read_text()
            html = rewrite(markup, self.presentation)
            if html != markup:
                self.store.write_text(html)
        except (OSError, UnicodeError) as exc:
            LOGGER.error("Unable to serve cached resource %s: %s", self.store.path, exc)
            self._expire()
            return
        self._emit_ready(str(self.store.path), extract_duration(html))

    def _emit_ready(self, path: str, override: Optional[int]) -> None:
        with self._lock:
            if self._state in FINAL_STATES:
                LOGGER.debug("Suppressing ready for media %s in state %s", self.identity.media_id, self._state.value)
                return
            self._state = ControllerState.LOADED
            self.duration_override = override
            if override is not None:
                self.duration = override
        if self.on_ready is not None:
            self.on_ready(path, override)

    def _expire(self) -> None:
        with self._lock:
            if self._state in FINAL_STATES:
                return
            self._state = ControllerState.EXPIRED
            self.duration = EXPIRED_DURATION
        LOGGER.warning("Media %s has no content; expiring in %ss", self.identity.media_id, EXPIRED_DURATION)
        if self.on_expired is not None:
            self.on_expired(EXPIRED_DURATION)
