"""
List + watch loops for namespaces and secrets.

Each kind runs on its own thread:
  1. list everything into the local cache, mark the kind synced, then
     deliver each object as ADDED
  2. watch from the list's resourceVersion, reconnecting on timeout
  3. on 410 Gone (expired resourceVersion) relist; objects missing from the
     new list are delivered as DELETED, changed ones as MODIFIED

All loops exit once the shared stop event is set.
"""
from __future__ import annotations
import threading
import time
from typing import Callable, Dict, List, Optional, Tuple

from kubernetes import client, watch
from kubernetes.client import ApiException

from .events import EventType, NamespaceEvent, SecretEvent
from .handlers import EventDispatcher
from .logging_config import get_logger

logger = get_logger(__name__)

HTTP_GONE = 410
WATCH_EVENT_TYPES = {t.value for t in EventType}

ObjectKey = Tuple[Optional[str], str]
EventCallback = Callable[[EventType, object], None]


def object_key(obj) -> ObjectKey:
    return (obj.metadata.namespace, obj.metadata.name)


class ExpiredResourceVersion(Exception):
    pass


class ResourceWatcher(threading.Thread):
    def __init__(
        self,
        kind: str,
        list_func: Callable,
        on_event: EventCallback,
        stop_event: threading.Event,
        watch_timeout: int = 30,
        retry_delay: float = 5.0,
        watch_factory: Callable[[], watch.Watch] = watch.Watch,
        after: Optional[threading.Event] = None,
    ):
        super().__init__(name=f"watch-{kind}", daemon=True)
        self.kind = kind
        self.after = after
        self.list_func = list_func
        self.on_event = on_event
        self.stop_event = stop_event
        self.watch_timeout = watch_timeout
        self.retry_delay = retry_delay
        self.watch_factory = watch_factory
        self.synced = threading.Event()
        self.delivered = threading.Event()
        self._cache: Dict[ObjectKey, object] = {}
        self._watch: Optional[watch.Watch] = None

    def run(self):
        if self.after is not None:
            while not self.after.wait(0.1):
                if self.stop_event.is_set():
                    return
        logger.debug("Run %s watcher", self.kind)
        while not self.stop_event.is_set():
            try:
                resource_version = self.relist()
                self.watch_from(resource_version)
            except ExpiredResourceVersion:
                logger.warning("%s watch expired, relisting", self.kind)
            except ApiException as e:
                if e.status == HTTP_GONE:
                    logger.warning("%s watch expired, relisting", self.kind)
                    continue
                logger.error("%s list/watch failed: HTTP %s %s", self.kind, e.status, e.reason)
                self.stop_event.wait(self.retry_delay)
            except Exception:
                logger.exception("%s list/watch failed", self.kind)
                self.stop_event.wait(self.retry_delay)
        logger.debug("%s watcher stopped", self.kind)

    def relist(self) -> str:
        """List all objects and reconcile the local cache against them.

        ``synced`` is set as soon as the cache holds the list result, before
        any handler runs; ``delivered`` once every resulting event was handled.
        """
        result = self.list_func()
        fresh = {object_key(obj): obj for obj in result.items}

        pending: List[Tuple[EventType, object]] = []
        for key in list(self._cache):
            if key not in fresh:
                pending.append((EventType.DELETED, self._cache.pop(key)))
        for key, obj in fresh.items():
            old = self._cache.get(key)
            self._cache[key] = obj
            if old is None:
                pending.append((EventType.ADDED, obj))
            elif old.metadata.resource_version != obj.metadata.resource_version:
                pending.append((EventType.MODIFIED, obj))

        logger.debug("Listed %d %s", len(fresh), self.kind)
        self.synced.set()
        for event_type, obj in pending:
            if self.stop_event.is_set():
                break
            self._deliver(event_type, obj)
        self.delivered.set()
        return result.metadata.resource_version

    def watch_from(self, resource_version: str) -> None:
        while not self.stop_event.is_set():
            w = self.watch_factory()
            self._watch = w
            try:
                for event in w.stream(self.list_func, resource_version=resource_version,
                                      timeout_seconds=self.watch_timeout):
                    if self.stop_event.is_set():
                        w.stop()
                        break
                    raw_type = event.get("type")
                    if raw_type == "ERROR":
                        raw = event.get("raw_object") or {}
                        if raw.get("code") == HTTP_GONE:
                            raise ExpiredResourceVersion()
                        logger.error("%s watch error: %s", self.kind, raw.get("message"))
                        continue
                    if raw_type not in WATCH_EVENT_TYPES:
                        continue
                    obj = event["object"]
                    resource_version = obj.metadata.resource_version or resource_version
                    self._apply(EventType.from_watch(raw_type), obj)
            finally:
                self._watch = None

    def _apply(self, event_type: EventType, obj) -> None:
        key = object_key(obj)
        if event_type is EventType.DELETED:
            self._cache.pop(key, None)
        else:
            if event_type is EventType.ADDED and key in self._cache:
                event_type = EventType.MODIFIED
            self._cache[key] = obj
        self._deliver(event_type, obj)

    def _deliver(self, event_type: EventType, obj) -> None:
        try:
            self.on_event(event_type, obj)
        except Exception:
            logger.exception("Handler failed for %s %s/%s", self.kind, obj.metadata.namespace, obj.metadata.name)

    def stop_stream(self) -> None:
        w = self._watch
        if w is not None:
            w.stop()


class WatchSupervisor:
    """Owns the namespace and secret watchers and their shared stop signal.

    The secret watcher only starts listing once every namespace reached the
    registry, so the first pass over existing secrets sees all of them.
    The sync barrier covers the lists only, not the replication they trigger.
    """

    def __init__(self, core: client.CoreV1Api, dispatcher: EventDispatcher,
                 stop_event: Optional[threading.Event] = None, **watcher_opts):
        self.dispatcher = dispatcher
        self.stop_event = stop_event or threading.Event()
        self.namespace_watcher = ResourceWatcher(
            "namespaces", core.list_namespace, self._on_namespace, self.stop_event, **watcher_opts)
        self.secret_watcher = ResourceWatcher(
            "secrets", core.list_secret_for_all_namespaces, self._on_secret, self.stop_event,
            after=self.namespace_watcher.delivered, **watcher_opts)

    @property
    def watchers(self):
        return (self.namespace_watcher, self.secret_watcher)

    def _on_namespace(self, event_type: EventType, obj) -> None:
        self.dispatcher.handle_namespace(NamespaceEvent(event_type, obj.metadata.name))

    def _on_secret(self, event_type: EventType, obj) -> None:
        self.dispatcher.handle_secret(SecretEvent(event_type, obj))

    def start(self) -> None:
        for w in self.watchers:
            w.start()

    def wait_for_initial_sync(self, timeout: float) -> bool:
        """Block until both kinds finished their first list.

        One deadline covers both. Returns False on timeout or when stopped
        meanwhile.
        """
        deadline = time.monotonic() + timeout
        for w in self.watchers:
            while not w.synced.is_set():
                remaining = deadline - time.monotonic()
                if remaining <= 0 or self.stop_event.is_set():
                    return False
                w.synced.wait(min(remaining, 0.5))
        return True

    def stop(self, join_timeout: float = 5.0) -> None:
        self.stop_event.set()
        for w in self.watchers:
            w.stop_stream()
        for w in self.watchers:
            if w.is_alive():
                w.join(join_timeout)
