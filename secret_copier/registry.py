"""
In-memory registries of namespaces and labelled secrets.

Both are fed by watch notifications from separate threads. Each registry
owns its own read/write lock so namespace and secret threads never wait on
each other. Reads return copies; callers must tolerate them going stale.
"""
from __future__ import annotations
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Set

from .logging_config import get_logger

logger = get_logger(__name__)


class ReadWriteLock:
    """Many readers or one writer. Waiting writers block new readers."""

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class NamespaceRegistry:
    """Set of namespace names currently present in the cluster."""

    def __init__(self):
        self._lock = ReadWriteLock()
        self._names: Set[str] = set()

    def add_namespace(self, name: str) -> None:
        with self._lock.write_locked():
            self._names.add(name)
        logger.debug("Namespace registered: %s", name)

    def remove_namespace(self, name: str) -> None:
        with self._lock.write_locked():
            self._names.discard(name)
        logger.debug("Namespace removed: %s", name)

    def list_namespaces(self) -> List[str]:
        with self._lock.read_locked():
            return sorted(self._names)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._names)


class SecretRegistry:
    """Namespace -> names of labelled secrets seen there.

    Only bookkeeping; replication decisions never read it.
    """

    def __init__(self):
        self._lock = ReadWriteLock()
        self._by_ns: Dict[str, Set[str]] = {}

    def add_tagged(self, namespace: str, name: str) -> None:
        with self._lock.write_locked():
            self._by_ns.setdefault(namespace, set()).add(name)
        logger.debug("Tagged secret registered: %s/%s", namespace, name)

    def remove_tagged(self, namespace: str, name: str) -> None:
        with self._lock.write_locked():
            names = self._by_ns.get(namespace)
            if names is None:
                return
            names.discard(name)
            if not names:
                del self._by_ns[namespace]
        logger.debug("Tagged secret removed: %s/%s", namespace, name)

    def snapshot(self) -> Dict[str, Set[str]]:
        with self._lock.read_locked():
            return {ns: set(names) for ns, names in self._by_ns.items()}
