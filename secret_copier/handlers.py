"""Route watch notifications to the registries and the replication engine."""
from __future__ import annotations

from .constants import COPIER_LABEL
from .engine import ReplicationEngine, has_copier_label
from .events import EventType, NamespaceEvent, SecretEvent
from .logging_config import get_logger
from .registry import NamespaceRegistry, SecretRegistry

logger = get_logger(__name__)


class EventDispatcher:
    def __init__(self, namespaces: NamespaceRegistry, secrets: SecretRegistry, engine: ReplicationEngine):
        self.namespaces = namespaces
        self.secrets = secrets
        self.engine = engine

    def handle_namespace(self, event: NamespaceEvent) -> None:
        match event:
            case NamespaceEvent(type=EventType.ADDED, name=name):
                logger.debug("Found namespace: %s", name)
                self.namespaces.add_namespace(name)
            case NamespaceEvent(type=EventType.DELETED, name=name):
                logger.debug("Removed namespace: %s", name)
                self.namespaces.remove_namespace(name)
            case _:
                pass

    def handle_secret(self, event: SecretEvent) -> None:
        match event:
            case SecretEvent(type=EventType.MODIFIED, secret=secret) if not has_copier_label(secret):
                logger.debug("Secret %s/%s lost label %s", event.namespace, event.name, COPIER_LABEL)
                self.secrets.remove_tagged(event.namespace, event.name)
            case SecretEvent(type=EventType.ADDED | EventType.MODIFIED, secret=secret):
                self.engine.on_secret_observed(secret)
            case SecretEvent(type=EventType.DELETED):
                logger.debug("Removed secret: %s/%s", event.namespace, event.name)
                self.secrets.remove_tagged(event.namespace, event.name)
