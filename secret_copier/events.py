"""Typed watch notifications for the two kinds we observe."""
from __future__ import annotations
import enum
from dataclasses import dataclass

from kubernetes import client


class EventType(enum.Enum):
    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"

    @classmethod
    def from_watch(cls, raw: str) -> "EventType":
        """Map a watch stream ``type`` field; raises ValueError for BOOKMARK/ERROR."""
        return cls(raw)


@dataclass(frozen=True)
class NamespaceEvent:
    type: EventType
    name: str


@dataclass(frozen=True)
class SecretEvent:
    type: EventType
    secret: client.V1Secret

    @property
    def namespace(self) -> str:
        return self.secret.metadata.namespace

    @property
    def name(self) -> str:
        return self.secret.metadata.name
