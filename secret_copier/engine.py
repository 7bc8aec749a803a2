"""
Replication engine.

Every observation of a labelled Secret is copied into each namespace in the
namespace registry. For each target namespace exactly one of create, update
or nothing happens:

  - no Secret of that name in the target  -> create the replica
  - one exists with a different payload   -> update it with the replica
  - one exists with the same payload      -> nothing to do

Replicas carry ``secret-copier/origin: clone``; observing one is a no-op,
which is what stops replicas from being copied again. Store failures are
logged and the pair is abandoned until the secret is observed again.
"""
from __future__ import annotations
import copy
import enum
from typing import Dict, Iterable, Optional

from kubernetes import client

from .constants import COPIER_LABEL, LAST_APPLIED_ANNOTATION, ORIGIN_ANNOTATION, ORIGIN_CLONE
from .errors import StoreError
from .fingerprint import Fingerprinter
from .logging_config import get_logger
from .registry import NamespaceRegistry, SecretRegistry
from .store import StoreFactory

logger = get_logger(__name__)


class ReplicationOutcome(enum.Enum):
    CREATED = "created"
    UPDATED = "updated"
    UNCHANGED = "unchanged"
    FAILED = "failed"
    DRY_RUN = "dry-run"


def has_copier_label(secret: client.V1Secret) -> bool:
    labels = secret.metadata.labels or {}
    return COPIER_LABEL in labels


def is_clone(secret: client.V1Secret) -> bool:
    annotations = secret.metadata.annotations or {}
    return ORIGIN_ANNOTATION in annotations


def is_replicable(secret: client.V1Secret) -> bool:
    """Labelled for copying and not itself a replica."""
    return has_copier_label(secret) and not is_clone(secret)


def build_replica(secret: client.V1Secret, target_namespace: str) -> client.V1Secret:
    """Deep copy ``secret`` into ``target_namespace`` without server-assigned fields."""
    replica = copy.deepcopy(secret)
    meta = replica.metadata
    meta.namespace = target_namespace
    meta.resource_version = None
    meta.self_link = None
    meta.uid = None
    meta.creation_timestamp = None
    meta.managed_fields = None
    # owners live in the origin namespace; the GC would delete the replica
    meta.owner_references = None

    annotations = dict(meta.annotations or {})
    annotations.pop(LAST_APPLIED_ANNOTATION, None)
    annotations[ORIGIN_ANNOTATION] = ORIGIN_CLONE
    meta.annotations = annotations
    return replica


class ReplicationEngine:
    def __init__(
        self,
        namespaces: NamespaceRegistry,
        secrets: SecretRegistry,
        store_factory: StoreFactory,
        fingerprinter: Fingerprinter,
        skip_origin_namespace: bool = False,
        exclude_namespaces: Optional[Iterable[str]] = None,
        dry_run: bool = False,
    ):
        self.namespaces = namespaces
        self.secrets = secrets
        self.store_factory = store_factory
        self.fingerprinter = fingerprinter
        self.skip_origin_namespace = skip_origin_namespace
        self.exclude_namespaces = frozenset(exclude_namespaces or ())
        self.dry_run = dry_run

    def targets_for(self, secret: client.V1Secret):
        origin = secret.metadata.namespace
        targets = []
        for ns in self.namespaces.list_namespaces():
            if ns in self.exclude_namespaces:
                logger.debug("Skip excluded namespace %s", ns)
                continue
            if self.skip_origin_namespace and ns == origin:
                continue
            targets.append(ns)
        return targets

    def on_secret_observed(self, secret: client.V1Secret) -> Dict[str, ReplicationOutcome]:
        """Copy ``secret`` into every known namespace.

        Returns the outcome per target namespace; empty when the secret is
        not eligible.
        """
        meta = secret.metadata
        if not has_copier_label(secret):
            return {}
        if is_clone(secret):
            logger.debug("Secret %s/%s is a replica (%s=%s), skip",
                         meta.namespace, meta.name, ORIGIN_ANNOTATION,
                         meta.annotations.get(ORIGIN_ANNOTATION))
            return {}

        self.secrets.add_tagged(meta.namespace, meta.name)
        logger.debug("Known namespaces: %s", self.namespaces.list_namespaces())
        logger.debug("Known tagged secrets: %s", self.secrets.snapshot())

        results: Dict[str, ReplicationOutcome] = {}
        for ns in self.targets_for(secret):
            results[ns] = self.replicate_into(secret, ns)
        return results

    def replicate_into(self, secret: client.V1Secret, target_namespace: str) -> ReplicationOutcome:
        replica = build_replica(secret, target_namespace)
        name = replica.metadata.name
        ref = f"{target_namespace}/{name}"
        store = self.store_factory(target_namespace)

        try:
            existing = store.get(name)
            if existing is None:
                logger.debug("Secret %s does not exist, create", ref)
                if self.dry_run:
                    logger.info("Dry run, would create: %s", ref)
                    return ReplicationOutcome.DRY_RUN
                store.create(replica)
                logger.info("Created: %s", ref)
                return ReplicationOutcome.CREATED

            want = self.fingerprinter.digest(replica.data)
            have = self.fingerprinter.digest(existing.data)
            logger.debug("Checksums for %s: source=%s existing=%s", ref, want.hex()[:12], have.hex()[:12])
            if want == have:
                logger.debug("Secret data already actual: %s", ref)
                return ReplicationOutcome.UNCHANGED

            if self.dry_run:
                logger.info("Dry run, would update: %s", ref)
                return ReplicationOutcome.DRY_RUN
            store.update(replica)
            logger.info("Updated: %s", ref)
            return ReplicationOutcome.UPDATED
        except StoreError as e:
            logger.info("Err: %s", e)
            return ReplicationOutcome.FAILED
