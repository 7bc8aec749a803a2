"""Shared fixtures: a recording in-memory Secret store and Secret builders."""

import copy
from typing import Dict, List, Optional, Tuple

import pytest
from kubernetes import client

from secret_copier.constants import COPIER_LABEL, ORIGIN_ANNOTATION, ORIGIN_CLONE
from secret_copier.engine import ReplicationEngine
from secret_copier.errors import StoreError
from secret_copier.fingerprint import Fingerprinter
from secret_copier.registry import NamespaceRegistry, SecretRegistry


def make_secret(
    name: str = "db-cred",
    namespace: str = "default",
    data: Optional[Dict[str, str]] = None,
    labels: Optional[Dict[str, str]] = None,
    annotations: Optional[Dict[str, str]] = None,
    tagged: bool = True,
    clone: bool = False,
    resource_version: str = "100",
) -> client.V1Secret:
    labels = dict(labels or {})
    if tagged:
        labels.setdefault(COPIER_LABEL, "yes")
    annotations = dict(annotations or {})
    if clone:
        annotations[ORIGIN_ANNOTATION] = ORIGIN_CLONE
    return client.V1Secret(
        api_version="v1",
        kind="Secret",
        type="Opaque",
        metadata=client.V1ObjectMeta(
            name=name,
            namespace=namespace,
            labels=labels,
            annotations=annotations,
            resource_version=resource_version,
            self_link=f"/api/v1/namespaces/{namespace}/secrets/{name}",
            uid=f"uid-{namespace}-{name}",
        ),
        data={"user": "a"} if data is None else data,
    )


class FakeSecretStore:
    """Per-namespace view over a shared dict of (namespace, name) -> V1Secret."""

    def __init__(self, backend: "FakeCluster", namespace: str):
        self.backend = backend
        self.namespace = namespace

    def get(self, name):
        self.backend.calls.append(("get", self.namespace, name))
        self.backend.maybe_fail("get", self.namespace, name)
        obj = self.backend.objects.get((self.namespace, name))
        return copy.deepcopy(obj)

    def create(self, secret):
        name = secret.metadata.name
        self.backend.calls.append(("create", self.namespace, name))
        self.backend.maybe_fail("create", self.namespace, name)
        self.backend.objects[(self.namespace, name)] = copy.deepcopy(secret)
        return secret

    def update(self, secret):
        name = secret.metadata.name
        self.backend.calls.append(("update", self.namespace, name))
        self.backend.maybe_fail("update", self.namespace, name)
        self.backend.objects[(self.namespace, name)] = copy.deepcopy(secret)
        return secret


class FakeCluster:
    def __init__(self):
        self.objects: Dict[Tuple[str, str], client.V1Secret] = {}
        self.calls: List[Tuple[str, str, str]] = []
        self.failures: Dict[Tuple[str, str], int] = {}

    def store_for(self, namespace: str) -> FakeSecretStore:
        return FakeSecretStore(self, namespace)

    def fail(self, operation: str, namespace: str, status: int = 500):
        self.failures[(operation, namespace)] = status

    def maybe_fail(self, operation, namespace, name):
        status = self.failures.get((operation, namespace))
        if status is not None:
            raise StoreError(operation, namespace, name, status, "injected")

    def mutations(self):
        return [c for c in self.calls if c[0] in ("create", "update")]

    def ops(self, operation):
        return [c for c in self.calls if c[0] == operation]


@pytest.fixture
def cluster():
    return FakeCluster()


@pytest.fixture
def namespaces():
    return NamespaceRegistry()


@pytest.fixture
def secrets():
    return SecretRegistry()


@pytest.fixture
def fingerprinter():
    return Fingerprinter()


@pytest.fixture
def engine(namespaces, secrets, cluster, fingerprinter):
    return ReplicationEngine(namespaces, secrets, cluster.store_for, fingerprinter)
