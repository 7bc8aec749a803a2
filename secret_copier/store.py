"""
Secret store for a single namespace, backed by ``CoreV1Api``.

``get`` returns None when the Secret does not exist; every other API failure
is raised as :class:`StoreError` so the caller can log it and move on.
"""
from __future__ import annotations
from typing import Callable, Optional

from kubernetes import client
from kubernetes.client import ApiException

from .errors import StoreError

NOT_FOUND = 404


class KubeSecretStore:
    def __init__(self, core: client.CoreV1Api, namespace: str):
        self.core = core
        self.namespace = namespace

    def get(self, name: str) -> Optional[client.V1Secret]:
        try:
            return self.core.read_namespaced_secret(name=name, namespace=self.namespace)
        except ApiException as e:
            if e.status == NOT_FOUND:
                return None
            raise StoreError("get", self.namespace, name, e.status, e.reason) from e

    def create(self, secret: client.V1Secret) -> client.V1Secret:
        name = secret.metadata.name
        try:
            return self.core.create_namespaced_secret(namespace=self.namespace, body=secret)
        except ApiException as e:
            raise StoreError("create", self.namespace, name, e.status, e.reason) from e

    def update(self, secret: client.V1Secret) -> client.V1Secret:
        name = secret.metadata.name
        try:
            return self.core.replace_namespaced_secret(name=name, namespace=self.namespace, body=secret)
        except ApiException as e:
            raise StoreError("update", self.namespace, name, e.status, e.reason) from e


StoreFactory = Callable[[str], KubeSecretStore]


def kube_store_factory(core: client.CoreV1Api) -> StoreFactory:
    """Return ``namespace -> store`` bound to one API client."""
    def factory(namespace: str) -> KubeSecretStore:
        return KubeSecretStore(core, namespace)
    return factory
