"""Exceptions raised by secret_copier.

Only the top-level run loop in :mod:`secret_copier.cli` decides whether an
error ends the process.
"""
from __future__ import annotations
from typing import Optional


class SecretCopierError(Exception):
    """Base class for all secret_copier errors."""


class ConfigError(SecretCopierError):
    """No usable connection to the Kubernetes API could be built."""


class FingerprintError(SecretCopierError):
    """Hash key material is unusable."""


class SyncTimeoutError(SecretCopierError):
    """Initial list of namespaces or secrets did not finish in time."""


class StoreError(SecretCopierError):
    """A get/create/update call against the Secret store failed."""

    def __init__(self, operation: str, namespace: str, name: str,
                 status: Optional[int] = None, reason: str = ""):
        self.operation = operation
        self.namespace = namespace
        self.name = name
        self.status = status
        self.reason = reason
        msg = f"{operation} {namespace}/{name} failed"
        if status is not None:
            msg += f" (HTTP {status})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)
