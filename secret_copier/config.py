"""
Cluster connection bootstrap and runtime settings.

Connection order:
  1. in-cluster service account
  2. kubeconfig from --kubeconfig, else KUBECONFIG env, else ~/.kube/config
"""
from __future__ import annotations
import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Iterable, List, Mapping, Optional

from kubernetes import config
from kubernetes.config import ConfigException

from .constants import DEFAULT_SYNC_TIMEOUT, SYSTEM_NAMESPACES
from .errors import ConfigError
from .logging_config import get_logger

logger = get_logger(__name__)


def default_kubeconfig_path() -> str:
    return str(Path.home() / ".kube" / "config")


def resolve_kubeconfig_path(flag_value: Optional[str] = None,
                            environ: Optional[Mapping[str, str]] = None) -> str:
    if flag_value:
        return flag_value
    environ = os.environ if environ is None else environ
    env_value = (environ.get("KUBECONFIG") or "").strip()
    if env_value:
        return env_value
    return default_kubeconfig_path()


def load_config(kubeconfig: Optional[str] = None, context: Optional[str] = None) -> str:
    """Configure the default API client. Returns a description of the source used."""
    logger.debug("Try load in-cluster config")
    try:
        config.load_incluster_config()
        return "in-cluster"
    except ConfigException:
        logger.debug("In-cluster config load failed")

    path = resolve_kubeconfig_path(kubeconfig)
    logger.debug("Try load out-cluster config from %s", path)
    try:
        config.load_kube_config(config_file=path, context=context)
    except (ConfigException, OSError, ValueError) as e:
        raise ConfigError(f"Cluster config load failed ({path}): {e}") from e
    return path


def split_namespaces(values: Optional[Iterable[str]]) -> List[str]:
    """Flatten repeated and comma separated --exclude-namespace values."""
    out: List[str] = []
    for v in values or []:
        out.extend(n.strip() for n in v.split(',') if n.strip())
    return out


@dataclass(frozen=True)
class Settings:
    kubeconfig: Optional[str] = None
    context: Optional[str] = None
    log_level: Optional[str] = None
    verbose: int = 0
    sync_timeout: float = DEFAULT_SYNC_TIMEOUT
    skip_origin_namespace: bool = False
    exclude_namespaces: FrozenSet[str] = field(default_factory=frozenset)
    dry_run: bool = False

    @classmethod
    def from_args(cls, args: argparse.Namespace,
                  environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ

        sync_timeout = args.sync_timeout
        if sync_timeout is None:
            raw = environ.get("SECRET_COPIER_SYNC_TIMEOUT")
            try:
                sync_timeout = float(raw) if raw else DEFAULT_SYNC_TIMEOUT
            except ValueError:
                raise ConfigError(f"SECRET_COPIER_SYNC_TIMEOUT is not a number: {raw!r}")
        if sync_timeout <= 0:
            raise ConfigError(f"sync timeout must be positive, got {sync_timeout}")

        excluded = set(split_namespaces(args.exclude_namespace))
        if args.exclude_system:
            excluded |= SYSTEM_NAMESPACES

        return cls(
            kubeconfig=args.kubeconfig,
            context=args.context,
            log_level=args.log_level,
            verbose=args.verbose,
            sync_timeout=sync_timeout,
            skip_origin_namespace=args.skip_origin_namespace,
            exclude_namespaces=frozenset(excluded),
            dry_run=args.dry_run,
        )
