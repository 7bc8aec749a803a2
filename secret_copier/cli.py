#!/usr/bin/env python3
"""
Kubernetes Secret Copier

Watches all namespaces and all Secrets. Every Secret labelled
``secret-copier`` is copied into every namespace of the cluster and kept in
sync when its data changes. Copies are annotated
``secret-copier/origin: clone`` and never copied again.

Usage:
  secret-copier
  secret-copier --kubeconfig ~/.kube/staging --exclude-system -v
  secret-copier --skip-origin-namespace --exclude-namespace ci,sandbox
  secret-copier --dry-run

Label a secret for copying:
  kubectl label secret db-cred secret-copier=yes -n default

Exit codes:
  0   stopped by SIGTERM/SIGINT after startup
  1   config error, initial list of namespaces/secrets timed out, or any
      other startup failure
  130 interrupted before startup finished
"""
from __future__ import annotations
import argparse
import signal
import threading
from typing import List, Optional

from kubernetes import client

from . import __version__
from .config import Settings, load_config
from .engine import ReplicationEngine
from .errors import ConfigError, FingerprintError, SyncTimeoutError
from .fingerprint import Fingerprinter
from .handlers import EventDispatcher
from .logging_config import get_logger, setup_logging
from .registry import NamespaceRegistry, SecretRegistry
from .store import kube_store_factory
from .watcher import WatchSupervisor

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


class Interrupted(Exception):
    pass


def parse_args(argv: Optional[List[str]] = None):
    p = argparse.ArgumentParser(description="Copy labelled Secrets into every namespace")
    p.add_argument('--kubeconfig', help='Path to kubeconfig when not running in-cluster (default $KUBECONFIG or ~/.kube/config)')
    p.add_argument('--context', help='Kubeconfig context to use')
    p.add_argument('--log-level', choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'], type=str.upper,
                   help='Log level (default $LOG_LEVEL or INFO)')
    p.add_argument('-v', '--verbose', action='count', default=0, help='Debug logging')
    p.add_argument('--sync-timeout', type=float, default=None,
                   help='Seconds to wait for the initial list of namespaces and secrets (default 60)')
    p.add_argument('--skip-origin-namespace', action='store_true',
                   help='Do not create a copy in the namespace the secret comes from')
    p.add_argument('--exclude-namespace', action='append', default=[],
                   help='Namespace(s) never copied into; repeatable, comma list allowed')
    p.add_argument('--exclude-system', action='store_true',
                   help='Also exclude kube-system, kube-public, kube-node-lease')
    p.add_argument('--dry-run', action='store_true', help='Log what would be created/updated without writing')
    p.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    return p.parse_args(argv)


def build_engine(settings: Settings, core: client.CoreV1Api, namespaces: NamespaceRegistry,
                 secrets: SecretRegistry) -> ReplicationEngine:
    return ReplicationEngine(
        namespaces,
        secrets,
        kube_store_factory(core),
        Fingerprinter(),
        skip_origin_namespace=settings.skip_origin_namespace,
        exclude_namespaces=settings.exclude_namespaces,
        dry_run=settings.dry_run,
    )


def run(settings: Settings, stop_event: threading.Event) -> None:
    """Bootstrap, wait for the initial sync, then serve until ``stop_event`` is set."""
    source = load_config(settings.kubeconfig, settings.context)
    logger.info("Cluster config loaded from %s", source)
    core = client.CoreV1Api()

    namespaces = NamespaceRegistry()
    secrets = SecretRegistry()
    engine = build_engine(settings, core, namespaces, secrets)
    dispatcher = EventDispatcher(namespaces, secrets, engine)
    supervisor = WatchSupervisor(core, dispatcher, stop_event)

    supervisor.start()
    try:
        if not supervisor.wait_for_initial_sync(settings.sync_timeout):
            if stop_event.is_set():
                raise Interrupted()
            raise SyncTimeoutError("Timed out waiting for caches to sync")
        logger.info("Caches synced: %d namespaces, %d namespaces with labelled secrets",
                    len(namespaces), len(secrets.snapshot()))
        stop_event.wait()
        logger.info("Shutting down")
    finally:
        supervisor.stop()


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level, args.verbose)

    stop_event = threading.Event()

    def handle_signal(signum, frame):
        logger.info("Received signal %s", signal.Signals(signum).name)
        stop_event.set()

    signal.signal(signal.SIGTERM, handle_signal)
    signal.signal(signal.SIGINT, handle_signal)

    logger.info("Secret-copier %s started", __version__)
    try:
        settings = Settings.from_args(args)
        run(settings, stop_event)
    except Interrupted:
        logger.info("Interrupted before caches synced")
        return EXIT_INTERRUPTED
    except (ConfigError, FingerprintError, SyncTimeoutError) as e:
        logger.error("%s", e)
        return EXIT_ERROR
    except Exception:
        logger.exception("Unexpected error during startup")
        return EXIT_ERROR
    return EXIT_OK


if __name__ == '__main__':
    raise SystemExit(main())
