"""Tests for connection bootstrap and settings."""

import pytest
from kubernetes import config as kube_config
from kubernetes.config import ConfigException

from secret_copier import config
from secret_copier.cli import parse_args
from secret_copier.config import Settings, load_config, resolve_kubeconfig_path, split_namespaces
from secret_copier.constants import SYSTEM_NAMESPACES
from secret_copier.errors import ConfigError


class TestResolveKubeconfigPath:

    def test_flag_wins(self):
        assert resolve_kubeconfig_path("/flag", {"KUBECONFIG": "/env"}) == "/flag"

    def test_env_used_without_flag(self):
        assert resolve_kubeconfig_path(None, {"KUBECONFIG": "/env/config"}) == "/env/config"

    def test_blank_env_is_ignored(self, monkeypatch, tmp_path):
        monkeypatch.setattr(config, "default_kubeconfig_path", lambda: str(tmp_path / "config"))
        assert resolve_kubeconfig_path(None, {"KUBECONFIG": "  "}) == str(tmp_path / "config")

    def test_default_under_home(self, monkeypatch, tmp_path):
        monkeypatch.setenv("HOME", str(tmp_path))
        assert resolve_kubeconfig_path(None, {}) == str(tmp_path / ".kube" / "config")


class TestLoadConfig:

    def test_in_cluster_first(self, monkeypatch):
        calls = []
        monkeypatch.setattr(kube_config, "load_incluster_config", lambda: calls.append("incluster"))
        monkeypatch.setattr(kube_config, "load_kube_config", lambda **kw: calls.append("kubeconfig"))
        assert load_config() == "in-cluster"
        assert calls == ["incluster"]

    def test_falls_back_to_kubeconfig(self, monkeypatch):
        seen = {}

        def incluster():
            raise ConfigException("not in cluster")

        def kubeconfig(config_file=None, context=None):
            seen.update(config_file=config_file, context=context)

        monkeypatch.setattr(kube_config, "load_incluster_config", incluster)
        monkeypatch.setattr(kube_config, "load_kube_config", kubeconfig)

        assert load_config("/tmp/kc", "staging") == "/tmp/kc"
        assert seen == {"config_file": "/tmp/kc", "context": "staging"}

    def test_both_fail_raises_config_error(self, monkeypatch):
        def fail(*args, **kwargs):
            raise ConfigException("nope")

        monkeypatch.setattr(kube_config, "load_incluster_config", fail)
        monkeypatch.setattr(kube_config, "load_kube_config", fail)

        with pytest.raises(ConfigError):
            load_config("/missing")


class TestSettings:

    def test_defaults(self):
        settings = Settings.from_args(parse_args([]), environ={})
        assert settings.sync_timeout == 60.0
        assert settings.exclude_namespaces == frozenset()
        assert not settings.skip_origin_namespace
        assert not settings.dry_run

    def test_flags(self):
        args = parse_args([
            "--kubeconfig", "/kc", "--context", "prod", "--sync-timeout", "5",
            "--skip-origin-namespace", "--exclude-namespace", "ci,sandbox",
            "--exclude-namespace", "tmp", "--dry-run", "-v",
        ])
        settings = Settings.from_args(args, environ={"SECRET_COPIER_SYNC_TIMEOUT": "99"})
        assert settings.kubeconfig == "/kc"
        assert settings.context == "prod"
        assert settings.sync_timeout == 5.0
        assert settings.skip_origin_namespace
        assert settings.exclude_namespaces == {"ci", "sandbox", "tmp"}
        assert settings.dry_run
        assert settings.verbose == 1

    def test_sync_timeout_from_env(self):
        settings = Settings.from_args(parse_args([]), environ={"SECRET_COPIER_SYNC_TIMEOUT": "12.5"})
        assert settings.sync_timeout == 12.5

    def test_bad_sync_timeout_env(self):
        with pytest.raises(ConfigError):
            Settings.from_args(parse_args([]), environ={"SECRET_COPIER_SYNC_TIMEOUT": "soon"})

    def test_non_positive_sync_timeout(self):
        with pytest.raises(ConfigError):
            Settings.from_args(parse_args(["--sync-timeout", "0"]), environ={})

    def test_exclude_system(self):
        settings = Settings.from_args(parse_args(["--exclude-system", "--exclude-namespace", "ci"]), environ={})
        assert settings.exclude_namespaces == SYSTEM_NAMESPACES | {"ci"}

    def test_split_namespaces(self):
        assert split_namespaces(["a, b", "", "c,"]) == ["a", "b", "c"]
        assert split_namespaces(None) == []
