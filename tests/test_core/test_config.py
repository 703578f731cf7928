"""Tests for folio.core.config module."""

import pytest

from folio.core import config
from folio.core.backup import BackupPolicy
from folio.core.config import (
    GITHUB_CACHE_TTL,
    PROJECT_CACHE_TTL,
    find_folio_root,
    get_global_config_path,
    get_paths,
    load_settings,
    load_site_config,
    lookup,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for var in ("FOLIO_SITE_ROOT", "GITHUB_TOKEN", "GITHUB_WEBHOOK_SECRET", "FOLIO_ADMIN_TOKEN", "GITHUB_USERNAME"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg"))
    config.get_site_root.cache_clear()
    yield
    config.get_site_root.cache_clear()


class TestFindFolioRoot:
    """Tests for site root resolution."""

    def test_env_var_wins(self, tmp_path, monkeypatch):
        (tmp_path / ".folio").mkdir()
        monkeypatch.setenv("FOLIO_SITE_ROOT", str(tmp_path))
        assert find_folio_root() == tmp_path.resolve()

    def test_env_var_without_folio_dir(self, tmp_path, monkeypatch):
        monkeypatch.setenv("FOLIO_SITE_ROOT", str(tmp_path))
        with pytest.raises(FileNotFoundError, match="does not contain"):
            find_folio_root()

    def test_walks_up_from_subdirectory(self, tmp_path):
        (tmp_path / ".folio").mkdir()
        nested = tmp_path / "a" / "b"
        nested.mkdir(parents=True)
        assert find_folio_root(nested) == tmp_path.resolve()

    def test_global_config_site_root(self, tmp_path):
        site = tmp_path / "site"
        (site / ".folio").mkdir(parents=True)
        global_config = get_global_config_path()
        global_config.parent.mkdir(parents=True)
        global_config.write_text(f"site_root: {site}\n")

        elsewhere = tmp_path / "elsewhere"
        elsewhere.mkdir()
        assert find_folio_root(elsewhere) == site.resolve()

    def test_not_found_mentions_init(self, tmp_path):
        empty = tmp_path / "empty"
        empty.mkdir()
        with pytest.raises(FileNotFoundError, match="folio init"):
            find_folio_root(empty)


class TestPaths:
    """Tests for get_paths."""

    def test_layout(self, tmp_path):
        paths = get_paths(tmp_path)
        assert paths.folio_dir == tmp_path / ".folio"
        assert paths.projects_db == tmp_path / ".folio" / "projects_db.json"
        assert paths.sync_log.name == "sync_log.json"
        assert paths.activity_log.name == "admin_activity.json"
        assert paths.projects_backups == tmp_path / ".folio" / "backups" / "projects"


class TestSiteConfig:
    """Tests for load_site_config and lookup."""

    def test_missing_file(self, tmp_path):
        assert load_site_config(tmp_path / "config.yaml") == {}

    def test_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("github:\n  username: octocat\n")
        assert load_site_config(path) == {"github": {"username": "octocat"}}

    def test_json_compatibility(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text('{"cache": {"project_ttl": 60}}')
        assert lookup(load_site_config(path), "cache.project_ttl") == 60

    def test_lookup_default(self):
        assert lookup({"a": {"b": 1}}, "a.c", "x") == "x"
        assert lookup({"a": 1}, "a.b") is None


class TestLoadSettings:
    """Tests for load_settings."""

    def test_defaults(self, tmp_path):
        (tmp_path / ".folio").mkdir()
        settings = load_settings(tmp_path, env={})

        assert settings.github_username is None
        assert settings.project_cache_ttl == PROJECT_CACHE_TTL
        assert settings.github_cache_ttl == GITHUB_CACHE_TTL
        assert settings.error_cache_ttl == 60
        assert settings.commit_repo_limit == 20
        assert settings.request_timeout == 10.0
        assert settings.featured_limit == 6
        assert settings.sync_interval_minutes == 0

    def test_config_and_env(self, tmp_path):
        folio_dir = tmp_path / ".folio"
        folio_dir.mkdir()
        (folio_dir / "config.yaml").write_text(
            "github:\n"
            "  username: from-config\n"
            "  exclude_repos: [dotfiles, scratch]\n"
            "  include_repos: 'a, b'\n"
            "cache:\n"
            "  project_ttl: 120\n"
        )
        env = {
            "GITHUB_USERNAME": "from-env",
            "GITHUB_TOKEN": "tok",
            "GITHUB_WEBHOOK_SECRET": "sec",
            "FOLIO_ADMIN_TOKEN": "adm",
        }
        settings = load_settings(tmp_path, env=env)

        assert settings.github_username == "from-env"
        assert settings.github_token == "tok"
        assert settings.webhook_secret == "sec"
        assert settings.admin_token == "adm"
        assert settings.exclude_repos == ("dotfiles", "scratch")
        assert settings.include_repos == ("a", "b")
        assert settings.project_cache_ttl == 120

    def test_empty_env_values_are_none(self, tmp_path):
        (tmp_path / ".folio").mkdir()
        settings = load_settings(tmp_path, env={"GITHUB_WEBHOOK_SECRET": ""})
        assert settings.webhook_secret is None

    def test_backup_policy(self, tmp_path):
        folio_dir = tmp_path / ".folio"
        folio_dir.mkdir()
        (folio_dir / "config.yaml").write_text(
            "backup:\n  keep_count: 3\n  keep_days: 7\n  max_count: 12\n"
        )
        settings = load_settings(tmp_path, env={})
        assert settings.backup_policy == BackupPolicy(keep_count=3, keep_days=7, max_count=12)

    def test_backup_max_never_below_keep(self, tmp_path):
        folio_dir = tmp_path / ".folio"
        folio_dir.mkdir()
        (folio_dir / "config.yaml").write_text("backup:\n  keep_count: 80\n")
        assert load_settings(tmp_path, env={}).backup_policy.max_count == 80
