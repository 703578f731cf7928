"""Shared test fixtures for folio package."""

import json
from unittest.mock import MagicMock

import pytest

from folio.cache.store import CacheStore
from folio.core.config import Settings, get_paths
from folio.core.database import AuditLog, ProjectsDatabase


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_repo_payload(name, **overrides):
    """GitHub API repository payload with sensible defaults."""
    payload = {
        "id": abs(hash(name)) % 100000,
        "name": name,
        "full_name": f"octocat/{name}",
        "html_url": f"https://github.com/octocat/{name}",
        "description": f"{name} description",
        "homepage": None,
        "stargazers_count": 3,
        "forks_count": 1,
        "language": "Python",
        "size": 120,
        "private": False,
        "archived": False,
        "fork": False,
        "topics": [],
        "owner": {"login": "octocat"},
        "pushed_at": "2024-05-01T12:00:00Z",
        "updated_at": "2024-05-01T12:00:00Z",
        "created_at": "2023-01-01T00:00:00Z",
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def repo_payload():
    """Factory for GitHub repository payloads."""
    return make_repo_payload


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return CacheStore(default_ttl=300, clock=clock)


@pytest.fixture
def site_root(tmp_path, monkeypatch):
    """Create a site with a .folio/ directory and point FOLIO_SITE_ROOT at it."""
    folio_dir = tmp_path / ".folio"
    (folio_dir / "backups" / "projects").mkdir(parents=True)

    from folio.core import config
    config.get_site_root.cache_clear()
    monkeypatch.setenv("FOLIO_SITE_ROOT", str(tmp_path))
    yield tmp_path
    config.get_site_root.cache_clear()


@pytest.fixture
def paths(site_root):
    return get_paths(site_root)


@pytest.fixture
def settings(paths):
    return Settings(
        paths=paths,
        github_username="octocat",
        github_token="test-token",
        webhook_secret="webhook-secret",
        admin_token="admin-token",
    )


@pytest.fixture
def db(paths):
    database = ProjectsDatabase(paths.projects_db, paths.projects_backups)
    database.load()
    return database


@pytest.fixture
def sync_log(paths):
    return AuditLog(paths.sync_log)


@pytest.fixture
def activity_log(paths):
    return AuditLog(paths.activity_log)


@pytest.fixture
def sample_projects_db(tmp_path):
    """A projects database file with one manual and one GitHub project."""
    data = {
        "_comment": "Test projects",
        "_schema_version": "1.0",
        "handmade": {
            "id": "m1",
            "name": "handmade",
            "title": "Handmade Site",
            "source": "MANUAL",
            "status": "ACTIVE",
            "featured": True,
            "display_order": 1,
            "created_at": "2024-01-01T00:00:00+00:00",
        },
        "synced-repo": {
            "id": "g1",
            "name": "synced-repo",
            "title": "Synced Repo",
            "source": "GITHUB",
            "status": "ACTIVE",
            "stars_count": 10,
            "title_override": "Custom",
            "technologies": [{"name": "Python", "percentage": 90.0}],
            "created_at": "2024-02-01T00:00:00+00:00",
        },
    }
    file_path = tmp_path / "projects_db.json"
    file_path.write_text(json.dumps(data, indent=2))
    return file_path


@pytest.fixture
def mock_client():
    """GitHubClient stand-in returning two repositories."""
    client = MagicMock()
    client.username = "octocat"
    client.list_repository_payloads.return_value = [make_repo_payload("alpha"), make_repo_payload("beta")]
    client.get_repo_languages.return_value = {"Python": 80.0, "Shell": 20.0}
    return client
