"""Tests for folio.projects.admin module."""

import pytest

from folio.core.errors import ConflictError, InvalidRequestError, NotFoundError
from folio.projects.admin import ProjectAdmin, ranked_technologies
from folio.projects.models import Project, ProjectSource, Technology


@pytest.fixture
def admin(db, cache, activity_log):
    return ProjectAdmin(db, cache, activity_log)


@pytest.fixture
def github_project(db):
    return db.create(Project(
        name="repo",
        title="Repo",
        description="Canonical",
        image_url="canonical.png",
        source=ProjectSource.GITHUB,
    ))


def test_ranked_technologies():
    techs = ranked_technologies([f"t{i}" for i in range(11)])
    assert techs[0] == Technology("t0", 100.0)
    assert techs[1].percentage == 90.0
    assert techs[-1].percentage == 10.0


class TestCreateManual:
    def test_creates(self, admin, db, activity_log):
        project = admin.create_manual({"id": "site", "title": "My Site", "technologies": ["Go", "JS"], "order": 3})

        assert project.source is ProjectSource.MANUAL
        assert db.find_unique("site").display_order == 3
        assert [t.name for t in project.technologies] == ["Go", "JS"]
        assert activity_log.last()["action"] == "project_create"

    def test_duplicate(self, admin, github_project):
        with pytest.raises(ConflictError):
            admin.create_manual({"id": "repo"})

    def test_invalidates_cache(self, admin, cache):
        cache.set("projects:all", ["old"])
        admin.create_manual({"id": "site"})
        assert cache.get("projects:all") is None


class TestUpdate:
    def test_manual_updates_directly(self, admin, db):
        admin.create_manual({"id": "site", "title": "Old"})
        project = admin.update("site", {"title": "New", "live": "https://x", "featured": True})

        assert project.title == "New"
        assert project.live_url == "https://x"
        assert project.featured is True
        assert project.title_override is None

    def test_github_writes_overrides_only(self, admin, db, github_project):
        project = admin.update("repo", {"title": "Custom", "description": "Canonical", "order": 2, "featured": True})

        assert project.title == "Repo"
        assert project.title_override == "Custom"
        # Same as canonical, so stored as no override
        assert project.description_override is None
        assert project.display_order == 2
        assert project.featured is True
        assert project.to_view().title == "Custom"

    def test_github_ignores_canonical_only_fields(self, admin, github_project):
        project = admin.update("repo", {"live": "https://elsewhere"})
        assert project.live_url is None

    def test_absent_keys_untouched(self, admin, db, github_project):
        admin.update("repo", {"featured": True, "order": 1})
        project = admin.update("repo", {"title": "Custom"})
        assert project.featured is True
        assert project.display_order == 1

    def test_missing(self, admin):
        with pytest.raises(NotFoundError):
            admin.update("ghost", {})

    @pytest.mark.parametrize("title", [None, "", "   "])
    def test_manual_title_required(self, admin, db, title):
        admin.create_manual({"id": "m", "title": "Mine"})
        with pytest.raises(InvalidRequestError):
            admin.update("m", {"title": title})
        assert db.find_unique("m").title == "Mine"

    def test_featured_cannot_be_null(self, admin, db, github_project):
        admin.update("repo", {"featured": True})
        with pytest.raises(InvalidRequestError):
            admin.update("repo", {"featured": None})
        assert db.find_unique("repo").featured is True

    def test_github_null_title_clears_override(self, admin, github_project):
        admin.update("repo", {"title": "Custom"})
        project = admin.update("repo", {"title": None})
        assert project.title_override is None
        assert project.to_view().title == "Repo"

    def test_logs_activity(self, admin, github_project, activity_log):
        admin.update("repo", {"featured": True}, ip_address="9.9.9.9", user_agent="ua")
        entry = activity_log.last()
        assert entry["action"] == "project_update"
        assert entry["details"] == {"projectName": "repo", "source": "GITHUB"}
        assert entry["ip_address"] == "9.9.9.9"


class TestDelete:
    def test_manual_hard_deleted(self, admin, db):
        admin.create_manual({"id": "site"})
        assert admin.delete("site") is True
        assert "site" not in db

    def test_github_reset(self, admin, db, github_project, activity_log):
        admin.update("repo", {"title": "Custom", "featured": True, "order": 1})
        assert admin.delete("repo") is False

        project = db.find_unique("repo")
        assert project.title_override is None
        assert project.featured is False
        assert project.display_order is None
        assert activity_log.last()["action"] == "project_override_clear"

    def test_missing(self, admin):
        with pytest.raises(NotFoundError):
            admin.delete("ghost")


class TestGetConfig:
    def test_shape(self, admin, github_project):
        admin.create_manual({"id": "site", "title": "Site"})
        admin.update("repo", {"title": "Custom"})

        config = admin.get_config("octocat", exclude_repos=("dotfiles",))

        assert config["githubUsername"] == "octocat"
        assert config["excludeRepos"] == ["dotfiles"]
        assert [p["id"] for p in config["manualProjects"]] == ["site"]
        assert config["repoOverrides"]["repo"]["title"] == "Custom"
