"""Tests for folio.projects.models module."""

import pytest

from folio.projects.models import (
    Project,
    ProjectSource,
    ProjectStatus,
    RemoteRepository,
    SyncResult,
    Technology,
    format_title,
    infer_category,
)


class TestFormatTitle:
    def test_dashes_and_underscores(self):
        assert format_title("my-cool_repo") == "My Cool Repo"

    def test_keeps_inner_case(self):
        assert format_title("fastAPI-demo") == "FastAPI Demo"

    def test_collapses_repeated_separators(self):
        assert format_title("a--b") == "A B"


class TestInferCategory:
    def test_first_matching_rule_wins(self):
        assert infer_category("portfolio-api", None, []) == "Portfolio"

    def test_uses_description_and_topics(self):
        assert infer_category("x", "A REST backend", []) == "Backend"
        assert infer_category("x", None, ["game"]) == "Game"

    def test_no_match(self):
        assert infer_category("xyz", None, []) is None


class TestRemoteRepository:
    """Tests for RemoteRepository.from_api."""

    def test_maps_fields(self, repo_payload):
        repo = RemoteRepository.from_api(repo_payload("alpha", topics=["cli"], stargazers_count=7))
        assert repo.name == "alpha"
        assert repo.stars == 7
        assert repo.topics == ("cli",)
        assert repo.owner == "octocat"
        assert repo.image_url == "https://opengraph.githubassets.com/1/octocat/alpha"

    def test_empty_homepage_is_none(self, repo_payload):
        assert RemoteRepository.from_api(repo_payload("a", homepage="")).homepage is None

    def test_rejects_missing_name(self, repo_payload):
        payload = repo_payload("a")
        del payload["name"]
        with pytest.raises(ValueError):
            RemoteRepository.from_api(payload)

    def test_rejects_missing_url(self, repo_payload):
        with pytest.raises(ValueError):
            RemoteRepository.from_api(repo_payload("a", html_url=None))

    def test_rejects_non_object(self):
        with pytest.raises(ValueError):
            RemoteRepository.from_api(["not", "a", "dict"])

    def test_is_immutable(self, repo_payload):
        repo = RemoteRepository.from_api(repo_payload("a"))
        with pytest.raises(AttributeError):
            repo.name = "b"


class TestProject:
    """Tests for Project serialisation and overrides."""

    def test_round_trip_preserves_enums(self):
        project = Project(
            name="p",
            title="P",
            source=ProjectSource.GITHUB,
            status=ProjectStatus.ARCHIVED,
            technologies=[Technology("Python", 50.0)],
        )
        data = project.to_dict()
        assert data["source"] == "GITHUB"
        assert data["status"] == "ARCHIVED"
        assert Project.from_dict(data) == project

    def test_from_dict_ignores_unknown_keys(self):
        project = Project.from_dict({"name": "p", "title": "P", "legacy": 1})
        assert project.source is ProjectSource.MANUAL

    def test_technologies_from_strings(self):
        project = Project.from_dict({"name": "p", "title": "P", "technologies": ["Go"]})
        assert project.technologies == [Technology("Go")]

    def test_title_override_wins(self):
        project = Project(name="p", title="Remote Title", title_override="Custom")
        assert project.to_view().title == "Custom"

    def test_cleared_override_falls_back(self):
        project = Project(name="p", title="Remote Title", title_override=None)
        assert project.to_view().title == "Remote Title"

    def test_empty_override_is_still_an_override(self):
        project = Project(
            name="p",
            title="Remote Title",
            image_url="canonical.png",
            image_url_override="",
            description="Remote",
            description_override="",
        )
        assert project.effective_image_url == ""
        assert project.effective_description == ""

    def test_view_fields(self):
        project = Project(
            name="p",
            title="P",
            source=ProjectSource.GITHUB,
            image_url="canonical.png",
            image_url_override="custom.png",
            display_order=2,
            stars_count=4,
        )
        view = project.to_view()
        assert view.id == "p"
        assert view.image == "custom.png"
        assert view.description == "No description available"
        assert view.manual is False
        assert view.status == "active"
        assert view.order == 2
        assert view.to_dict()["technologies"] == []


class TestSyncResult:
    def test_to_dict(self):
        result = SyncResult(success=True, created=2, updated=1, synced_projects=["a"])
        data = result.to_dict()
        assert data["total"] == 3
        assert data["syncedProjects"] == ["a"]
