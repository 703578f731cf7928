"""Tests for the top-level folio CLI."""

from unittest.mock import patch

from click.testing import CliRunner

from folio import __version__
from folio.cli import main


def test_version():
    result = CliRunner().invoke(main, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.output


def test_init_creates_layout(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".gitignore").write_text("*.pyc\n")

    result = CliRunner().invoke(main, ["init"])

    assert result.exit_code == 0
    assert (tmp_path / ".folio" / "backups" / "projects").is_dir()
    assert ".folio/backups/" in (tmp_path / ".gitignore").read_text()


def test_init_existing_without_force(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".folio").mkdir()

    result = CliRunner().invoke(main, ["init"])

    assert "already exists" in result.output
    assert not (tmp_path / ".folio" / "backups").exists()


def test_serve_runs_app_factory(site_root):
    with patch("uvicorn.run") as run:
        result = CliRunner().invoke(main, ["serve", "--port", "9000"])

    assert result.exit_code == 0
    args, kwargs = run.call_args
    assert args == ("folio.api.app:create_app",)
    assert kwargs["factory"] is True
    assert kwargs["port"] == 9000
