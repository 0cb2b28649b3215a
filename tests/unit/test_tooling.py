"""Tests for environment checks and external tool wrappers."""

import logging
import subprocess
from unittest.mock import patch

import pytest

from core.errors import SetupError
from core.tooling import (
    SetupStatus,
    authenticated_url,
    check_environment,
    cleanup_workspace,
    clone_repository,
    mask_url,
    validate_repository_url,
    verify_build,
)


def completed(returncode=0, stdout="", stderr=""):
    return subprocess.CompletedProcess(args=[], returncode=returncode, stdout=stdout, stderr=stderr)


def which_from(available):
    return lambda name: f"/usr/bin/{name}" if name in available else None


class TestCheckEnvironment:
    """Setup result classification."""

    def test_ready_when_tools_present(self):
        with patch("core.tooling.shutil.which", side_effect=which_from({"git", "dotnet"})):
            result = check_environment()

        assert result.status is SetupStatus.READY
        assert result.can_build is True

    def test_missing_git_is_fatal(self):
        with patch("core.tooling.shutil.which", side_effect=which_from({"dotnet"})):
            result = check_environment()

        assert result.is_fatal
        assert "git" in result.messages[0]

    def test_missing_git_is_fine_for_local_runs(self):
        with patch("core.tooling.shutil.which", side_effect=which_from({"dotnet"})):
            result = check_environment(require_git=False)

        assert result.status is SetupStatus.READY

    def test_missing_dotnet_degrades(self):
        with patch("core.tooling.shutil.which", side_effect=which_from({"git"})):
            result = check_environment(want_analysis=True)

        assert result.status is SetupStatus.DEGRADED
        assert result.can_build is False
        assert result.can_analyze is False

    def test_failed_tool_install_degrades(self):
        with patch("core.tooling.shutil.which", side_effect=which_from({"git", "dotnet"})), \
                patch("core.tooling._run", return_value=completed(1, stderr="no network")):
            result = check_environment(want_analysis=True)

        assert result.status is SetupStatus.DEGRADED
        assert result.can_build is True
        assert result.can_analyze is False


class TestRepositoryUrls:
    @pytest.mark.parametrize(
        "url",
        [
            "https://github.com/org/repo.git",
            "ssh://git@github.com/org/repo.git",
            "git@github.com:org/repo.git",
        ],
    )
    def test_valid_urls(self, url):
        validate_repository_url(url)

    @pytest.mark.parametrize("url", ["", "github.com/org/repo", "ftp://host/repo", "https://github.com/"])
    def test_invalid_urls(self, url):
        with pytest.raises(SetupError):
            validate_repository_url(url)

    def test_token_is_embedded_and_masked(self):
        url = authenticated_url("https://dev.azure.com/org/_git/repo", "abc123")

        assert url == "https://abc123@dev.azure.com/org/_git/repo"
        assert mask_url(url) == "https://***@dev.azure.com/org/_git/repo"
        assert authenticated_url("git@github.com:org/repo.git", "abc123") == "git@github.com:org/repo.git"


class TestCloneRepository:
    def test_clone_runs_shallow_branch_clone(self, tmp_path):
        with patch("core.tooling._run", return_value=completed()) as mock_run:
            clone_repository("https://github.com/org/repo.git", "develop", tmp_path)

        command = mock_run.call_args[0][0]
        assert command[:5] == ["git", "clone", "--depth", "1", "--branch"]
        assert command[5] == "develop"
        assert command[-1] == str(tmp_path)

    def test_clone_failure_raises_without_token(self, tmp_path):
        with patch("core.tooling._run", return_value=completed(128, stderr="auth failed for https://tok@host")):
            with pytest.raises(SetupError) as exc_info:
                clone_repository("https://host/org/repo.git", "master", tmp_path, token="tok")

        assert "tok@" not in str(exc_info.value)

    def test_token_never_logged(self, tmp_path, caplog):
        """Debug logging of the git command must mask the access token."""
        caplog.set_level(logging.DEBUG, logger="core.tooling")

        with patch("core.tooling.subprocess.run", return_value=completed()) as mock_run:
            clone_repository("https://host/org/repo.git", "master", tmp_path, token="SUPERSECRET")

        assert "https://SUPERSECRET@host/org/repo.git" in mock_run.call_args[0][0]
        assert any("git clone" in record.getMessage() for record in caplog.records)
        assert all("SUPERSECRET" not in record.getMessage() for record in caplog.records)

    def test_invalid_url_never_runs_git(self, tmp_path):
        with patch("core.tooling._run") as mock_run:
            with pytest.raises(SetupError):
                clone_repository("not a url", "master", tmp_path)
        mock_run.assert_not_called()


class TestBuildAndCleanup:
    def test_build_success(self, tmp_path):
        project = tmp_path / "App.csproj"
        with patch("core.tooling._run", side_effect=[completed(stdout="Restored"), completed(stdout="Build succeeded")]):
            result = verify_build(project)

        assert result.succeeded is True
        assert result.project == "App"
        assert "Build succeeded" in result.output

    def test_restore_failure_stops_build(self, tmp_path):
        project = tmp_path / "App.csproj"
        with patch("core.tooling._run", return_value=completed(1, stdout="error NU1101")) as mock_run:
            result = verify_build(project, name="Api")

        assert result.succeeded is False
        assert result.exit_code == 1
        assert result.project == "Api"
        assert mock_run.call_count == 1

    def test_cleanup_swallows_errors(self, tmp_path):
        workspace = tmp_path / "clone"
        workspace.mkdir()
        (workspace / "file.txt").write_text("x")

        cleanup_workspace(workspace)
        assert not workspace.exists()

        cleanup_workspace(workspace)  # already gone

        with patch("core.tooling.shutil.rmtree", side_effect=PermissionError("locked")):
            cleanup_workspace(tmp_path)
