"""Tests for the branchflow CLI (branchflow/main.py).

Commands run in-process with click's CliRunner against a real repository
without remotes, so every workflow runs offline.
"""

from pathlib import Path

import pytest
from click.testing import CliRunner

from branchflow.main import cli
from tests.conftest import commit_file, run_git


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    return CliRunner()


@pytest.fixture(autouse=True)
def state_env(temp_state_dir: Path, monkeypatch):
    monkeypatch.setenv("BRANCHFLOW_STATE_DIRECTORY", str(temp_state_dir))


@pytest.fixture
def conflicting_feature(git_repo: Path) -> Path:
    """A feature branch whose README change conflicts with main; feature is checked out."""
    run_git(git_repo, "checkout", "-b", "feature")
    run_git(git_repo, "config", "branchflow.branch.feature.parent", "main")
    commit_file(git_repo, "README.md", "feature version\n")
    run_git(git_repo, "checkout", "main")
    commit_file(git_repo, "README.md", "main version\n")
    run_git(git_repo, "checkout", "feature")
    return git_repo


def _current_branch(repo: Path) -> str:
    return run_git(repo, "rev-parse", "--abbrev-ref", "HEAD")


class TestCLIBasics:
    def test_help(self, cli_runner):
        """Should list the workflow commands."""
        result = cli_runner.invoke(cli, ["--help"])

        assert result.exit_code == 0
        for command in ("hack", "append", "prepend", "sync", "ship", "continue", "skip", "abort", "status", "discard"):
            assert command in result.output

    def test_missing_config_file(self, cli_runner, git_repo):
        result = cli_runner.invoke(cli, ["--config", "nonexistent.yaml", "status"])

        assert result.exit_code != 0

    def test_invalid_config_file(self, cli_runner, git_repo):
        (git_repo / ".branchflow.yaml").write_text("main_branch: [unclosed\n")

        result = cli_runner.invoke(cli, ["status"])

        assert result.exit_code == 1
        assert "Invalid YAML syntax" in result.output

    def test_outside_repository(self, cli_runner, tmp_path, monkeypatch):
        outside = tmp_path / "not-a-repo"
        outside.mkdir()
        monkeypatch.chdir(outside)

        result = cli_runner.invoke(cli, ["hack", "new"])

        assert result.exit_code == 1
        assert "Not a Git repository" in result.output


class TestWorkflowCommands:
    def test_hack(self, cli_runner, git_repo):
        result = cli_runner.invoke(cli, ["hack", "new-feature"])

        assert result.exit_code == 0, result.output
        assert "'hack' finished" in result.output
        assert _current_branch(git_repo) == "new-feature"
        assert run_git(git_repo, "config", "branchflow.branch.new-feature.parent") == "main"

    def test_hack_existing_branch(self, cli_runner, git_repo):
        run_git(git_repo, "branch", "taken")

        result = cli_runner.invoke(cli, ["hack", "taken"])

        assert result.exit_code == 1
        assert "Error: a branch named 'taken' already exists" in result.output

    def test_append_and_prepend(self, cli_runner, git_repo):
        assert cli_runner.invoke(cli, ["hack", "feature"]).exit_code == 0
        assert cli_runner.invoke(cli, ["append", "child"]).exit_code == 0

        result = cli_runner.invoke(cli, ["prepend", "middle"])

        assert result.exit_code == 0, result.output
        assert _current_branch(git_repo) == "middle"
        assert run_git(git_repo, "config", "branchflow.branch.middle.parent") == "feature"
        assert run_git(git_repo, "config", "branchflow.branch.child.parent") == "middle"

    def test_ship_locally(self, cli_runner, git_repo):
        assert cli_runner.invoke(cli, ["hack", "feature"]).exit_code == 0
        commit_file(git_repo, "feature.txt", "feature\n", "Add feature file")

        result = cli_runner.invoke(cli, ["ship", "-m", "Add feature"])

        assert result.exit_code == 0, result.output
        assert _current_branch(git_repo) == "main"
        assert run_git(git_repo, "log", "-1", "--format=%s") == "Add feature"
        assert "feature" not in run_git(git_repo, "branch", "--format=%(refname:short)").splitlines()


class TestConflictCommands:
    def test_sync_conflict_then_abort(self, cli_runner, conflicting_feature):
        feature_sha = run_git(conflicting_feature, "rev-parse", "feature")

        result = cli_runner.invoke(cli, ["sync"])

        assert result.exit_code == 2
        assert "CONFLICT" in result.output
        assert "branchflow continue" in result.output

        status = cli_runner.invoke(cli, ["status"])
        assert "Status:  paused_on_conflict" in status.output
        assert "Stopped at: sync feature" in status.output

        blocked = cli_runner.invoke(cli, ["hack", "other"])
        assert blocked.exit_code == 1
        assert "already in progress" in blocked.output

        aborted = cli_runner.invoke(cli, ["abort"])
        assert aborted.exit_code == 0, aborted.output
        assert "aborted 'sync'" in aborted.output
        assert _current_branch(conflicting_feature) == "feature"
        assert run_git(conflicting_feature, "rev-parse", "feature") == feature_sha
        assert run_git(conflicting_feature, "status", "--porcelain") == ""

        assert "No run in progress." in cli_runner.invoke(cli, ["status"]).output

    def test_sync_conflict_then_continue(self, cli_runner, conflicting_feature):
        assert cli_runner.invoke(cli, ["sync"]).exit_code == 2

        (conflicting_feature / "README.md").write_text("resolved\n")
        run_git(conflicting_feature, "add", "README.md")
        result = cli_runner.invoke(cli, ["continue"])

        assert result.exit_code == 0, result.output
        assert _current_branch(conflicting_feature) == "feature"
        run_git(conflicting_feature, "merge-base", "--is-ancestor", "main", "feature")

    def test_continue_with_unresolved_conflicts(self, cli_runner, conflicting_feature):
        assert cli_runner.invoke(cli, ["sync"]).exit_code == 2

        result = cli_runner.invoke(cli, ["continue"])

        assert result.exit_code == 2
        assert "unresolved conflicts" in result.output

    def test_continue_without_run(self, cli_runner, git_repo):
        result = cli_runner.invoke(cli, ["continue"])

        assert result.exit_code == 1
        assert "Error: nothing to continue" in result.output

    def test_skip(self, cli_runner, conflicting_feature):
        feature_sha = run_git(conflicting_feature, "rev-parse", "feature")
        assert cli_runner.invoke(cli, ["sync"]).exit_code == 2

        result = cli_runner.invoke(cli, ["skip"])

        assert result.exit_code == 0, result.output
        assert _current_branch(conflicting_feature) == "feature"
        assert run_git(conflicting_feature, "rev-parse", "feature") == feature_sha

    def test_discard(self, cli_runner, conflicting_feature):
        assert cli_runner.invoke(cli, ["sync"]).exit_code == 2

        result = cli_runner.invoke(cli, ["discard"])

        assert result.exit_code == 0
        assert "Discarded the persisted run state." in result.output
        assert "No run state to discard." in cli_runner.invoke(cli, ["discard"]).output
