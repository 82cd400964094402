"""Tests for config/settings.py."""

from pathlib import Path

import pytest

from branchflow.config.settings import BranchflowSettings, load_settings
from branchflow.enums import HostingDriverType, SyncStrategy
from branchflow.exceptions import ConfigurationError


class TestDefaults:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("BRANCHFLOW_MAIN_BRANCH", raising=False)
        settings = BranchflowSettings()

        assert settings.main_branch == "main"
        assert settings.remote == "origin"
        assert settings.sync_strategy == SyncStrategy.MERGE
        assert settings.hosting.driver is None
        assert settings.state_dir == Path("~/.branchflow/state").expanduser()

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("BRANCHFLOW_MAIN_BRANCH", "trunk")
        monkeypatch.setenv("BRANCHFLOW_HOSTING__DRIVER", "gitea")

        settings = BranchflowSettings()

        assert settings.main_branch == "trunk"
        assert settings.hosting.driver == HostingDriverType.GITEA

    def test_is_perennial(self):
        settings = BranchflowSettings(perennial_branches=["production"])

        assert settings.is_perennial("main")
        assert settings.is_perennial("production")
        assert not settings.is_perennial("feature")


class TestFromYaml:
    def test_loads_yaml(self, tmp_path: Path):
        config = tmp_path / "branchflow.yaml"
        config.write_text(
            "main_branch: develop\n"
            "perennial_branches: [staging]\n"
            "sync_strategy: rebase\n"
            "hosting:\n"
            "  driver: github\n"
            "  api_token: secret\n"
        )

        settings = BranchflowSettings.from_yaml(config)

        assert settings.main_branch == "develop"
        assert settings.perennial_branches == ["staging"]
        assert settings.sync_strategy == SyncStrategy.REBASE
        assert settings.hosting.api_token.get_secret_value() == "secret"

    def test_env_interpolation(self, tmp_path: Path, monkeypatch):
        monkeypatch.setenv("TEST_GITHUB_TOKEN", "from-env")
        monkeypatch.delenv("TEST_MISSING_BRANCH", raising=False)
        config = tmp_path / "branchflow.yaml"
        config.write_text(
            "# token comes from ${NOT_INTERPOLATED}\n"
            "main_branch: ${TEST_MISSING_BRANCH:-main}\n"
            "hosting:\n"
            "  api_token: ${TEST_GITHUB_TOKEN}\n"
        )

        settings = BranchflowSettings.from_yaml(config)

        assert settings.main_branch == "main"
        assert settings.hosting.api_token.get_secret_value() == "from-env"

    def test_empty_token_becomes_none(self, tmp_path: Path):
        config = tmp_path / "branchflow.yaml"
        config.write_text("hosting:\n  api_token: ''\n")

        assert BranchflowSettings.from_yaml(config).hosting.api_token is None

    def test_missing_env_var(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv("TEST_UNSET_VARIABLE", raising=False)
        config = tmp_path / "branchflow.yaml"
        config.write_text("main_branch: ${TEST_UNSET_VARIABLE}\n")

        with pytest.raises(ConfigurationError, match="TEST_UNSET_VARIABLE is not set"):
            BranchflowSettings.from_yaml(config)

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigurationError, match="not found"):
            BranchflowSettings.from_yaml(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path: Path):
        config = tmp_path / "branchflow.yaml"
        config.write_text("main_branch: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            BranchflowSettings.from_yaml(config)

    def test_not_a_mapping(self, tmp_path: Path):
        config = tmp_path / "branchflow.yaml"
        config.write_text("- main\n")

        with pytest.raises(ConfigurationError, match="YAML object"):
            BranchflowSettings.from_yaml(config)

    def test_invalid_values(self, tmp_path: Path):
        config = tmp_path / "branchflow.yaml"
        config.write_text("sync_strategy: squash\n")

        with pytest.raises(ConfigurationError, match="Failed to validate"):
            BranchflowSettings.from_yaml(config)

    def test_empty_file_uses_defaults(self, tmp_path: Path):
        config = tmp_path / "branchflow.yaml"
        config.write_text("")

        assert BranchflowSettings.from_yaml(config).main_branch == "main"


class TestLoadSettings:
    def test_uses_default_file_in_search_dir(self, tmp_path: Path):
        (tmp_path / ".branchflow.yaml").write_text("main_branch: trunk\n")

        assert load_settings(search_dir=tmp_path).main_branch == "trunk"

    def test_defaults_without_file(self, tmp_path: Path, monkeypatch):
        monkeypatch.delenv("BRANCHFLOW_MAIN_BRANCH", raising=False)

        assert load_settings(search_dir=tmp_path).main_branch == "main"

    def test_explicit_path_must_exist(self, tmp_path: Path):
        with pytest.raises(ConfigurationError):
            load_settings(tmp_path / "nope.yaml")
