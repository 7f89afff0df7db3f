from pathlib import Path
import os

import pytest

from monorepo_impact.config import DEFAULT_CONFIG, load_config, load_env_file


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for key in ("MONOREPO_BASE_BRANCH", "MONOREPO_COMMIT_REF", "MONOREPO_INCLUDE_UNTRACKED"):
        monkeypatch.delenv(key, raising=False)


def test_defaults_without_config_file(tmp_path: Path):
    cfg = load_config(tmp_path)
    assert cfg.base_branch == "main"
    assert cfg.commit_ref == "HEAD~1"
    assert cfg.include_untracked is True
    assert cfg.exclude_patterns == []
    assert cfg.build_files == DEFAULT_CONFIG["build_files"]
    assert cfg.units == []


def test_loads_yaml_from_root(tmp_path: Path):
    (tmp_path / ".monorepo-impact.yml").write_text(
        "\n".join(
            [
                "base_branch: develop",
                "include_untracked: false",
                "exclude_patterns:",
                "  - 'docs/.*'",
                "build_files: [BUILD]",
                "units:",
                "  - path: ':lib'",
            ]
        )
    )
    cfg = load_config(tmp_path)
    assert cfg.base_branch == "develop"
    assert cfg.include_untracked is False
    assert cfg.exclude_patterns == ["docs/.*"]
    assert cfg.build_files == ["BUILD"]
    assert cfg.units == [{"path": ":lib"}]


def test_explicit_config_must_exist(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        load_config(tmp_path, str(tmp_path / "missing.yml"))


def test_environment_overrides(tmp_path: Path, monkeypatch):
    (tmp_path / ".monorepo-impact.yml").write_text("base_branch: develop\n")
    monkeypatch.setenv("MONOREPO_BASE_BRANCH", "trunk")
    monkeypatch.setenv("MONOREPO_COMMIT_REF", "abc123")
    monkeypatch.setenv("MONOREPO_INCLUDE_UNTRACKED", "no")
    cfg = load_config(tmp_path)
    assert cfg.base_branch == "trunk"
    assert cfg.commit_ref == "abc123"
    assert cfg.include_untracked is False


def test_invalid_values_are_rejected(tmp_path: Path):
    bad = tmp_path / "bad.yml"
    bad.write_text("include_untracked: maybe\n")
    with pytest.raises(ValueError, match="include_untracked"):
        load_config(tmp_path, str(bad))

    bad.write_text("exclude_patterns: 'docs/.*'\n")
    with pytest.raises(ValueError, match="exclude_patterns"):
        load_config(tmp_path, str(bad))


def test_env_file_does_not_override(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("MONOREPO_BASE_BRANCH", "kept")
    monkeypatch.setenv("MONOREPO_COMMIT_REF", "placeholder")
    monkeypatch.delenv("MONOREPO_COMMIT_REF")
    env = tmp_path / ".env"
    env.write_text("# comment\nMONOREPO_BASE_BRANCH=ignored\nMONOREPO_COMMIT_REF='v1.2.0'\n")
    load_env_file(env)

    assert os.environ["MONOREPO_BASE_BRANCH"] == "kept"
    assert os.environ["MONOREPO_COMMIT_REF"] == "v1.2.0"
