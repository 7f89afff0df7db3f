from pathlib import Path

import pytest

from monorepo_impact.workspace import (
    ExternalDependency,
    PlatformDependency,
    UnitDependency,
    UnitLayoutError,
    load_workspace,
    parse_dependency,
)

BUILD_FILES = ["build.gradle.kts", "pyproject.toml"]


def test_root_unit_always_present(tmp_path: Path):
    ws = load_workspace(tmp_path, [], BUILD_FILES)
    assert list(ws.units) == [":"]
    assert ws.root_unit.is_root
    assert ws.relative_dir(ws.root_unit) == ""


def test_default_directory_follows_path(tmp_path: Path):
    ws = load_workspace(tmp_path, [{"path": ":services:billing:api"}], BUILD_FILES)
    unit = ws.find_unit(":services:billing:api")
    assert unit.name == "api"
    assert ws.relative_dir(unit) == "services/billing/api"


def test_missing_ancestors_become_hierarchy_nodes(tmp_path: Path):
    ws = load_workspace(tmp_path, [{"path": ":apps:web:ui", "buildable": True}], BUILD_FILES)
    assert set(ws.units) == {":", ":apps", ":apps:web", ":apps:web:ui"}
    assert ws.find_unit(":apps").has_build_file is False
    assert ws.find_unit(":apps:web").has_build_file is False
    assert ws.find_unit(":apps:web:ui").has_build_file is True


def test_build_file_detection(tmp_path: Path):
    (tmp_path / "lib").mkdir()
    (tmp_path / "lib" / "pyproject.toml").write_text("[project]\n")
    (tmp_path / "docs").mkdir()
    ws = load_workspace(tmp_path, [{"path": ":lib"}, {"path": ":docs"}], BUILD_FILES)
    assert ws.find_unit(":lib").has_build_file is True
    assert ws.find_unit(":docs").has_build_file is False


def test_explicit_buildable_overrides_detection(tmp_path: Path):
    (tmp_path / "lib").mkdir()
    (tmp_path / "lib" / "pyproject.toml").write_text("")
    ws = load_workspace(tmp_path, [{"path": ":lib", "buildable": False}], BUILD_FILES)
    assert ws.find_unit(":lib").has_build_file is False


def test_custom_dir_and_dependencies(tmp_path: Path):
    ws = load_workspace(
        tmp_path,
        [
            {
                "path": ":billing",
                "dir": "services/billing-api",
                "dependencies": [":core", {"platform": ":bom"}, {"external": "requests"}, ":core"],
                "exclude_patterns": ["generated/.*"],
            }
        ],
        BUILD_FILES,
    )
    unit = ws.find_unit(":billing")
    assert ws.relative_dir(unit) == "services/billing-api"
    assert unit.dependency_paths() == [":core", ":bom"]
    assert unit.exclude_patterns == ("generated/.*",)


def test_directory_outside_root_is_rejected(tmp_path: Path):
    ws = load_workspace(tmp_path / "repo", [{"path": ":escape", "dir": "../elsewhere"}], BUILD_FILES)
    with pytest.raises(UnitLayoutError) as exc:
        ws.relative_dir(ws.find_unit(":escape"))
    assert ":escape" in str(exc.value)
    assert "elsewhere" in str(exc.value)


def test_parse_dependency_variants():
    assert parse_dependency(":lib") == UnitDependency(":lib")
    assert parse_dependency({"unit": ":lib"}) == UnitDependency(":lib")
    assert parse_dependency({"platform": ":bom"}) == PlatformDependency(":bom")
    assert parse_dependency("org.slf4j:slf4j-api") == ExternalDependency("org.slf4j:slf4j-api")
    assert parse_dependency({"external": "requests"}).target_unit_path() is None
    assert parse_dependency({"platform": ":bom"}).target_unit_path() == ":bom"
    with pytest.raises(ValueError):
        parse_dependency({"bogus": ":x"})


def test_invalid_unit_entries(tmp_path: Path):
    with pytest.raises(ValueError, match="path"):
        load_workspace(tmp_path, [{"dir": "lib"}], BUILD_FILES)
    with pytest.raises(ValueError, match="more than once"):
        load_workspace(tmp_path, [{"path": ":a"}, {"path": ":a"}], BUILD_FILES)
    with pytest.raises(ValueError, match="dependencies"):
        load_workspace(tmp_path, [{"path": ":a", "dependencies": ":b"}], BUILD_FILES)
