from pathlib import Path

import pytest

from monorepo_impact.graph import DependencyCycleError, build_metadata_map, build_unit_metadata
from monorepo_impact.workspace import load_workspace


def _ws(root: Path, units):
    return load_workspace(root, units, [])


def test_every_unit_gets_metadata(tmp_path: Path):
    ws = _ws(tmp_path, [{"path": ":lib"}, {"path": ":app", "dependencies": [":lib"]}])
    out = build_metadata_map(ws, {":lib": ["lib/a.py"]})

    assert set(out) == {":", ":lib", ":app"}
    assert out[":lib"].changed_files == ("lib/a.py",)
    assert out[":app"].changed_files == ()
    assert out[":app"].dependencies == (out[":lib"],)


def test_diamond_shares_one_instance(tmp_path: Path):
    ws = _ws(
        tmp_path,
        [
            {"path": ":a"},
            {"path": ":b", "dependencies": [":a"]},
            {"path": ":c", "dependencies": [":a"]},
            {"path": ":d", "dependencies": [":b", ":c"]},
        ],
    )
    out = build_metadata_map(ws, {":a": ["a/x.py"]})

    b_dep = out[":b"].dependencies[0]
    c_dep = out[":c"].dependencies[0]
    assert b_dep is c_dep is out[":a"]
    assert [d.path for d in out[":d"].dependencies] == [":b", ":c"]


def test_platform_dependency_links_units(tmp_path: Path):
    ws = _ws(
        tmp_path,
        [
            {"path": ":bom"},
            {"path": ":svc", "dependencies": [{"platform": ":bom"}, {"external": "com.acme:thing"}]},
        ],
    )
    out = build_metadata_map(ws)
    assert [d.path for d in out[":svc"].dependencies] == [":bom"]


def test_unknown_dependency_is_skipped(tmp_path: Path):
    ws = _ws(tmp_path, [{"path": ":svc", "dependencies": [":ghost"]}])
    out = build_metadata_map(ws)
    assert out[":svc"].dependencies == ()


def test_cycle_is_detected(tmp_path: Path):
    ws = _ws(
        tmp_path,
        [
            {"path": ":a", "dependencies": [":c"]},
            {"path": ":b", "dependencies": [":a"]},
            {"path": ":c", "dependencies": [":b"]},
        ],
    )
    with pytest.raises(DependencyCycleError) as exc:
        build_metadata_map(ws)
    assert ":a -> :c -> :b -> :a" in str(exc.value)


def test_self_dependency_is_a_cycle(tmp_path: Path):
    ws = _ws(tmp_path, [{"path": ":a", "dependencies": [":a"]}])
    with pytest.raises(DependencyCycleError):
        build_metadata_map(ws)


def test_build_unit_metadata(tmp_path: Path):
    ws = _ws(tmp_path, [{"path": ":lib"}])
    assert build_unit_metadata(ws, ":lib", {":lib": ["lib/a"]}).changed_files == ("lib/a",)

    missing = build_unit_metadata(ws, ":nope:thing", {":nope:thing": ["x"]})
    assert missing.name == "thing"
    assert missing.dependencies == ()
    assert missing.changed_files == ("x",)
