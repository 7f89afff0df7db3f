from __future__ import annotations

from pathlib import Path
from typing import NoReturn
import logging
import typer

from monorepo_impact.config import load_config, load_env_file
from monorepo_impact.detectors import ModeConflictError, resolve_mode
from monorepo_impact.reporters import (
    build_json_report,
    build_text_report,
    write_json_report,
    write_unit_list,
)
from monorepo_impact.session import BuildSession, ImpactComputationError
from monorepo_impact.workspace import load_workspace

app = typer.Typer(help="monorepo-impact: find the build units affected by a change")


def _configure_logging(verbose: bool, debug: bool) -> None:
    level = logging.WARNING
    if verbose:
        level = logging.INFO
    if debug:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def _fail(message: str) -> NoReturn:
    typer.secho(message, fg=typer.colors.RED, err=True)
    raise typer.Exit(code=2)


def _load(path: str, config: str | None):
    root = Path(path).resolve()
    if not root.exists():
        _fail(f"Path does not exist: {root}")

    load_env_file(Path.cwd() / ".env")
    load_env_file(root / ".env")

    try:
        cfg = load_config(root, config)
        workspace = load_workspace(root, cfg.units, cfg.build_files)
    except (FileNotFoundError, ValueError) as exc:
        _fail(f"Invalid configuration: {exc}")
    return root, cfg, workspace


@app.callback()
def main() -> None:
    """monorepo-impact command group."""


@app.command()
def changed(
    path: str = typer.Option(".", help="Root of the monorepo"),
    config: str | None = typer.Option(None, help="Config YAML path (default: <path>/.monorepo-impact.yml)"),
    base_branch: str | None = typer.Option(None, help="Base branch to compare against (default from config)"),
    ref: str | None = typer.Option(None, help="Compare HEAD against this commit ref only (CI mode)"),
    from_ref: bool = typer.Option(False, "--from-ref", help="Use the configured commit_ref (CI mode)"),
    untracked: bool | None = typer.Option(None, "--untracked/--no-untracked", help="Include untracked files"),
    json_out: str | None = typer.Option(None, help="Optional JSON report output path"),
    output_file: str | None = typer.Option(None, help="Write affected unit paths, one per line"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log progress"),
    debug: bool = typer.Option(False, "--debug", help="Log diagnostics"),
) -> None:
    _configure_logging(verbose, debug)

    try:
        resolve_mode(base_branch, ref)
    except ModeConflictError as exc:
        _fail(str(exc))

    root, cfg, workspace = _load(path, config)
    commit_ref = ref or (cfg.commit_ref if from_ref else None)
    if untracked is not None:
        cfg.include_untracked = untracked

    session = BuildSession(root, cfg, workspace)
    try:
        session.compute(base_branch=base_branch, commit_ref=commit_ref)
    except (ModeConflictError, ImpactComputationError) as exc:
        _fail(str(exc))

    if commit_ref:
        header = f"Affected units (since {commit_ref}):"
    else:
        header = f"Affected units (compared to {base_branch or cfg.base_branch}):"

    typer.echo(
        build_text_report(
            header,
            session.affected_units,
            session.changed_files_map,
            session.metadata_map,
            workspace,
        )
    )

    if json_out:
        report = build_json_report(
            session.affected_units,
            session.changed_files_map,
            session.metadata_map,
            mode=session.mode.value,
            reference=commit_ref or (base_branch or cfg.base_branch),
        )
        write_json_report(report, Path(json_out))
        typer.echo(f"Wrote: {json_out}")

    if output_file:
        write_unit_list(Path(output_file), session.affected_units)
        count = len(session.affected_units)
        typer.echo(f"Wrote {count} affected unit(s) to {output_file}")


@app.command()
def units(
    path: str = typer.Option(".", help="Root of the monorepo"),
    config: str | None = typer.Option(None, help="Config YAML path (default: <path>/.monorepo-impact.yml)"),
) -> None:
    """List the build units and their declared dependencies."""
    _, _, workspace = _load(path, config)
    for unit in workspace.all_units():
        try:
            rel = workspace.relative_dir(unit) or "."
        except ValueError as exc:
            _fail(str(exc))
        flag = "" if unit.has_build_file else "  [no build file]"
        typer.echo(f"{unit.path}  ({rel}){flag}")
        for dep in unit.dependency_paths():
            typer.echo(f"    -> {dep}")


if __name__ == "__main__":
    app()
