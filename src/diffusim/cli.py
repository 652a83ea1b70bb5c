"""Typer CLI for diffusim."""
from __future__ import annotations
import logging
import typer
from pathlib import Path
from rich import print
from rich.table import Table

from diffusim.config import DEFAULT_CONFIG, load_config
from diffusim.core.errors import DiffusimError
from diffusim.engine.sim_runner import run_simulation
from diffusim.fields.substance import STABILITY_BOUND
from diffusim.world.setup import build_scheduler

app = typer.Typer(help="Agents and diffusing substances on a shared timeline")


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging")):
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")


@app.command()
def run(
    config: Path = typer.Option(DEFAULT_CONFIG, help="YAML config path"),
    seed: int = typer.Option(None, help="Override seed"),
    steps: int = typer.Option(None, help="Override step count"),
    workers: int = typer.Option(None, help="Worker threads"),
    run_dir: Path = typer.Option(None, help="Output directory"),
):
    cfg = load_config(config)
    if seed is not None:
        cfg.seed = seed
    if steps is not None:
        cfg.scheduler.steps = steps
    if workers is not None:
        cfg.scheduler.workers = workers
    if run_dir is not None:
        cfg.outputs.run_dir = run_dir
    try:
        run_simulation(cfg)
    except DiffusimError as exc:
        print(f"[red]error:[/red] {exc}")
        raise typer.Exit(code=1)


@app.command()
def check(config: Path = typer.Option(DEFAULT_CONFIG, help="YAML config path")):
    """Validate a config and report each field's diffusion number."""
    cfg = load_config(config)
    try:
        scheduler = build_scheduler(cfg)
        scheduler.validate()
    except DiffusimError as exc:
        print(f"[red]invalid:[/red] {exc}")
        raise typer.Exit(code=1)
    table = Table(title=f"stability bound {STABILITY_BOUND:.4f}")
    table.add_column("substance")
    table.add_column("cell size")
    table.add_column("diffusion number")
    for field in scheduler.fields.values():
        table.add_row(field.name, f"{field.cell_size:.4g}", f"{field.diffusion_number:.4g}")
    print(table)
    print(f"{len(scheduler.agents)} agents, {len(scheduler.fields)} substances")


if __name__ == "__main__":
    app()
