"""Simulation runner: build a scenario from config, run it and write outputs."""
from __future__ import annotations
import json
import time
from pathlib import Path
from typing import List
import yaml
from rich.console import Console
from rich.table import Table

from diffusim.behaviors.gene_regulation import GeneRegulation
from diffusim.config import ConfigSchema
from diffusim.engine.metrics import save_metrics, step_record
from diffusim.engine.scheduler import Scheduler
from diffusim.world.setup import build_scheduler

console = Console()


def execute(config: ConfigSchema, *, quiet: bool = False) -> tuple[Scheduler, List[dict]]:
    """Run the configured scenario in memory; returns the scheduler and recorded metrics."""
    scheduler = build_scheduler(config)
    steps = config.scheduler.steps
    record_interval = config.scheduler.record_interval
    progress_interval = config.scheduler.progress_interval or max(10, steps // 20)
    records: List[dict] = [step_record(scheduler)]

    def on_step(s: Scheduler) -> None:
        done = s.get_simulated_steps()
        if done % record_interval == 0 or done == steps:
            records.append(step_record(s))
        if not quiet and done % progress_interval == 0:
            console.log(f"step {done}/{steps} | agents={len(s.agents)} | rejected divisions={len(s.rejected_divisions)}")

    start = time.time()
    scheduler.simulate(steps, on_step=on_step)
    if not quiet:
        console.log(f"{steps} steps in {time.time() - start:.2f}s")
    return scheduler, records


def first_gene_concentrations(scheduler: Scheduler) -> list[float]:
    if len(scheduler.agents) == 0:
        return []
    modules = scheduler.agents[0].get_behaviors(GeneRegulation)
    return list(modules[0].get_concentrations()) if modules else []


def run_simulation(config: ConfigSchema) -> Path:
    run_dir = Path(config.outputs.run_dir) / f"run_{config.seed}"
    run_dir.mkdir(parents=True, exist_ok=True)
    scheduler, records = execute(config)
    save_metrics(records, run_dir / "metrics.csv")
    concentrations = first_gene_concentrations(scheduler)
    summary = {
        "simulated_steps": scheduler.get_simulated_steps(),
        "simulated_time": scheduler.simulated_time,
        "state": scheduler.state.value,
        "agents": len(scheduler.agents),
        "rejected_divisions": len(scheduler.rejected_divisions),
        "boundary_violations": sum(a.boundary_violations for a in scheduler.agents),
    }
    (run_dir / "summary.json").write_text(json.dumps(summary, indent=2))
    genes = {"simulated_steps": scheduler.get_simulated_steps(), "concentrations": concentrations}
    (run_dir / "gene_concentrations.json").write_text(json.dumps(genes, indent=2))
    if config.outputs.write_config:
        config_dict = config.model_dump(mode="json")
        with open(run_dir / "config.yaml", "w") as f:
            yaml.safe_dump(config_dict, f)
    if config.outputs.summarize:
        table = Table(title=f"Gene concentrations after {scheduler.get_simulated_steps()} time steps", show_lines=True)
        table.add_column("gene")
        table.add_column("concentration")
        for i, value in enumerate(concentrations):
            table.add_row(str(i), f"{value:.6g}")
        console.print(table)
    console.print(f"run complete -> {run_dir}")
    return run_dir
