"""Metrics aggregation and output."""
from __future__ import annotations
from pathlib import Path
import numpy as np
import pandas as pd

from diffusim.engine.scheduler import Scheduler


def step_record(scheduler: Scheduler) -> dict:
    """Flat summary of the current scheduler state."""
    agents = scheduler.agents.snapshot()
    record: dict = {"step": scheduler.get_simulated_steps(), "time": scheduler.simulated_time, "agents": len(agents)}
    for field in scheduler.fields.values():
        record[f"{field.name}_total"] = field.total_concentration()
        record[f"{field.name}_max"] = field.max_concentration()
    if agents:
        positions = np.stack([a.position for a in agents])
        centroid = positions.mean(axis=0)
        record.update(
            centroid_x=float(centroid[0]),
            centroid_y=float(centroid[1]),
            centroid_z=float(centroid[2]),
            mean_diameter=float(np.mean([a.diameter for a in agents])),
        )
    return record


def save_metrics(records: list[dict], path: Path):
    df = pd.DataFrame(records)
    path.parent.mkdir(parents=True, exist_ok=True)
    df.to_csv(path, index=False)
    return df
