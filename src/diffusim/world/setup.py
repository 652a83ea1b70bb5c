"""Build fields, agents and the scheduler from a config."""
from __future__ import annotations
import numpy as np

from diffusim.agents.agent import Agent, SpaceBounds
from diffusim.behaviors.base import BehaviorModule
from diffusim.behaviors.chemotaxis import Chemotaxis
from diffusim.behaviors.gene_regulation import GeneRegulation, make_rule
from diffusim.behaviors.grow_divide import GrowDivide
from diffusim.config.schema import (
    ChemotaxisConfig,
    ConfigSchema,
    GeneRegulationConfig,
    GrowDivideConfig,
    PopulationConfig,
    SpaceConfig,
    SubstanceConfig,
)
from diffusim.core.rng import make_rng
from diffusim.engine.scheduler import Scheduler
from diffusim.fields.initializers import GaussianBand, Uniform
from diffusim.fields.substance import SubstanceField


def build_field(cfg: SubstanceConfig, space: SpaceConfig, time_step: float) -> SubstanceField:
    field = SubstanceField(
        cfg.id,
        cfg.name,
        cfg.diffusion_coefficient,
        cfg.decay_constant,
        cfg.resolution,
        lower=space.min_bound,
        upper=space.max_bound,
        time_step=time_step,
        threshold=cfg.threshold,
        boundary=cfg.boundary,
        interpolation=cfg.interpolation,
    )
    if cfg.uniform > 0:
        field.initialize(Uniform(cfg.uniform))
    for band in cfg.bands:
        field.initialize(GaussianBand(band.mean, band.sigma, band.axis, band.amplitude))
    return field


def build_behavior(cfg) -> BehaviorModule:
    if isinstance(cfg, ChemotaxisConfig):
        return Chemotaxis((w.substance, w.weight) for w in cfg.weights)
    if isinstance(cfg, GeneRegulationConfig):
        module = GeneRegulation()
        for gene in cfg.genes:
            module.add_gene(make_rule(gene.rule, **gene.params), gene.initial)
        return module
    if isinstance(cfg, GrowDivideConfig):
        return GrowDivide(cfg.growth_rate, cfg.threshold, cfg.max_active_steps)
    raise TypeError(f"unsupported behavior config {type(cfg).__name__}")


def build_population(cfg: PopulationConfig, bounds: SpaceBounds, rng: np.random.Generator) -> list[Agent]:
    agents = []
    for _ in range(cfg.count):
        if cfg.placement == "fixed":
            position = np.asarray(cfg.position, dtype=np.float64)
        else:
            position = rng.uniform(bounds.min_bound, bounds.max_bound, size=3)
        agents.append(
            Agent(
                position=position,
                diameter=cfg.diameter,
                mass=cfg.mass,
                adherence=cfg.adherence,
                cell_type=cfg.cell_type,
                behaviors=[build_behavior(b) for b in cfg.behaviors],
                bounds=bounds,
            )
        )
    return agents


def build_scheduler(config: ConfigSchema) -> Scheduler:
    """Fields first, then populations in config order, all from one seeded generator."""
    rng = make_rng(config.seed)
    space = config.space
    bounds = SpaceBounds(space.min_bound, space.max_bound, enabled=space.bound_space, policy=space.policy)
    fields = [build_field(s, space, config.scheduler.time_step) for s in config.substances]
    agents: list[Agent] = []
    for population in config.populations:
        agents.extend(build_population(population, bounds, rng))
    return Scheduler(
        fields,
        agents,
        time_step=config.scheduler.time_step,
        workers=config.scheduler.workers,
        rng=rng,
    )
