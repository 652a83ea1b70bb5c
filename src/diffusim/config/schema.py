"""Pydantic config schema and loader."""
from pathlib import Path
from typing import Annotated, Literal, Optional, Union
import yaml
from pydantic import BaseModel, Field, field_validator, model_validator

from diffusim.behaviors.gene_regulation import GENE_RULES


class SpaceConfig(BaseModel):
    min_bound: float = 0.0
    max_bound: float = 1000.0
    bound_space: bool = True
    policy: Literal["clamp", "warn"] = "clamp"

    @model_validator(mode="after")
    def validate_extent(self):
        if self.max_bound <= self.min_bound:
            raise ValueError("max_bound must exceed min_bound")
        return self


class SchedulerConfig(BaseModel):
    steps: int = 2000
    time_step: float = 0.01
    workers: int = 1
    record_interval: int = 100
    progress_interval: Optional[int] = None

    @field_validator("steps")
    @classmethod
    def validate_steps(cls, v: int) -> int:
        if v < 0:
            raise ValueError("steps must be non-negative")
        return v

    @field_validator("time_step")
    @classmethod
    def validate_time_step(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("time_step must be positive")
        return v

    @field_validator("workers", "record_interval")
    @classmethod
    def validate_at_least_one(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be at least 1")
        return v


class GaussianBandConfig(BaseModel):
    mean: float
    sigma: float
    axis: Literal["x", "y", "z"] = "x"
    amplitude: float = 1.0

    @field_validator("sigma")
    @classmethod
    def validate_sigma(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("sigma must be positive")
        return v


class SubstanceConfig(BaseModel):
    id: int
    name: str
    diffusion_coefficient: float = 0.5
    decay_constant: float = 0.0
    resolution: int = 10
    threshold: Optional[float] = None
    boundary: Literal["zero_flux", "absorbing"] = "zero_flux"
    interpolation: Literal["linear", "nearest"] = "linear"
    uniform: float = 0.0
    bands: list[GaussianBandConfig] = Field(default_factory=list)

    @field_validator("diffusion_coefficient", "decay_constant", "uniform")
    @classmethod
    def validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("rates must be non-negative")
        return v

    @field_validator("resolution")
    @classmethod
    def validate_resolution(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("resolution must be positive")
        return v


class SubstanceWeight(BaseModel):
    substance: int
    weight: float


class ChemotaxisConfig(BaseModel):
    kind: Literal["chemotaxis"] = "chemotaxis"
    weights: list[SubstanceWeight] = Field(default_factory=list)


class GeneConfig(BaseModel):
    rule: str
    initial: float = 0.0
    params: dict[str, float] = Field(default_factory=dict)

    @field_validator("rule")
    @classmethod
    def validate_rule(cls, v: str) -> str:
        if v not in GENE_RULES:
            raise ValueError(f"unknown gene rule '{v}'; expected one of {sorted(GENE_RULES)}")
        return v


class GeneRegulationConfig(BaseModel):
    kind: Literal["gene_regulation"] = "gene_regulation"
    genes: list[GeneConfig] = Field(default_factory=list)


class GrowDivideConfig(BaseModel):
    kind: Literal["grow_divide"] = "grow_divide"
    growth_rate: float = 0.02
    threshold: float = 35.0
    max_active_steps: Optional[int] = None

    @field_validator("growth_rate")
    @classmethod
    def validate_rate(cls, v: float) -> float:
        if v < 0:
            raise ValueError("growth_rate must be non-negative")
        return v

    @field_validator("threshold")
    @classmethod
    def validate_threshold(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("threshold must be positive")
        return v


BehaviorConfig = Annotated[
    Union[ChemotaxisConfig, GeneRegulationConfig, GrowDivideConfig],
    Field(discriminator="kind"),
]


class PopulationConfig(BaseModel):
    count: int = 1
    placement: Literal["uniform", "fixed"] = "uniform"
    position: Optional[list[float]] = None
    diameter: float = 30.0
    mass: float = 1.0
    adherence: float = 0.0
    cell_type: int = 0
    behaviors: list[BehaviorConfig] = Field(default_factory=list)

    @field_validator("count")
    @classmethod
    def validate_count(cls, v: int) -> int:
        if v < 0:
            raise ValueError("count must be non-negative")
        return v

    @field_validator("diameter", "mass")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("diameter and mass must be positive")
        return v

    @model_validator(mode="after")
    def validate_placement(self):
        if self.placement == "fixed" and (self.position is None or len(self.position) != 3):
            raise ValueError("fixed placement needs a 3-component position")
        for behavior in self.behaviors:
            if isinstance(behavior, GrowDivideConfig) and self.diameter > behavior.threshold:
                raise ValueError(f"diameter {self.diameter} exceeds division threshold {behavior.threshold}")
        return self


class OutputConfig(BaseModel):
    run_dir: Path = Path("runs")
    summarize: bool = True
    write_config: bool = True


class ConfigSchema(BaseModel):
    seed: int = 0
    space: SpaceConfig = Field(default_factory=SpaceConfig)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    substances: list[SubstanceConfig] = Field(default_factory=list)
    populations: list[PopulationConfig] = Field(default_factory=list)
    outputs: OutputConfig = Field(default_factory=OutputConfig)

    @model_validator(mode="after")
    def validate_substance_references(self):
        ids = [s.id for s in self.substances]
        if len(ids) != len(set(ids)):
            raise ValueError("substance ids must be unique")
        for population in self.populations:
            for behavior in population.behaviors:
                if isinstance(behavior, ChemotaxisConfig):
                    for entry in behavior.weights:
                        if entry.substance not in ids:
                            raise ValueError(f"chemotaxis references undefined substance {entry.substance}")
        return self


def load_config(path: Path) -> ConfigSchema:
    data = yaml.safe_load(Path(path).read_text()) or {}
    return ConfigSchema(**data)
