"""Configuration utilities for diffusim."""
from pathlib import Path

from .schema import ConfigSchema, load_config

DEFAULT_CONFIG = Path(__file__).with_name("defaults.yaml")

__all__ = ["ConfigSchema", "DEFAULT_CONFIG", "load_config"]
