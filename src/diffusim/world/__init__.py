"""Scenario construction from configuration."""
from .setup import build_behavior, build_field, build_population, build_scheduler

__all__ = ["build_behavior", "build_field", "build_population", "build_scheduler"]
