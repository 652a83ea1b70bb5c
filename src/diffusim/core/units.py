"""Physical unit helpers."""
import math


def sphere_volume(diameter: float) -> float:
    return math.pi * diameter**3 / 6.0


def sphere_diameter(volume: float) -> float:
    if volume <= 0:
        return 0.0
    return (6.0 * volume / math.pi) ** (1.0 / 3.0)
