"""Test configuration for local imports without installing the package."""
from __future__ import annotations

import sys
from pathlib import Path

import numpy as np
import pytest


def pytest_configure():
    """Ensure the src/ directory is importable for tests."""
    root = Path(__file__).resolve().parents[1] / "src"
    sys.path.insert(0, str(root))


class ConstantGradientField:
    """Synthetic field with the same gradient everywhere."""

    def __init__(self, substance_id: int, gradient):
        self.substance_id = substance_id
        self.gradient = np.asarray(gradient, dtype=np.float64)

    def get_concentration(self, position) -> float:
        return float(np.dot(self.gradient, position))

    def get_gradient(self, position) -> np.ndarray:
        return self.gradient.copy()


@pytest.fixture
def constant_field():
    return ConstantGradientField
