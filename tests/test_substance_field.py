from concurrent.futures import ThreadPoolExecutor

import numpy as np
import pytest

from diffusim.core.errors import ConfigurationError, NumericalInstabilityError
from diffusim.fields import GaussianBand, SubstanceField


def _field(**kwargs) -> SubstanceField:
    params = dict(substance_id=0, name="s", diffusion_coefficient=1.0, decay_constant=0.0, resolution=8)
    params.update(kwargs)
    sid = params.pop("substance_id")
    name = params.pop("name")
    d = params.pop("diffusion_coefficient")
    decay = params.pop("decay_constant")
    res = params.pop("resolution")
    return SubstanceField(sid, name, d, decay, res, **params)


def test_mass_is_conserved_with_zero_flux_boundaries():
    field = _field(upper=8.0, time_step=0.1)
    rng = np.random.default_rng(0)
    field.set_concentrations(rng.random((8, 8, 8)))
    before = field.total_concentration()
    for step in range(200):
        field.diffuse(step)
    assert np.isclose(field.total_concentration(), before, rtol=1e-10)
    # and it actually spread out
    assert field.concentrations.std() < 0.05


def test_absorbing_boundary_leaks_mass():
    field = _field(upper=8.0, time_step=0.1, boundary="absorbing")
    field.initialize(lambda x, y, z: np.ones_like(x))
    before = field.total_concentration()
    field.diffuse(0)
    assert field.total_concentration() < before


def test_decay_scales_uniform_field():
    field = _field(upper=8.0, time_step=0.1, decay_constant=0.5)
    field.initialize(lambda x, y, z: np.full_like(x, 2.0))
    field.diffuse(0)
    assert np.allclose(field.concentrations, 2.0 * (1 - 0.5 * 0.1))


def test_point_source_spreads_symmetrically():
    field = _field(resolution=9, upper=9.0, time_step=0.1)
    grid = np.zeros((9, 9, 9))
    grid[4, 4, 4] = 1.0
    field.set_concentrations(grid)
    field.diffuse(0)
    c = field.concentrations
    r = field.diffusion_number
    assert np.isclose(c[4, 4, 4], 1.0 - 6 * r)
    neighbours = [c[3, 4, 4], c[5, 4, 4], c[4, 3, 4], c[4, 5, 4], c[4, 4, 3], c[4, 4, 5]]
    assert np.allclose(neighbours, r)


def test_threshold_clips_after_diffuse():
    field = _field(upper=8.0, time_step=0.1)
    field.initialize(lambda x, y, z: np.full_like(x, 5.0))
    field.set_concentration_threshold(3.0)
    # threshold applies on the next step, not immediately
    assert field.max_concentration() == 5.0
    field.diffuse(0)
    assert field.max_concentration() == 3.0
    field.set_concentration_threshold(None)
    field.set_concentrations(np.full((8, 8, 8), 5.0))
    field.diffuse(1)
    assert field.max_concentration() == pytest.approx(5.0)


def test_negative_threshold_rejected():
    field = _field()
    with pytest.raises(ConfigurationError):
        field.set_concentration_threshold(-1.0)


def test_unstable_parameters_fail_at_construction():
    # D*dt/dx^2 = 1 * 1 / 1 = 1 > 1/6
    with pytest.raises(NumericalInstabilityError) as info:
        _field(name="fast", upper=8.0, time_step=1.0)
    assert info.value.field == "fast"
    assert info.value.value == pytest.approx(1.0)


def test_instability_detected_when_parameters_change():
    field = _field(upper=8.0, time_step=0.1)
    field.diffusion_coefficient = 100.0
    with pytest.raises(NumericalInstabilityError) as info:
        field.diffuse(7)
    assert info.value.step == 7


def test_non_finite_concentration_is_fatal():
    field = _field(name="hot", upper=8.0, time_step=0.1)
    field.set_concentrations(np.full((8, 8, 8), 1.7e308))
    with pytest.raises(NumericalInstabilityError) as info:
        field.diffuse(3)
    assert info.value.field == "hot"
    assert info.value.step == 3


def test_invalid_configuration():
    with pytest.raises(ConfigurationError):
        _field(diffusion_coefficient=-1.0)
    with pytest.raises(ConfigurationError):
        _field(resolution=0)
    with pytest.raises(ConfigurationError):
        _field(boundary="periodic")
    with pytest.raises(ConfigurationError):
        _field().set_concentrations(np.zeros((2, 2, 2)))


def test_slab_parallel_diffusion_matches_serial():
    a = _field(resolution=11, upper=11.0, time_step=0.1, decay_constant=0.2)
    b = _field(resolution=11, upper=11.0, time_step=0.1, decay_constant=0.2)
    grid = np.random.default_rng(1).random((11, 11, 11))
    a.set_concentrations(grid)
    b.set_concentrations(grid)
    with ThreadPoolExecutor(max_workers=4) as pool:
        for step in range(5):
            a.diffuse(step)
            b.diffuse(step, executor=pool, workers=4)
    assert np.array_equal(a.concentrations, b.concentrations)


def test_gaussian_bands_add_across_axes():
    field = _field(resolution=10, upper=1000.0, time_step=0.01)
    field.initialize(GaussianBand(50.0, 250.0, "x"))
    field.initialize(GaussianBand(50.0, 250.0, "y"))
    c = field.concentrations
    # cell (0, 0, k) sits on both band peaks
    assert np.isclose(c[0, 0, 5], 2.0)
    assert np.isclose(c[0, 9, 5], 1.0 + np.exp(-(900.0**2) / (2 * 250.0**2)))


def test_concentrations_view_is_read_only():
    field = _field()
    with pytest.raises(ValueError):
        field.concentrations[0, 0, 0] = 1.0
