
"""
Tests: src/python/state.py
"""

import numpy as np
from numpy.testing import assert_allclose, assert_array_almost_equal

import pytest

from metainference.state import reflect, NuisanceState


def test_reflect_upper():
    assert_allclose(reflect(2.3, 0.0, 2.0), 1.7)

def test_reflect_lower():
    assert_allclose(reflect(-0.2, 0.0, 2.0), 0.2)

def test_reflect_inside_is_identity():
    for x in [0.0, 0.5, 1.999, 2.0]:
        assert reflect(x, 0.0, 2.0) == x

def test_reflect_idempotent():
    for x in np.linspace(-1.9, 3.9, 30):
        y = reflect(x, 0.0, 2.0)
        assert 0.0 <= y <= 2.0
        assert reflect(y, 0.0, 2.0) == y

def test_reflect_array():
    x = np.array([-0.5, 0.5, 2.5])
    assert_array_almost_equal(reflect(x, 0.0, 2.0), [0.5, 0.5, 1.5])

def test_reflect_overshoot():
    # a single reflection cannot bring back a value that undershoots by
    # more than the interval width
    assert_allclose(reflect(-3.0, 0.0, 2.0), 3.0)
    assert reflect(-3.0, 0.0, 2.0) > 2.0


class TestNuisanceState(object):

    def setup_method(self):
        self.state = NuisanceState([0.5, 1.0], 0.1, 2.0, 0.2, 0.3,
                                   scale=1.0, scale_min=0.5, scale_max=1.05,
                                   dscale=0.1, do_scale=True)

    def test_propose_scale(self):
        assert_allclose(self.state.propose_scale(0.5), 1.0)
        assert_allclose(self.state.propose_scale(0.0), 0.9)
        # 1.1 is reflected at 1.05
        assert_allclose(self.state.propose_scale(1.0), 1.0)

    def test_propose_sigma(self):
        new = self.state.propose_sigma([0.0, 1.0])
        assert_array_almost_equal(new, [0.3, 1.2])
        # proposing does not move the state
        assert_array_almost_equal(self.state.sigma, [0.5, 1.0])

    def test_propose_sigma_reflects(self):
        self.state.update(1.0, [0.15, 1.95])
        new = self.state.propose_sigma([0.0, 1.0])
        assert_array_almost_equal(new, [0.25, 1.85])

    def test_propose_sigma_needs_one_draw_each(self):
        with pytest.raises(ValueError):
            self.state.propose_sigma([0.5])

    def test_in_bounds(self):
        assert self.state.in_bounds()
        self.state.update(1.2, [0.5, 1.0])
        assert not self.state.in_bounds()

    def test_fixed_scale(self):
        s = NuisanceState([0.5], 0.1, 2.0, 0.2, 0.3, scale=3.0)
        assert s.scale == 1.0
        assert s.dscale == 0.0
        assert s.propose_scale(0.9) == 1.0
        assert s.n_sigma == 1
