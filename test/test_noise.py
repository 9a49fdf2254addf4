
"""
Tests: src/python/noise.py
"""

import numpy as np
from numpy.testing import assert_allclose, assert_array_almost_equal, assert_array_equal

import pytest

from metainference import noise


def numerical_force(model, arguments, reference, scale, sigma, sigma_mean, h=1e-6):
    f = np.zeros(len(arguments))
    for i in range(len(arguments)):
        up = np.array(arguments, dtype=float)
        dn = np.array(arguments, dtype=float)
        up[i] += h
        dn[i] -= h
        f[i] = -(model.energy(up, reference, scale, sigma, sigma_mean) -
                 model.energy(dn, reference, scale, sigma, sigma_mean)) / (2.0 * h)
    return f


class TestGaussNoise(object):

    def setup_method(self):
        self.model = noise.GaussNoise()
        self.args = np.array([1.0, 2.0, 0.5])
        self.ref = np.array([0.5, 2.5, 0.5])

    def test_vanishing_deviation(self):
        e = self.model.energy([1.3], [1.3], 1.0, [0.0], 1.0)
        assert_allclose(e, np.log(np.sqrt(2.0 * np.pi)))

    def test_energy(self):
        ss = 0.5**2 + 0.2**2
        dev = 2.0 * self.args - self.ref
        ref_e = np.sum(0.5 * dev**2 / ss + np.log(ss * np.sqrt(2.0 * np.pi)))
        assert_allclose(self.model.energy(self.args, self.ref, 2.0, [0.5], 0.2), ref_e)

    def test_force_is_gradient(self):
        inv_s2 = 1.0 / noise.effective_variance([0.5], 0.2)
        f = self.model.force(self.args, self.ref, 1.5, inv_s2)
        f_num = numerical_force(self.model, self.args, self.ref, 1.5, [0.5], 0.2)
        assert_allclose(f, f_num, rtol=1e-5, atol=1e-8)

    def test_force_pulls_to_reference(self):
        inv_s2 = 1.0 / noise.effective_variance([1.0], 0.0)
        f = self.model.force([2.0, -1.0], [0.0, 0.0], 1.0, inv_s2)
        assert f[0] < 0.0
        assert f[1] > 0.0

    def test_n_sigma(self):
        assert self.model.n_sigma(7) == 1
        assert_array_equal(self.model.sigma_index(3), np.zeros(3))

    def test_expand_sigma(self):
        assert_array_equal(self.model.expand_sigma(0.3, 4), np.array([0.3]))
        assert_array_equal(self.model.expand_sigma([0.3], 4), np.array([0.3]))

    def test_too_many_sigmas(self):
        with pytest.raises(ValueError):
            self.model.expand_sigma([0.3, 0.4], 2)


class TestMultiGaussNoise(object):

    def setup_method(self):
        self.model = noise.MultiGaussNoise()
        self.args = np.array([1.0, 2.0, 0.5])
        self.ref = np.array([0.5, 2.5, 0.0])
        self.sigma = np.array([0.1, 0.5, 1.0])

    def test_energy(self):
        ss = self.sigma**2 + 0.3**2
        dev = self.args - self.ref
        ref_e = np.sum(0.5 * dev**2 / ss + np.log(ss * np.sqrt(2.0 * np.pi)))
        assert_allclose(self.model.energy(self.args, self.ref, 1.0, self.sigma, 0.3), ref_e)

    def test_force_is_gradient(self):
        inv_s2 = 1.0 / noise.effective_variance(self.sigma, 0.3)
        f = self.model.force(self.args, self.ref, 0.8, inv_s2)
        f_num = numerical_force(self.model, self.args, self.ref, 0.8, self.sigma, 0.3)
        assert_allclose(f, f_num, rtol=1e-5, atol=1e-8)

    def test_expand_sigma(self):
        assert_array_equal(self.model.expand_sigma(0.3, 3), 0.3 * np.ones(3))
        assert_array_equal(self.model.expand_sigma(self.sigma, 3), self.sigma)
        assert self.model.expand_sigma(self.sigma, 3) is not self.sigma

    def test_expand_sigma_wrong_size(self):
        with pytest.raises(ValueError):
            self.model.expand_sigma([0.1, 0.2], 3)


class TestLongTailNoise(object):

    def setup_method(self):
        self.model = noise.LongTailNoise()
        self.args = np.array([1.0, 2.0, 0.5, 4.0])
        self.ref = np.array([0.5, 2.5, 0.5, 1.0])

    def test_energy(self):
        sm2 = 0.4**2
        s = np.sqrt(0.3**2 + sm2)
        dev = 1.1 * self.args - self.ref
        a2 = 0.5 * dev**2 + s**2
        ref_e = np.sum(np.log(2.0 * a2 / (1.0 - np.exp(-a2 / sm2))))
        ref_e += np.log(s) - 4 * np.log(noise.SQRT2_DIV_PI * s)
        assert_allclose(self.model.energy(self.args, self.ref, 1.1, [0.3], 0.4), ref_e)

    def test_local_plus_prior_is_energy(self):
        e, f = self.model.local_energy_force(self.args, self.ref, 1.1, [0.3], 0.4)
        e += self.model.prior([0.3], 0.4, 4)
        assert_allclose(e, self.model.energy(self.args, self.ref, 1.1, [0.3], 0.4))

    def test_force_is_gradient(self):
        e, f = self.model.local_energy_force(self.args, self.ref, 1.1, [0.3], 0.4)
        f_num = numerical_force(self.model, self.args, self.ref, 1.1, [0.3], 0.4)
        assert_allclose(f, f_num, rtol=1e-5, atol=1e-8)

    def test_outliers_are_cheap(self):
        # the long tailed energy grows logarithmically, not quadratically
        gauss = noise.GaussNoise()
        far = self.model.energy([100.0], [0.0], 1.0, [0.3], 0.4) - \
              self.model.energy([10.0], [0.0], 1.0, [0.3], 0.4)
        gfar = gauss.energy([100.0], [0.0], 1.0, [0.3], 0.4) - \
               gauss.energy([10.0], [0.0], 1.0, [0.3], 0.4)
        assert far < 10.0
        assert gfar > 1e4

    def test_n_sigma(self):
        assert self.model.n_sigma(4) == 1


def test_get_noise_model():
    assert isinstance(noise.get_noise_model('GAUSS'), noise.GaussNoise)
    assert isinstance(noise.get_noise_model('mgauss'), noise.MultiGaussNoise)
    assert isinstance(noise.get_noise_model('LTAIL'), noise.LongTailNoise)
    assert noise.get_noise_model('LTAIL').path == 'SPE'
    assert noise.get_noise_model('MGAUSS').path == 'GJE'


def test_unknown_noise_model():
    with pytest.raises(ValueError):
        noise.get_noise_model('CAUCHY')


def test_effective_variance():
    assert_array_almost_equal(noise.effective_variance([3.0, 0.0], 4.0), [25.0, 16.0])
