
"""
Tests: src/python/replay.py
"""

import os
import shutil
import tempfile

import numpy as np
from numpy.testing import assert_allclose, assert_array_equal

import pytest

from metainference import replay, noise
from metainference.testing import ref_file


class TestReplay(object):

    def setup_method(self):
        self.tmpdir = tempfile.mkdtemp()
        self.out = os.path.join(self.tmpdir, 'metainference.out')

    def teardown_method(self):
        shutil.rmtree(self.tmpdir)

    def test_gauss(self):
        replay.main([ref_file('gauss.yaml'), ref_file('args.dat'), '-o', self.out, '--kbt', '1.0'])

        with open(self.out) as f:
            header = f.readline()
        assert header.split() == ['#!', 'FIELDS', 'step', 'bias', 'accept', 'sigma']

        table = np.loadtxt(self.out)
        args = np.loadtxt(ref_file('args.dat'))
        assert table.shape == (5, 4)
        assert_array_equal(table[:,0], np.arange(5))

        # DSIGMA is zero in the setup: sigma never moves
        ss = 0.5**2 + 1.0**2
        dev = args - np.array([0.0, 1.0])
        bias = np.sum(0.5 * dev**2 / ss + np.log(ss * noise.SQRT2PI), axis=1)
        assert_allclose(table[:,1], bias, atol=1e-7)
        assert_allclose(table[:,3], 0.5)

        # the first move leaves the energy unchanged
        assert_allclose(table[0,2], 1.0)
        assert np.all(table[:,2] <= 1.0)

    def test_forces_and_stride(self):
        replay.main([ref_file('gauss.yaml'), ref_file('args.dat'), '-o', self.out,
                     '--kbt', '2.0', '--forces', '--stride', '10'])
        table = np.loadtxt(self.out)
        args = np.loadtxt(ref_file('args.dat'))
        assert table.shape == (5, 6)
        assert_array_equal(table[:,0], np.arange(5) * 10)
        ss = 0.5**2 + 1.0**2
        assert_allclose(table[:,4:], -2.0 * (args - np.array([0.0, 1.0])) / ss, atol=1e-7)

    def test_step_column(self):
        argfile = os.path.join(self.tmpdir, 'args.dat')
        np.savetxt(argfile, np.array([[100, 0.1, 0.9], [101, 0.2, 1.1]]))
        steps, arguments = replay.load_arguments(argfile, step_column=True)
        assert_array_equal(steps, [100, 101])
        assert arguments.shape == (2, 2)

    def test_missing_file(self):
        with pytest.raises(IOError):
            replay.load_arguments(os.path.join(self.tmpdir, 'nope.dat'))
