
"""
config.py

Reading and checking the keywords that set up a Metainference bias.

The keywords are the ones of the METAINFERENCE directive, e.g.

    NOISETYPE : MGAUSS
    PARAMETERS: [1.2, 3.4, 0.5]
    SCALEDATA : true
    SCALE0    : 1.0
    SCALE_MIN : 0.5
    SCALE_MAX : 2.0
    DSCALE    : 0.05
    SIGMA0    : 1.0
    SIGMA_MIN : 0.01
    SIGMA_MAX : 5.0
    DSIGMA    : 0.1
    SIGMA_MEAN: 0.5
    TEMP      : 300.0
    MC_STEPS  : 1
    MC_STRIDE : 10

and can be given as a dict or in a YAML file.
"""

import numpy as np
import yaml
from scipy import constants

from metainference.noise import get_noise_model
from metainference.state import NuisanceState

import logging
logging.basicConfig()
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------------------
# Boltzmann's constant in kJ / mol / K

kB = constants.k * constants.N_A / 1000.0

# ------------------------------------------------------------------------------

COMPULSORY = ['NOISETYPE', 'SIGMA0', 'SIGMA_MIN', 'SIGMA_MAX', 'DSIGMA', 'SIGMA_MEAN']
SCALE_KEYWORDS = ['SCALE0', 'SCALE_MIN', 'SCALE_MAX', 'DSCALE']
OPTIONAL = {
    'PARAMETERS': None,
    'PARARG'    : None,
    'SCALEDATA' : False,
    'TEMP'      : 0.0,
    'MC_STEPS'  : 1,
    'MC_STRIDE' : 1,
    'STRIDE'    : 1,
    'SEED'      : None,
}


class MetainferenceConfig(object):
    """
    The validated setup of a Metainference bias acting on `n_args` arguments.

    Parameters
    ----------
    keywords : dict
        Directive keywords (case insensitive), see the module docstring.
        PARARG, if present, must be a list of objects with a `get()` method
        and a `has_derivatives` attribute, such as the values published by
        another bias.

    n_args : int
        The number of arguments the bias acts on.

    Optional Parameters
    -------------------
    kbt : float
        The thermal energy the host simulation runs at. Only used if TEMP is
        not given.
    """

    def __init__(self, keywords, n_args, kbt=None):

        if not isinstance(keywords, dict):
            raise TypeError('`keywords` must be a dict, got %s' % type(keywords))

        keywords = dict((str(k).upper(), v) for k, v in keywords.items())

        known = set(COMPULSORY) | set(SCALE_KEYWORDS) | set(OPTIONAL)
        unknown = sorted(set(keywords) - known)
        if unknown:
            raise ValueError('Unrecognized keyword(s): %s' % ', '.join(unknown))

        n_args = int(n_args)
        if n_args < 1:
            raise ValueError('Metainference needs at least one argument')
        self.n_args = n_args

        for key in COMPULSORY:
            if keywords.get(key) is None:
                raise ValueError('Missing compulsory keyword %s' % key)

        self.noise = get_noise_model(keywords['NOISETYPE'])
        self.reference = self._read_reference(keywords.get('PARAMETERS'), keywords.get('PARARG'))

        # scaling factor
        self.do_scale = bool(keywords.get('SCALEDATA', OPTIONAL['SCALEDATA']))
        if self.do_scale:
            for key in SCALE_KEYWORDS:
                if keywords.get(key) is None:
                    raise ValueError('SCALEDATA requires the keyword %s' % key)
            self.scale0 = float(keywords['SCALE0'])
            self.scale_min = float(keywords['SCALE_MIN'])
            self.scale_max = float(keywords['SCALE_MAX'])
            self.dscale = float(keywords['DSCALE'])
            self._check_bounds('scale', self.scale0, self.scale_min, self.scale_max, self.dscale)
        else:
            self.scale0 = 1.0
            self.scale_min = None
            self.scale_max = None
            self.dscale = 0.0

        # data uncertainties
        self.sigma0 = self.noise.expand_sigma(keywords['SIGMA0'], n_args)
        self.sigma_min = float(keywords['SIGMA_MIN'])
        self.sigma_max = float(keywords['SIGMA_MAX'])
        self.dsigma = float(keywords['DSIGMA'])
        self.sigma_mean = float(keywords['SIGMA_MEAN'])
        for s in self.sigma0:
            self._check_bounds('sigma', s, self.sigma_min, self.sigma_max, self.dsigma)

        # Monte Carlo
        self.mc_steps = int(keywords.get('MC_STEPS', OPTIONAL['MC_STEPS']))
        mc_stride = int(keywords.get('MC_STRIDE', OPTIONAL['MC_STRIDE']))
        stride = int(keywords.get('STRIDE', OPTIONAL['STRIDE']))
        if self.mc_steps < 0:
            raise ValueError('MC_STEPS must be >= 0, got %d' % self.mc_steps)
        if mc_stride < 1 or stride < 1:
            raise ValueError('MC_STRIDE and STRIDE must be >= 1, got %d and %d' % (mc_stride, stride))
        # adjust for multiple time steps
        self.mc_stride = mc_stride * stride

        seed = keywords.get('SEED', OPTIONAL['SEED'])
        self.seed = None if seed is None else int(seed)

        # temperature
        temp = float(keywords.get('TEMP', OPTIONAL['TEMP']) or 0.0)
        if temp > 0.0:
            self.kbt = kB * temp
        elif kbt is not None and kbt > 0.0:
            self.kbt = float(kbt)
        else:
            raise ValueError('The temperature is unknown: set TEMP or pass the kbt of the simulation')

        return

    @classmethod
    def from_yaml(cls, filename, n_args, kbt=None):
        """
        Load the keywords from a YAML file.
        """
        with open(filename, 'r') as f:
            keywords = yaml.safe_load(f)
        logger.info('Read Metainference setup from: %s' % filename)
        return cls(keywords, n_args, kbt=kbt)

    def make_state(self):
        """
        Build the initial nuisance parameters. `sigma_mean` is the value read
        from input, not yet rescaled by the number of replicas.
        """
        return NuisanceState(self.sigma0, self.sigma_min, self.sigma_max, self.dsigma,
                             self.sigma_mean, scale=self.scale0, scale_min=self.scale_min,
                             scale_max=self.scale_max, dscale=self.dscale,
                             do_scale=self.do_scale)

    def _read_reference(self, parameters, pararg):

        if parameters is not None and pararg is not None:
            raise ValueError('It is not possible to use PARARG and PARAMETERS together')

        if pararg is not None:
            reference = []
            for value in pararg:
                if value.has_derivatives:
                    raise ValueError('PARARG can only accept arguments without derivatives')
                reference.append(value.get())
        elif parameters is not None:
            reference = parameters
        else:
            raise ValueError('The experimental values must be given with PARAMETERS or PARARG')

        reference = np.atleast_1d(np.asarray(reference, dtype=float))
        if reference.ndim != 1 or reference.size != self.n_args:
            raise ValueError('PARARG or PARAMETERS should include the same number of elements '
                             'as the arguments (%d), got %d' % (self.n_args, reference.size))

        return reference

    @staticmethod
    def _check_bounds(name, value, lower, upper, step):
        if not lower <= upper:
            raise ValueError('%s: minimum (%f) is larger than maximum (%f)' % (name, lower, upper))
        if not lower <= value <= upper:
            raise ValueError('%s: initial value %f outside of [%f, %f]' % (name, value, lower, upper))
        if step < 0.0:
            raise ValueError('%s: MC move must be >= 0, got %f' % (name, step))
        if step > upper - lower:
            logger.warning('%s: MC move (%f) larger than the allowed interval (%f); reflected '
                           'proposals may fall outside of [%f, %f]' % (name, step, upper - lower, lower, upper))
