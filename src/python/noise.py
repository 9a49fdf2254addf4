
"""
noise.py

Noise models for the Metainference score.

Each model maps a set of forward-model predictions (the `arguments`), their
experimental counterparts (the `reference`), a global scaling factor and the
data uncertainties onto an energy, in units of kT. The models hold no state;
the sampled parameters live in a `NuisanceState` and are passed in.
"""

import abc

import numpy as np

import logging
logging.basicConfig()
logger = logging.getLogger(__name__)

# ------------------------------------------------------------------------------
# CONSTANTS

SQRT2PI = 2.506628274631001
SQRT2_DIV_PI = 0.45015815807855

# ------------------------------------------------------------------------------


def deviations(arguments, reference, scale):
    """
    Return the residuals `scale * argument - reference`, one per data point.
    """
    return scale * np.asarray(arguments, dtype=float) - np.asarray(reference, dtype=float)


def effective_variance(sigma, sigma_mean):
    """
    The total variance of each data point, `sigma^2 + sigma_mean^2`.

    Parameters
    ----------
    sigma : ndarray, float
        The uncertainty parameter(s).

    sigma_mean : float
        The uncertainty in the ensemble average estimate.

    Returns
    -------
    ss : ndarray, float
        An array with the same length as `sigma`.
    """
    sigma = np.asarray(sigma, dtype=float)
    return sigma * sigma + sigma_mean * sigma_mean


class NoiseModel(object, metaclass=abc.ABCMeta):
    """
    Abstract base class for the functional form of the experimental noise.

    Children declare:
    -- name        (the keyword used to select the model)
    -- description (a one-line human summary, used in the log)
    -- path        ('GJE' for the gaussian models, 'SPE' for the long tailed
                    one), which determines how forces are reduced across
                    the ensemble

    and implement `n_sigma` and `energy`.
    """

    name = None
    description = None
    path = None

    @abc.abstractmethod
    def n_sigma(self, n_data):
        """
        The number of independent uncertainty parameters for `n_data` points.
        """
        return

    @abc.abstractmethod
    def energy(self, arguments, reference, scale, sigma, sigma_mean):
        """
        Evaluate the energy (in kT) of the data given the nuisance parameters.

        Parameters
        ----------
        arguments : ndarray, float
            The predicted value of each observable.

        reference : ndarray, float
            The experimental value of each observable.

        scale : float
            The scaling factor applied to every prediction.

        sigma : ndarray, float
            The uncertainty parameter(s), of length `self.n_sigma(n_data)`.

        sigma_mean : float
            The uncertainty in the mean estimate.

        Returns
        -------
        energy : float
            The energy in units of kT.
        """
        return

    def expand_sigma(self, sigma0, n_data):
        """
        Turn the initial value(s) of sigma read from input into an array of
        length `self.n_sigma(n_data)`.
        """

        sigma0 = np.atleast_1d(np.asarray(sigma0, dtype=float))

        if sigma0.ndim != 1:
            raise ValueError('SIGMA0 must be a scalar or a flat list, got shape '
                             '%s' % str(sigma0.shape))

        n_sigma = self.n_sigma(n_data)

        if sigma0.size > 1 and n_sigma == 1:
            raise ValueError('Noise type %s uses a single sigma, but %d values '
                             'of SIGMA0 were given; use MGAUSS for one sigma '
                             'per data point' % (self.name, sigma0.size))

        if sigma0.size == 1:
            return np.ones(n_sigma) * sigma0[0]
        elif sigma0.size == n_sigma:
            return sigma0.copy()
        else:
            raise ValueError('SIGMA0 can accept either one single value or as '
                             'many values as the number of arguments (%d), got '
                             '%d' % (n_data, sigma0.size))

    def __repr__(self):
        return '<%s: %s>' % (type(self).__name__, self.name)


class GaussNoise(NoiseModel):
    """
    Gaussian noise with a single uncertainty shared by all the data.
    """

    name = 'GAUSS'
    description = 'gaussian noise and a single noise parameter for all the data'
    path = 'GJE'

    def n_sigma(self, n_data):
        return 1

    def sigma_index(self, n_data):
        """
        For each data point, the index of the sigma that applies to it.
        """
        return np.zeros(n_data, dtype=int)

    def energy(self, arguments, reference, scale, sigma, sigma_mean):
        dev = deviations(arguments, reference, scale)
        ss = effective_variance(sigma, sigma_mean)[self.sigma_index(len(dev))]
        return float(np.sum(0.5 * dev * dev / ss + np.log(ss * SQRT2PI)))

    def force(self, arguments, reference, scale, inv_s2):
        """
        The negative gradient of the energy with respect to each argument.

        Parameters
        ----------
        arguments, reference : ndarray, float
            Predictions and experimental values.

        scale : float
            The scaling factor.

        inv_s2 : ndarray, float
            The inverse effective variance for each sigma. The force engine
            passes in the value summed over the ensemble.

        Returns
        -------
        force : ndarray, float
            One force per argument, in units of kT.
        """
        dev = deviations(arguments, reference, scale)
        return -scale * dev * np.asarray(inv_s2)[self.sigma_index(len(dev))]


class MultiGaussNoise(GaussNoise):
    """
    Gaussian noise with an independent uncertainty for each data point.
    """

    name = 'MGAUSS'
    description = 'gaussian noise and a noise parameter for each data point'

    def n_sigma(self, n_data):
        return n_data

    def sigma_index(self, n_data):
        return np.arange(n_data)


class LongTailNoise(NoiseModel):
    """
    Long tailed noise with a single uncertainty shared by all the data.

    The likelihood of each point is the gaussian marginalized over a Jeffreys
    distribution of its uncertainty, bounded from below by `sigma`. This
    makes outliers much cheaper than in the gaussian case.
    """

    name = 'LTAIL'
    description = 'long tailed gaussian noise and a single noise parameter for all the data'
    path = 'SPE'

    def n_sigma(self, n_data):
        return 1

    def prior(self, sigma, sigma_mean, n_data):
        """
        Normalization and Jeffreys prior. Added once, not per data point.
        """
        s = np.sqrt(effective_variance(sigma, sigma_mean)[0])
        return float(np.log(s) - n_data * np.log(SQRT2_DIV_PI * s))

    def energy(self, arguments, reference, scale, sigma, sigma_mean):
        smean2 = sigma_mean * sigma_mean
        s = np.sqrt(effective_variance(sigma, sigma_mean)[0])
        dev = deviations(arguments, reference, scale)
        a2 = 0.5 * dev * dev + s * s
        ene = np.sum(np.log(2.0 * a2 / (1.0 - np.exp(-a2 / smean2))))
        return float(ene) + self.prior(sigma, sigma_mean, len(dev))

    def local_energy_force(self, arguments, reference, scale, sigma, sigma_mean):
        """
        The energy and forces of the data, without the prior term.

        The two are summed over the ensemble before the prior is added, so
        this returns them separately.

        Returns
        -------
        energy : float
            The data term of the energy, in kT.

        force : ndarray, float
            One force per argument, in kT.
        """

        smean2 = sigma_mean * sigma_mean
        s = np.sqrt(effective_variance(sigma, sigma_mean)[0])
        dev = deviations(arguments, reference, scale)

        a2 = 0.5 * dev * dev + s * s
        t = np.exp(-a2 / smean2)
        dt = 1.0 / t
        it = 1.0 / (1.0 - t)
        dit = 1.0 / (1.0 - dt)

        energy = float(np.sum(np.log(2.0 * a2 * it)))
        force = -scale * dev * (dit / smean2 + 1.0 / a2)

        return energy, force


NOISE_MODELS = {
    'GAUSS' : GaussNoise,
    'MGAUSS': MultiGaussNoise,
    'LTAIL' : LongTailNoise,
}


def get_noise_model(name):
    """
    Instantiate the noise model called `name` (one of GAUSS, MGAUSS, LTAIL).
    """
    try:
        return NOISE_MODELS[str(name).upper()]()
    except KeyError:
        raise ValueError('Unknown noise type: %s. Options: %s' % (name, ', '.join(sorted(NOISE_MODELS))))
