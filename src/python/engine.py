
"""
engine.py

Bias energy and forces of the Metainference score, reduced over the ensemble.

There are two ways of combining the replicas, one for each family of noise
model:

-- GJE (gaussian noise, GAUSS/MGAUSS): the inverse variances are summed
   over the replicas, then every replica evaluates its own energy and
   forces with the summed values.
-- SPE (long tailed noise, LTAIL): energy and forces are evaluated locally,
   summed over the replicas, and the prior is added once at the end.

In both cases only the leader of each replica talks to the other replicas;
a final sum within the replica brings every rank to the same result.
"""

import abc

import numpy as np

from metainference.noise import effective_variance, deviations, SQRT2PI

import logging
logging.basicConfig()
logger = logging.getLogger(__name__)


class BiasForceEngine(object, metaclass=abc.ABCMeta):
    """
    Computes the bias energy and the force on each argument.

    Parameters
    ----------
    noise : noise.NoiseModel
        The noise model. Must belong to the engine's path.

    topology : comm.ReplicaTopology
        The ensemble to reduce over.
    """

    path = None

    def __init__(self, noise, topology):
        if noise.path != self.path:
            raise TypeError('%s cannot evaluate noise type %s' % (type(self).__name__, noise.name))
        self.noise = noise
        self.topology = topology

    @abc.abstractmethod
    def __call__(self, arguments, reference, state):
        """
        Evaluate energy and forces for the current nuisance parameters.

        Parameters
        ----------
        arguments : ndarray, float
            The predictions of this replica.

        reference : ndarray, float
            The experimental values.

        state : state.NuisanceState
            The current scale, sigma(s) and sigma_mean. Read only.

        Returns
        -------
        energy : float
            The bias energy, in kT.

        force : ndarray, float
            The force on each argument, in kT.
        """
        return


class GaussianEngine(BiasForceEngine):
    """
    Ensemble-averaged gaussian energy (GAUSS and MGAUSS noise).
    """

    path = 'GJE'

    def __call__(self, arguments, reference, state):

        ss = effective_variance(state.sigma, state.sigma_mean)

        inv_s2 = np.zeros(ss.size)
        if self.topology.is_leader:
            inv_s2 = 1.0 / ss
            inv_s2 = self.topology.sum_over_replicas(inv_s2)
        inv_s2 = self.topology.sum_within_replica(inv_s2)

        idx = self.noise.sigma_index(len(arguments))
        dev = deviations(arguments, reference, state.scale)

        energy = float(np.sum(0.5 * dev * dev * inv_s2[idx] + np.log(ss[idx] * SQRT2PI)))
        force = self.noise.force(arguments, reference, state.scale, inv_s2)

        return energy, force


class LongTailEngine(BiasForceEngine):
    """
    Long tailed energy (LTAIL noise), summed over the ensemble.
    """

    path = 'SPE'

    def __call__(self, arguments, reference, state):

        energy = 0.0
        force = np.zeros(len(arguments))

        if self.topology.is_leader:
            energy, force = self.noise.local_energy_force(arguments, reference, state.scale,
                                                          state.sigma, state.sigma_mean)
            # collect the contributions of the other replicas
            force = self.topology.sum_over_replicas(force)
            energy = self.topology.sum_over_replicas(energy)
            energy += self.noise.prior(state.sigma, state.sigma_mean, len(arguments))

        force = self.topology.sum_within_replica(force)
        energy = self.topology.sum_within_replica(energy)

        return float(energy), force


ENGINES = {
    'GJE': GaussianEngine,
    'SPE': LongTailEngine,
}


def make_engine(noise, topology):
    """
    Return the engine that evaluates `noise`.
    """
    return ENGINES[noise.path](noise, topology)
