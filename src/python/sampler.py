
"""
sampler.py

Metropolis Monte Carlo over the nuisance parameters (scale and sigma) of a
Metainference noise model.
"""

import time

import numpy as np

import logging
logging.basicConfig()
logger = logging.getLogger(__name__)


def make_rng(topology, seed=None):
    """
    Build the random stream used by one replica.

    The leader combines the entropy `seed` (wall-clock time if None) with the
    replica index; the other ranks contribute zero and the seed is summed
    across the replica. All ranks of a replica thus draw identical numbers,
    while different replicas draw independent ones.

    Parameters
    ----------
    topology : comm.ReplicaTopology
        Where this process sits in the ensemble.

    seed : int
        Entropy for the stream.

    Returns
    -------
    rng : np.random.Generator
    """

    if seed is None:
        seed = int(time.time())

    if topology.is_leader:
        iseed = np.array([int(seed) ^ topology.replica_index], dtype=np.int64)
    else:
        iseed = np.zeros(1, dtype=np.int64)
    iseed = int(topology.sum_within_replica(iseed)[0])

    logger.debug('random seed for replica %d: %d' % (topology.replica_index, iseed))

    return np.random.default_rng(abs(iseed))


class MonteCarloSampler(object):
    """
    Samples the scale and sigma(s) of a `NuisanceState` by a reflecting
    random walk with Metropolis acceptance.

    The sampler owns the state: nothing else should modify it.

    Parameters
    ----------
    noise : noise.NoiseModel
        The functional form of the noise, used to evaluate the energy.

    state : state.NuisanceState
        The parameters to sample. Modified in place.

    topology : comm.ReplicaTopology
        Used to keep the scale identical across the whole ensemble.

    rng : object
        Anything with a `random()` method returning a uniform float in [0, 1),
        e.g. a `np.random.Generator`.

    n_steps : int
        The number of MC moves made at each call to `run`.
    """

    def __init__(self, noise, state, topology, rng, n_steps=1):

        if n_steps < 0:
            raise ValueError('Number of MC steps must be >= 0, got %d' % n_steps)

        self.noise = noise
        self.state = state
        self.topology = topology
        self.rng = rng
        self.n_steps = int(n_steps)

        self.old_energy = None
        self.n_accepted = 0

        return

    @property
    def initialized(self):
        return self.old_energy is not None

    def energy(self, arguments, reference, scale, sigma):
        return self.noise.energy(arguments, reference, scale, sigma, self.state.sigma_mean)

    def metropolis(self, delta):
        """
        Decide whether to accept a move that changes the energy by `delta`
        (in kT). Downhill moves are always accepted without drawing a random
        number.
        """
        if delta <= 0.0:
            return True
        return self.rng.random() < np.exp(-delta)

    def run(self, arguments, reference):
        """
        Perform `n_steps` MC moves.

        The first call only seeds the energy of the current state before
        moving; this does not count as a trial.

        Parameters
        ----------
        arguments : ndarray, float
            The current predictions.

        reference : ndarray, float
            The experimental values.

        Returns
        -------
        n_accepted : int
            The number of moves accepted during this call.
        """

        state = self.state

        if self.old_energy is None:
            self.old_energy = self.energy(arguments, reference, state.scale, state.sigma)

        accepted = 0
        for i in range(self.n_steps):

            new_scale = state.scale
            if state.do_scale:
                new_scale = state.propose_scale(self.rng.random())
                # the scaling factor is common to all the replicas
                new_scale = self.topology.share_from_leader(new_scale)

            r = np.array([self.rng.random() for j in range(state.n_sigma)])
            new_sigma = state.propose_sigma(r)

            new_energy = self.energy(arguments, reference, new_scale, new_sigma)
            delta = new_energy - self.old_energy

            if self.metropolis(delta):
                self.old_energy = new_energy
                state.update(new_scale, new_sigma)
                accepted += 1
                logger.debug('MC move accepted, delta = %f' % delta)
            else:
                logger.debug('MC move rejected, delta = %f' % delta)

            if state.do_scale:
                state.scale = self.topology.share_from_leader(state.scale)

        self.n_accepted += accepted

        return accepted
