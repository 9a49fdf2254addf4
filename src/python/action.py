
"""
action.py

The Metainference bias: couples a simulation to a set of noisy experimental
observables.

At each step the host passes in the current values of the observables (the
arguments). Every MC stride, the nuisance parameters of the noise model are
moved by Monte Carlo; then the bias energy and the force on each argument are
evaluated with the current parameters and handed back to the host.
"""

import numpy as np

from metainference.comm import ReplicaTopology
from metainference.config import MetainferenceConfig
from metainference.engine import make_engine
from metainference.sampler import MonteCarloSampler, make_rng

import logging
logging.basicConfig()
logger = logging.getLogger(__name__)


class Value(object):
    """
    A named scalar published by an action.

    Values without derivatives can be used as the experimental input of
    another Metainference bias (PARARG).
    """

    def __init__(self, name, value, has_derivatives=False):
        self.name = name
        self.value = float(value)
        self.has_derivatives = has_derivatives

    def get(self):
        return self.value

    def __repr__(self):
        return '<Value %s=%f>' % (self.name, self.value)


class MetainferenceResult(object):
    """
    Everything computed during one call to `Metainference.calculate`.

    Attributes
    ----------
    step : int
        The simulation step.

    bias : float
        The bias energy, in the energy units of kbt.

    forces : ndarray, float
        The force on each argument, in the energy units of kbt.

    scale : float
        The scaling factor (1.0 if it is not sampled).

    sigma : ndarray, float
        The data uncertainties.

    accept : float
        The MC acceptance ratio since the first step.

    sampled : bool
        Whether MC moves were made during this step.
    """

    def __init__(self, step, bias, forces, scale, sigma, accept, sampled, components):
        self.step = step
        self.bias = bias
        self.forces = forces
        self.scale = scale
        self.sigma = sigma
        self.accept = accept
        self.sampled = sampled
        self._components = components

    def values(self):
        """
        The published quantities, as a list of `Value`, in the order of
        `Metainference.components`.
        """
        values = []
        for name in self._components:
            if name == 'bias':
                values.append(Value(name, self.bias))
            elif name == 'scale':
                values.append(Value(name, self.scale))
            elif name == 'accept':
                values.append(Value(name, self.accept))
            elif name == 'sigma':
                values.append(Value(name, self.sigma[0]))
            else:
                values.append(Value(name, self.sigma[int(name.split('_')[1])]))
        return values

    def as_dict(self):
        return dict((v.name, v.value) for v in self.values())


class Metainference(object):
    """
    The Metainference bias acting on `n_args` arguments.

    Parameters
    ----------
    keywords : dict OR MetainferenceConfig
        The setup, see `metainference.config`.

    n_args : int
        The number of arguments (experimental observables).

    Optional Parameters
    -------------------
    kbt : float
        The thermal energy of the simulation, used if TEMP is not set.

    topology : comm.ReplicaTopology
        The ensemble this process belongs to. Defaults to a single replica
        run by a single process.

    rng : object
        The random stream of the MC sampler (anything with `random()`). By
        default a generator is seeded from SEED (or the clock) and the
        replica index.
    """

    def __init__(self, keywords, n_args, kbt=None, topology=None, rng=None):

        if isinstance(keywords, MetainferenceConfig):
            config = keywords
        else:
            config = MetainferenceConfig(keywords, n_args, kbt=kbt)

        if config.n_args != n_args:
            raise ValueError('Setup is for %d arguments, got %d' % (config.n_args, n_args))

        if topology is None:
            topology = ReplicaTopology()

        self.config = config
        self.noise = config.noise
        self.reference = config.reference
        self.kbt = config.kbt
        self.n_args = config.n_args
        self.mc_steps = config.mc_steps
        self.mc_stride = config.mc_stride
        self.topology = topology

        self.state = config.make_state()
        # the uncertainty of the mean shrinks with the number of replicas
        self.state.sigma_mean /= np.sqrt(float(topology.replica_count))

        if rng is None:
            rng = make_rng(topology, config.seed)

        self.sampler = MonteCarloSampler(self.noise, self.state, topology, rng, n_steps=self.mc_steps)
        self.engine = make_engine(self.noise, topology)

        self._mc_first = None

        self._log_setup()

        return

    @property
    def components(self):
        """
        The names of the published quantities.
        """
        names = ['bias']
        if self.state.do_scale:
            names.append('scale')
        names.append('accept')
        if self.noise.name == 'MGAUSS':
            names.extend(['sigma_%d' % i for i in range(self.state.n_sigma)])
        else:
            names.append('sigma')
        return names

    @property
    def n_accepted(self):
        return self.sampler.n_accepted

    def acceptance(self, step):
        """
        The fraction of MC moves accepted between the first step seen and
        `step`.
        """
        if self._mc_first is None or self.mc_steps == 0:
            return 0.0
        trials = np.floor(float(step - self._mc_first) / float(self.mc_stride)) + 1.0
        return float(self.sampler.n_accepted) / float(self.mc_steps) / trials

    def calculate(self, step, arguments, exchange_step=False):
        """
        Update the nuisance parameters (if due) and evaluate the bias.

        Parameters
        ----------
        step : int
            The current simulation step.

        arguments : ndarray, float
            The current values of the observables, one per argument.

        exchange_step : bool
            True if the host exchanges replicas at this step, in which case no
            MC moves are made.

        Returns
        -------
        result : MetainferenceResult
        """

        arguments = np.asarray(arguments, dtype=float)
        if arguments.shape != (self.n_args,):
            raise ValueError('Expected %d arguments, got shape %s' % (self.n_args, str(arguments.shape)))

        sampled = False
        if step % self.mc_stride == 0 and not exchange_step:
            self.sampler.run(arguments, self.reference)
            sampled = True

        # when restarting, the first step is not necessarily 0
        if self._mc_first is None:
            self._mc_first = step
        accept = self.acceptance(step)

        energy, force = self.engine(arguments, self.reference, self.state)

        return MetainferenceResult(step, self.kbt * energy, self.kbt * force,
                                   self.state.scale, self.state.sigma.copy(),
                                   accept, sampled, self.components)

    def _log_setup(self):

        state = self.state

        logger.info('Metainference with %s' % self.noise.description)

        if state.do_scale:
            logger.info('  sampling a common scaling factor with:')
            logger.info('    initial scale parameter %f' % state.scale)
            logger.info('    minimum scale parameter %f' % state.scale_min)
            logger.info('    maximum scale parameter %f' % state.scale_max)
            logger.info('    maximum MC move of scale parameter %f' % state.dscale)

        if state.n_sigma == 1:
            logger.info('  initial data uncertainty %f' % state.sigma[0])
        else:
            logger.info('  initial data uncertainties %s' % ' '.join(['%f' % s for s in state.sigma]))
        logger.info('  minimum data uncertainty %f' % state.sigma_min)
        logger.info('  maximum data uncertainty %f' % state.sigma_max)
        logger.info('  maximum MC move of data uncertainty %f' % state.dsigma)
        logger.info('  uncertainty in the mean estimate %f' % state.sigma_mean)
        logger.info('  temperature of the system %f' % self.kbt)
        logger.info('  number of experimental data points %d' % self.n_args)
        logger.info('  number of replicas %d' % self.topology.replica_count)
        logger.info('  MC steps %d' % self.mc_steps)
        logger.info('  MC stride %d' % self.mc_stride)
