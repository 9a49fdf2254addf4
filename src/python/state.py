
"""
state.py

The nuisance parameters sampled alongside the simulation.
"""

import numpy as np


def reflect(value, lower, upper):
    """
    Mirror a proposed value back into [lower, upper].

    A value past `upper` is reflected about `upper`, one below `lower` about
    `lower`. The reflection happens once: a proposal that overshoots by more
    than the width of the interval ends up outside of it, so MC steps must
    be smaller than the interval.

    Parameters
    ----------
    value : float or ndarray, float
        The proposed value(s).

    lower, upper : float
        The bounds.

    Returns
    -------
    reflected : float or ndarray, float
    """

    if isinstance(value, np.ndarray):
        value = np.where(value > upper, 2.0 * upper - value, value)
        value = np.where(value < lower, 2.0 * lower - value, value)
        return value

    if value > upper:
        value = 2.0 * upper - value
    if value < lower:
        value = 2.0 * lower - value
    return value


class NuisanceState(object):
    """
    The scaling factor and the data uncertainties, with their bounds and the
    maximum size of an MC move.

    When scale sampling is off, `scale` is 1.0 and never moves.
    """

    def __init__(self, sigma, sigma_min, sigma_max, dsigma, sigma_mean,
                 scale=1.0, scale_min=None, scale_max=None, dscale=0.0,
                 do_scale=False):

        self.sigma = np.array(sigma, dtype=float).reshape(-1)
        self.sigma_min = float(sigma_min)
        self.sigma_max = float(sigma_max)
        self.dsigma = float(dsigma)
        self.sigma_mean = float(sigma_mean)

        self.do_scale = bool(do_scale)
        if self.do_scale:
            self.scale = float(scale)
            self.scale_min = float(scale_min)
            self.scale_max = float(scale_max)
            self.dscale = float(dscale)
        else:
            self.scale = 1.0
            self.scale_min = 1.0
            self.scale_max = 1.0
            self.dscale = 0.0

        return

    @property
    def n_sigma(self):
        return self.sigma.size

    def propose_scale(self, r):
        """
        A reflected random-walk move of the scale, given a uniform draw `r`
        in [0, 1).
        """
        new_scale = self.scale + (-self.dscale + r * 2.0 * self.dscale)
        return reflect(new_scale, self.scale_min, self.scale_max)

    def propose_sigma(self, r):
        """
        A reflected random-walk move of every sigma, given one uniform draw
        per component.
        """
        r = np.asarray(r, dtype=float)
        if r.shape != self.sigma.shape:
            raise ValueError('Need %d random numbers to move sigma, got %d' % (self.sigma.size, r.size))
        new_sigma = self.sigma + (-self.dsigma + r * 2.0 * self.dsigma)
        return reflect(new_sigma, self.sigma_min, self.sigma_max)

    def update(self, scale, sigma):
        self.scale = float(scale)
        self.sigma = np.array(sigma, dtype=float)

    def in_bounds(self):
        ok = np.all(self.sigma >= self.sigma_min) and np.all(self.sigma <= self.sigma_max)
        if self.do_scale:
            ok = ok and (self.scale_min <= self.scale <= self.scale_max)
        return bool(ok)

    def __repr__(self):
        return '<NuisanceState: scale=%f, sigma=%s, sigma_mean=%f>' % (self.scale, self.sigma, self.sigma_mean)
