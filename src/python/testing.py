
"""
testing.py

Helpers for the metainference test suite: reference files, scripted random
numbers and in-process stand-ins for the ensemble communicators.
"""

import os

import numpy as np

from metainference.comm import Communicator


def ref_file(filename):
    """
    Return the full path of a file in the package's reference directory.
    """
    path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'reference', filename)
    if not os.path.exists(path):
        raise IOError('No reference file: %s' % path)
    return path


class ScriptedRandom(object):
    """
    A random stream that replays a fixed list of uniform draws, in order.
    Running past the end of the list is an error.
    """

    def __init__(self, draws):
        self.draws = list(draws)
        self.n_drawn = 0

    def random(self):
        if self.n_drawn >= len(self.draws):
            raise RuntimeError('ScriptedRandom exhausted after %d draws' % self.n_drawn)
        r = self.draws[self.n_drawn]
        self.n_drawn += 1
        return r

    @property
    def remaining(self):
        return len(self.draws) - self.n_drawn


class EnsembleComm(Communicator):
    """
    Pretend to be rank `rank` of a group of `size` processes.

    By default every other member of the group holds the same data as the
    caller, so a sum is `size` times the local value and a broadcast returns
    the local value. Either can be overridden:

    Optional Parameters
    -------------------
    peers : callable
        `peers(value)` returns the summed contribution of the other ranks.

    leader_value : object
        What rank 0 holds, returned by `broadcast_from_leader` on other ranks.
    """

    def __init__(self, size=1, rank=0, peers=None, leader_value=None):
        self._size = size
        self._rank = rank
        self.peers = peers
        self.leader_value = leader_value
        self.n_reductions = 0
        self.n_broadcasts = 0

    @property
    def rank(self):
        return self._rank

    @property
    def size(self):
        return self._size

    def reduce_sum(self, value):
        self.n_reductions += 1
        if self.peers is not None:
            return value + self.peers(value)
        return value * self._size

    def broadcast_from_leader(self, value):
        self.n_broadcasts += 1
        if self._rank != 0 and self.leader_value is not None:
            return self.leader_value
        return value


class FakeMPI(object):
    """
    The subset of the mpi4py communicator interface used by `MPIComm` and
    `split_world`, for a world of one process.
    """

    def __init__(self):
        self.calls = []

    def Get_rank(self):
        return 0

    def Get_size(self):
        return 1

    def Allreduce(self, send, recv):
        self.calls.append('Allreduce')
        recv[...] = send

    def allreduce(self, value):
        self.calls.append('allreduce')
        return value

    def Bcast(self, buf, root=0):
        self.calls.append('Bcast')

    def bcast(self, value, root=0):
        self.calls.append('bcast')
        return value

    def Split(self, color, key):
        self.calls.append('Split')
        return FakeMPI()
