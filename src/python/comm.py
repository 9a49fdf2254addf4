
"""
comm.py

Collective communication between the processes running an ensemble.

Two nested scopes are involved. The ranks that together run a single replica
(domain decomposition) form the `intra` group; rank 0 of each intra group is
that replica's leader. The leaders form the `inter` group, which spans the
ensemble with one rank per replica.

The transport is pluggable: `SerialComm` for a single process, `MPIComm` for
any mpi4py communicator.
"""

import abc

import numpy as np

import logging
logging.basicConfig()
logger = logging.getLogger(__name__)


class Communicator(object, metaclass=abc.ABCMeta):
    """
    Abstract base class for a group of cooperating ranks.
    """

    @property
    @abc.abstractmethod
    def rank(self):
        return

    @property
    @abc.abstractmethod
    def size(self):
        return

    @abc.abstractmethod
    def reduce_sum(self, value):
        """
        Sum `value` (a scalar or an ndarray) over all ranks in the group. Every
        rank receives the result.
        """
        return

    @abc.abstractmethod
    def broadcast_from_leader(self, value):
        """
        Return the value held by rank 0 on every rank in the group.
        """
        return


class SerialComm(Communicator):
    """
    A group consisting only of the calling process.
    """

    @property
    def rank(self):
        return 0

    @property
    def size(self):
        return 1

    def reduce_sum(self, value):
        if isinstance(value, np.ndarray):
            return value.copy()
        return value

    def broadcast_from_leader(self, value):
        return value


class MPIComm(Communicator):
    """
    Wrap an mpi4py communicator.

    Parameters
    ----------
    mpicomm : mpi4py.MPI.Comm
        The communicator. Arrays go through the buffer interface
        (`Allreduce`/`Bcast`), everything else through the pickle-based
        lowercase calls.
    """

    def __init__(self, mpicomm):
        self.mpicomm = mpicomm

    @property
    def rank(self):
        return self.mpicomm.Get_rank()

    @property
    def size(self):
        return self.mpicomm.Get_size()

    def reduce_sum(self, value):
        if isinstance(value, np.ndarray):
            send = np.ascontiguousarray(value)
            recv = np.empty_like(send)
            self.mpicomm.Allreduce(send, recv)  # op defaults to MPI.SUM
            return recv
        return self.mpicomm.allreduce(value)

    def broadcast_from_leader(self, value):
        if isinstance(value, np.ndarray):
            buf = np.ascontiguousarray(value).copy()
            self.mpicomm.Bcast(buf, root=0)
            return buf
        return self.mpicomm.bcast(value, root=0)


class ReplicaTopology(object):
    """
    The position of this process in the ensemble, plus the collectives
    needed to talk to the rest of it.

    The number of replicas and the index of this one are resolved once, at
    construction: the leader reads them off the inter-replica group, the other
    ranks contribute zero, and a sum over the intra-replica group hands the
    leader's values to everybody.

    Parameters
    ----------
    intra : Communicator
        All the ranks running this replica. Defaults to `SerialComm()`.

    inter : Communicator
        One rank per replica. Only used on the leader. Defaults to
        `SerialComm()`.
    """

    def __init__(self, intra=None, inter=None):

        if intra is None:
            intra = SerialComm()
        if inter is None:
            inter = SerialComm()

        self.intra = intra
        self.inter = inter

        if self.is_leader:
            local = np.array([inter.size, inter.rank], dtype=np.int64)
        else:
            local = np.zeros(2, dtype=np.int64)

        resolved = intra.reduce_sum(local)
        self.replica_count = int(resolved[0])
        self.replica_index = int(resolved[1])

        if self.replica_count < 1:
            raise ValueError('Could not resolve the number of replicas, got %d' % self.replica_count)

        logger.debug('rank %d of replica %d/%d' % (intra.rank, self.replica_index, self.replica_count))

        return

    @property
    def is_leader(self):
        return self.intra.rank == 0

    def sum_over_replicas(self, value):
        """
        Sum `value` across the ensemble. Only the leader takes part; on other
        ranks `value` is returned untouched.
        """
        if self.is_leader:
            return self.inter.reduce_sum(value)
        return value

    def sum_within_replica(self, value):
        """
        Sum `value` over the ranks of this replica.
        """
        return self.intra.reduce_sum(value)

    def share_from_leader(self, value):
        """
        Make every rank of the ensemble hold the value of the leader of
        replica 0: first across the leaders, then within each replica.
        """
        if self.is_leader:
            value = self.inter.broadcast_from_leader(value)
        return self.intra.broadcast_from_leader(value)


def split_world(world, n_replicas):
    """
    Carve an mpi4py world communicator into a replica topology.

    Ranks are assigned to replicas in contiguous blocks, so with 8 ranks and
    2 replicas, ranks 0-3 run replica 0 and ranks 4-7 run replica 1.

    Parameters
    ----------
    world : mpi4py.MPI.Comm
        The communicator spanning the whole ensemble (e.g. MPI.COMM_WORLD).

    n_replicas : int
        The number of replicas. Must divide the size of `world`.

    Returns
    -------
    topology : ReplicaTopology
    """

    size = world.Get_size()
    rank = world.Get_rank()

    if n_replicas < 1 or size % n_replicas != 0:
        raise ValueError('Cannot split %d ranks into %d replicas' % (size, n_replicas))

    ranks_per_replica = size // n_replicas
    replica = rank // ranks_per_replica

    intra = world.Split(replica, rank)
    # non-leaders end up together in a group that is never used
    inter = world.Split(0 if intra.Get_rank() == 0 else 1, rank)

    return ReplicaTopology(MPIComm(intra), MPIComm(inter))
