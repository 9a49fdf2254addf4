"""
metainference

Metainference restraints: bias a simulation ensemble towards noisy
experimental data while sampling the parameters of the noise.
"""

__version__ = '0.1.0'

from metainference.action import Metainference, MetainferenceResult, Value
from metainference.config import MetainferenceConfig
from metainference.comm import ReplicaTopology, SerialComm, MPIComm, split_world
