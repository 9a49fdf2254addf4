
"""
replay.py

Command line driver: run a Metainference bias over a table of argument values
and write out what it publishes at every step.

    metainf-replay setup.yaml args.dat -o metainference.out

Each row of the argument table is one step. The output has one row per step,
with the step followed by the published components.
"""

import sys
import argparse

import numpy as np

from metainference.action import Metainference
from metainference.comm import ReplicaTopology
from metainference.config import MetainferenceConfig

import logging
logging.basicConfig()
logger = logging.getLogger(__name__)


def parse_args(argv=None):

    parser = argparse.ArgumentParser(description='Replay argument values through a Metainference bias.')
    parser.add_argument('config', help='YAML file with the METAINFERENCE keywords')
    parser.add_argument('argfile', help='whitespace separated table of argument values, one row per step')
    parser.add_argument('-o', '--output', default=None, help='where to write the results (default: stdout)')
    parser.add_argument('--kbt', type=float, default=None, help='thermal energy, if TEMP is not in the setup')
    parser.add_argument('--step-column', action='store_true',
                        help='the first column of the argument table holds the step')
    parser.add_argument('--stride', type=int, default=1,
                        help='steps between rows, when the table has no step column')
    parser.add_argument('--forces', action='store_true', help='also write the force on each argument')
    parser.add_argument('-v', '--verbose', action='store_true', help='log at INFO level')

    return parser.parse_args(argv)


def load_arguments(filename, step_column=False, stride=1):
    """
    Read the table of argument values.

    Returns
    -------
    steps : ndarray, int
        The step of each row.

    arguments : ndarray, float
        The argument values, n_steps x n_args.
    """

    try:
        table = np.loadtxt(filename, ndmin=2)
    except (IOError, ValueError) as e:
        raise IOError('Cannot read argument values from %s: %s' % (filename, e))

    if step_column:
        if table.shape[1] < 2:
            raise ValueError('%s has no argument columns after the step column' % filename)
        steps = table[:,0].astype(int)
        arguments = table[:,1:]
    else:
        steps = np.arange(table.shape[0]) * stride
        arguments = table

    return steps, arguments


def replay(bias, steps, arguments, forces=False):
    """
    Call `bias.calculate` at each step.

    Returns
    -------
    fields : list of str
        The column names.

    table : ndarray, float
        One row per step.
    """

    fields = ['step'] + bias.components
    if forces:
        fields += ['force_%d' % i for i in range(bias.n_args)]

    rows = []
    for step, args in zip(steps, arguments):
        result = bias.calculate(int(step), args)
        row = [float(step)] + [v.value for v in result.values()]
        if forces:
            row += list(result.forces)
        rows.append(row)

    return fields, np.array(rows)


def main(argv=None):

    args = parse_args(argv)

    if args.verbose:
        logging.getLogger('metainference').setLevel(logging.INFO)

    steps, arguments = load_arguments(args.argfile, step_column=args.step_column, stride=args.stride)
    config = MetainferenceConfig.from_yaml(args.config, arguments.shape[1], kbt=args.kbt)
    bias = Metainference(config, arguments.shape[1], topology=ReplicaTopology())

    fields, table = replay(bias, steps, arguments, forces=args.forces)

    header = 'FIELDS ' + ' '.join(fields)
    if args.output is None:
        np.savetxt(sys.stdout, table, fmt='%.8f', header=header, comments='#! ')
    else:
        np.savetxt(args.output, table, fmt='%.8f', header=header, comments='#! ')
        logger.info('Wrote %d steps to: %s' % (table.shape[0], args.output))

    return 0


if __name__ == '__main__':
    sys.exit(main())
