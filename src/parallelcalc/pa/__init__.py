"""
This module provides the interchangeable ways of running a calculation's start -> map -> reduce phases. All of them
write the same records, in ascending key order, to the output sink:
 - SingleThreadDirect -- everything in memory on the calling thread, the baseline.
 - SingleThreadWorkers -- each phase's output serialized to text and parsed back by the next phase. Verifies the
   calculation survives the wire format.
 - MultiThread -- partitions the map and the reduce phase over a pool of threads. Each task owns its input slice
   and its accumulator, the merging happens after a barrier, so no locks are needed.
 - ForkWorkers -- runs each phase as a separate process of the command-line tool, connected through pipes.
 - HadoopStreaming -- runs the map and reduce phases as a Hadoop streaming job.

To use, instantiate the respective class, and feed it to the `mapreduce` function along with the calculation, the
number of start rows and the sink. Failures don't raise: they are returned in the MaybeResult along with how many
records were written before things went wrong. The only exception is a ConfigurationError, for a missing setting
that no retry would fix.
"""

from parallelcalc.pa.core import mapreduce  # noqa: F401
from parallelcalc.pa.fork_workers import Config as ForkConfig  # noqa: F401
from parallelcalc.pa.fork_workers import ForkWorkers  # noqa: F401
from parallelcalc.pa.hadoop_streaming import Config as HadoopConfig  # noqa: F401
from parallelcalc.pa.hadoop_streaming import HadoopStreaming  # noqa: F401
from parallelcalc.pa.multi_thread import Config as ThreadsConfig  # noqa: F401
from parallelcalc.pa.multi_thread import MultiThread  # noqa: F401
from parallelcalc.pa.sequential import Config as DirectConfig  # noqa: F401
from parallelcalc.pa.sequential import SingleThreadDirect, SingleThreadWorkers  # noqa: F401
