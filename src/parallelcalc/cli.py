"""
Command line of the tool. With `--start`, `--map` or `--reduce` it is a single phase reading/writing the wire format
on stdin/stdout -- the child process the ForkWorkers and HadoopStreaming strategies run. Otherwise it runs a whole
calculation with the chosen strategy and writes the result to stdout.

Exit status: 0 on success, 1 if the calculation failed, 2 for usage and configuration errors. Diagnostics go to
stderr; `-v` adds intermediate results and timing.
"""

import argparse
import logging
import os
import shlex
import sys
import time
from typing import Callable, Optional, Sequence

from parallelcalc.calc import CALCULATIONS, map_worker, reduce_worker, start_worker
from parallelcalc.errors import ConfigurationError
from parallelcalc.pa import (
    DirectConfig,
    ForkConfig,
    ForkWorkers,
    HadoopConfig,
    HadoopStreaming,
    MultiThread,
    SingleThreadDirect,
    SingleThreadWorkers,
    ThreadsConfig,
    mapreduce,
)
from parallelcalc.pa.core import Strategy
from parallelcalc.pa.fork_workers import default_tool

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_USAGE = 2


def _bounded(lo: int, hi: int) -> Callable[[str], int]:
    def _parse(s: str) -> int:
        try:
            v = int(s)
        except ValueError:
            raise argparse.ArgumentTypeError(f"{s!r} is not an integer")
        if not lo <= v <= hi:
            raise argparse.ArgumentTypeError(f"value must be >= {lo} and <= {hi}")
        return v

    return _parse


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="parallelcalc", description="runs a MapReduce calculation")
    parser.add_argument("-n", type=_bounded(1, 1000), default=10, help="number of rows to calculate")
    parser.add_argument("-d", type=_bounded(0, 60000), default=0, help="additional delay per map row in msec")
    parser.add_argument("-v", "--verbose", action="store_true", help="log intermediate results and timing")
    parser.add_argument("--calc", choices=sorted(CALCULATIONS), default="sumSquare", help="calculation to run")
    parser.add_argument(
        "--tool",
        default=os.environ.get("PARALLELCALC_TOOL"),
        help="command line of this tool, for --fork and --hadoop (default: $PARALLELCALC_TOOL or python -m)",
    )
    parser.add_argument(
        "--hadoop-file",
        action="append",
        default=[],
        help="file shipped with the Hadoop streaming job, e.g. the tool itself (repeatable)",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--start", action="store_true", help="write start rows to stdout")
    mode.add_argument("--map", action="store_true", help="read rows from stdin, write mapped rows to stdout")
    mode.add_argument("--reduce", action="store_true", help="read mapped rows from stdin, write reduced rows")
    mode.add_argument("--threads", type=_bounded(0, 64), help="number of threads, 0 for direct in-memory calls")
    mode.add_argument("--fork", action="store_true", help="run each phase as a child process of this tool")
    mode.add_argument("--hadoop", action="store_true", help="run map and reduce via Hadoop streaming")
    return parser


def select_strategy(args: argparse.Namespace) -> Strategy:
    tool = shlex.split(args.tool) if args.tool else None
    if args.threads is not None:
        if args.threads == 0:
            return SingleThreadDirect(DirectConfig(delay_ms=args.d, verbose=args.verbose))
        return MultiThread(ThreadsConfig(parallelism=args.threads, delay_ms=args.d, verbose=args.verbose))
    if args.fork:
        return ForkWorkers(ForkConfig(tool=tool or default_tool(), delay_ms=args.d, verbose=args.verbose))
    if args.hadoop:
        return HadoopStreaming(
            HadoopConfig(tool=tool or ("parallelcalc",), files=args.hadoop_file, verbose=args.verbose)
        )
    return SingleThreadWorkers(DirectConfig(delay_ms=args.d, verbose=args.verbose))


def run(args: argparse.Namespace) -> int:
    calc = CALCULATIONS[args.calc]()
    if args.start:
        start_worker(calc, args.n, sys.stdout)
        return 0
    if args.map:
        map_worker(calc, sys.stdin, sys.stdout, args.d)
        return 0
    if args.reduce:
        reduce_worker(calc, sys.stdin, sys.stdout)
        return 0

    strategy = select_strategy(args)
    start_time = time.monotonic()
    result = mapreduce(calc, args.n, sys.stdout, strategy)
    elapsed = time.monotonic() - start_time
    if not result.ok:
        for failure in result.failure:
            logger.error(str(failure))
        logger.error(f"FAILURE {elapsed:.3f} seconds")
        return EXIT_FAILURE
    logger.info(f"OK {elapsed:.3f} seconds")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING, format="%(message)s", stream=sys.stderr
    )
    try:
        return run(args)
    except ConfigurationError as e:
        logger.error(f"configuration error: {e}")
        return EXIT_USAGE
    except Exception as e:
        logger.error(f"{type(e).__name__}: {e}")
        return EXIT_FAILURE
