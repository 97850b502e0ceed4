"""
Delegates the map and reduce phases to Hadoop streaming. Only the start phase runs here: its output is written to
a local file, copied to HDFS, the streaming jar runs `<tool> --map` and `<tool> --reduce` on the cluster, and the
result (all of it is expected in `part-00000`) is copied back and written to the sink.

The Hadoop installation is taken from `Config.install`, else from the HADOOP_INSTALL environment variable; having
neither is a ConfigurationError. Removing/creating the HDFS directories is best effort, they may (not) exist yet.
"""

import logging
import os
import shlex
import tempfile
from dataclasses import dataclass
from typing import Optional, Sequence, TextIO

from parallelcalc.calc import Calculation, start_worker
from parallelcalc.ds import Emitted, MaybeResult
from parallelcalc.errors import ConfigurationError
from parallelcalc.proc import call_tool, check

logger = logging.getLogger(__name__)


@dataclass
class Config:
    install: Optional[str] = None
    streaming_jar: str = "contrib/streaming/hadoop-streaming-1.1.2.jar"  # relative to install
    tool: Sequence[str] = ("parallelcalc",)
    files: Sequence[str] = ()  # shipped to the cluster along with the job
    verbose: bool = False

    def hadoop_install(self) -> str:
        install = self.install or os.environ.get("HADOOP_INSTALL")
        if not install:
            raise ConfigurationError("undefined environment variable HADOOP_INSTALL")
        return install


def streaming_args(calc: Calculation, c: Config, install: str) -> list[str]:
    mapper = shlex.join([*c.tool, "--map", "--calc", calc.name])
    reducer = shlex.join([*c.tool, "--reduce", "--calc", calc.name])
    args = ["hadoop", "jar", os.path.join(install, c.streaming_jar)]
    args += ["-input", f"{calc.name}Input", "-output", f"{calc.name}Output"]
    args += ["-mapper", mapper, "-reducer", reducer]
    for f in c.files:
        args += ["-file", f]
    return args


def hadoop_mapreduce(calc: Calculation, nrows: int, sink: TextIO, c: Config) -> MaybeResult[Emitted]:
    install = c.hadoop_install()
    hadoop = os.path.join(install, "bin", "hadoop")
    prefix = calc.name

    def _dfs(*args: str, required: bool = True) -> None:
        result = call_tool(["hadoop", "dfs", *args], hadoop, c.verbose)
        if required:
            check(result, f"hadoop dfs {args[0]}")
        elif not result.ok:
            logger.debug(f"ignoring failed hadoop dfs {args[0]}: {result.reason()}")

    try:
        with tempfile.TemporaryDirectory(prefix="parallelcalc") as tmp:
            local_input = os.path.join(tmp, "input.txt")
            local_output = os.path.join(tmp, "part-00000")
            with open(local_input, "w", encoding="utf-8") as f:
                start_worker(calc, nrows, f)

            _dfs("-mkdir", f"{prefix}Input", required=False)
            _dfs("-rm", f"{prefix}Input/input.txt", required=False)
            _dfs("-put", local_input, f"{prefix}Input/input.txt")
            _dfs("-rmr", f"{prefix}Output", required=False)
            check(call_tool(streaming_args(calc, c, install), hadoop, c.verbose), "hadoop jar")
            _dfs("-get", f"{prefix}Output/part-00000", local_output)

            with open(local_output, encoding="utf-8") as f:
                text = f.read()
    except Exception as e:
        return MaybeResult.failed(f"{calc.name} hadoop", e)
    try:
        sink.write(text)
    except Exception as e:
        return MaybeResult.failed(f"{calc.name} output", e)
    return MaybeResult(Emitted(text.count("\n")), [])


@dataclass
class HadoopStreaming:
    config: Config

    def run(self, calc: Calculation, nrows: int, sink: TextIO) -> MaybeResult[Emitted]:
        return hadoop_mapreduce(calc, nrows, sink, self.config)
