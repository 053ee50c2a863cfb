"""
CPU and memory profiling hooks for a benchmark run.
"""

import cProfile
import tracemalloc
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional

from krb5perf.core.exceptions import ConfigurationError
from krb5perf.utils.logger import Logger


MEMORY_TOP_N = 25


def _writable(path: str) -> Path:
    target = Path(path)
    if target.parent and not target.parent.exists():
        raise ConfigurationError(f"Cannot write profile to {path}: directory does not exist")
    return target


@contextmanager
def profiled(
    cpuprofile: Optional[str] = None,
    memprofile: Optional[str] = None,
    logger: Optional[Logger] = None
) -> Iterator[None]:
    """
    Profile the enclosed block.

    Args:
        cpuprofile: Write cProfile stats (pstats format) to this file;
            only the calling (collecting) thread is sampled
        memprofile: Write the top allocation sites (tracemalloc) to this file
        logger: Logger instance

    Raises:
        ConfigurationError: If a profile destination is not writable
    """
    logger = logger or Logger()
    cpu_target = _writable(cpuprofile) if cpuprofile else None
    mem_target = _writable(memprofile) if memprofile else None

    profiler = cProfile.Profile() if cpu_target else None
    if mem_target:
        tracemalloc.start()
    if profiler:
        profiler.enable()

    try:
        yield
    finally:
        if profiler:
            profiler.disable()
            profiler.dump_stats(str(cpu_target))
            logger.info(f"CPU profile written to {cpu_target}")

        if mem_target:
            snapshot = tracemalloc.take_snapshot()
            tracemalloc.stop()
            with open(mem_target, 'w', encoding='utf-8') as f:
                for stat in snapshot.statistics('lineno')[:MEMORY_TOP_N]:
                    f.write(f"{stat}\n")
            logger.info(f"Memory profile written to {mem_target}")
