import logging
from itertools import product
from time import perf_counter
from typing import Callable, Iterable, List, NamedTuple, Optional

from genutility.callbacks import Progress as NullProgress
from genutility.filesystem import PathType
from rich.table import Table

from .digest import BlockParams, InvalidArgument, Strategy, compare

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_SIZES = (1024, 10 * 1024, 100 * 1024)
DEFAULT_REPEATS = 100


def size_label(size: int) -> str:
    for unit in ("", "K", "M"):
        if size % 1024 or size < 1024:
            return f"{size}{unit}"
        size //= 1024
    return f"{size}G"


class BenchResult(NamedTuple):
    strategy: Strategy
    block_size: int
    repeats: int
    seconds: float
    equal: bool

    @property
    def label(self) -> str:
        return f"{self.strategy.value} {size_label(self.block_size)}"

    @property
    def per_call(self) -> float:
        return self.seconds / self.repeats


def benchmark(
    path_a: PathType,
    path_b: PathType,
    strategies: Iterable[Strategy] = tuple(Strategy),
    block_sizes: Iterable[int] = DEFAULT_BLOCK_SIZES,
    repeats: int = DEFAULT_REPEATS,
    rehearsal: bool = True,
    progress: Optional[NullProgress] = None,
    timer: Callable[[], float] = perf_counter,
) -> List[BenchResult]:
    """Times `repeats` calls of `compare` for every combination of strategy and block size.

    If `rehearsal` is True, each combination is run once without timing before the measurement
    so that all runs see the same (cached) file state.
    """

    if repeats <= 0:
        raise InvalidArgument(f"repeats must be positive, not {repeats}")

    progress = progress or NullProgress()
    runs = [(strategy, BlockParams(block_size)) for strategy, block_size in product(strategies, block_sizes)]

    for _strategy, params in runs:
        params.validate()

    if rehearsal:
        logger.debug("Rehearsing %d runs", len(runs))
        for strategy, params in runs:
            compare(path_a, path_b, strategy, params)

    out: List[BenchResult] = []
    for strategy, params in progress.track(runs, total=len(runs)):
        start = timer()
        for _ in range(repeats):
            equal = compare(path_a, path_b, strategy, params)
        seconds = timer() - start

        result = BenchResult(strategy, params.block_size, repeats, seconds, equal)
        logger.debug("%s: %.6f seconds", result.label, seconds)
        out.append(result)

    return out


def results_table(results: Iterable[BenchResult], title: Optional[str] = None) -> Table:
    table = Table(title=title)

    table.add_column("Run", no_wrap=True)
    table.add_column("Repeats", justify="right")
    table.add_column("Total (s)", justify="right")
    table.add_column("Per call (ms)", justify="right")
    table.add_column("Equal")

    for result in results:
        table.add_row(
            result.label,
            str(result.repeats),
            f"{result.seconds:.4f}",
            f"{result.per_call * 1000:.4f}",
            str(result.equal),
        )

    return table
