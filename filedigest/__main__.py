import csv
import logging
import sys
from argparse import ArgumentDefaultsHelpFormatter, ArgumentParser, Namespace
from contextlib import nullcontext
from typing import List, Optional

from genutility.args import in_range, is_file
from genutility.file import StdoutFile
from genutility.rich import Progress
from rich.console import Console
from rich.highlighter import NullHighlighter
from rich.logging import RichHandler
from rich.progress import BarColumn, MofNCompleteColumn
from rich.progress import Progress as RichProgress
from rich.progress import TextColumn, TimeElapsedColumn

from .bench import DEFAULT_BLOCK_SIZES, DEFAULT_REPEATS, benchmark, results_table
from .digest import DEFAULT_BLOCK_SIZE, BlockParams, IOFailure, InvalidArgument, Strategy, compare

logger = logging.getLogger(__name__)

STRATEGY_NAMES = [s.value for s in Strategy]
MAX_BLOCK_SIZE = 2**31
MAX_REPEATS = 10**6


def setup_logging(verbose: bool) -> None:
    handler = RichHandler(log_time_format="%Y-%m-%d %H-%M-%S%Z", highlighter=NullHighlighter())
    FORMAT = "%(message)s"

    if verbose:
        logging.basicConfig(level=logging.DEBUG, format=FORMAT, handlers=[handler])
    else:
        logging.basicConfig(level=logging.INFO, format=FORMAT, handlers=[handler])


def compare_cmd(args: Namespace) -> int:
    strategy = Strategy(args.strategy)
    equal = compare(args.file_a, args.file_b, strategy, BlockParams(args.block_size))

    if equal:
        print("The files are equal")
        return 0
    else:
        print("The files are different")
        return 1


def bench_cmd(args: Namespace) -> int:
    strategies = [Strategy(name) for name in args.strategies]

    if args.progress:
        columns = [
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            MofNCompleteColumn(),
            TimeElapsedColumn(),
        ]
        progressctx = RichProgress(*columns)
    else:
        progressctx = nullcontext()

    with progressctx as p:
        progress = Progress(p) if p is not None else None
        results = benchmark(
            args.file_a,
            args.file_b,
            strategies,
            args.block_sizes,
            args.repeats,
            rehearsal=not args.no_rehearsal,
            progress=progress,
        )

    if args.out is None:
        console = Console()
        console.print(results_table(results, title=f"{args.repeats} repeats"))
    else:
        with StdoutFile(args.out, "xt", encoding="utf-8", newline="") as csvfile:
            csvwriter = csv.writer(csvfile)
            csvwriter.writerow(["strategy", "block_size", "repeats", "seconds", "equal"])
            for result in results:
                csvwriter.writerow(
                    [result.strategy.value, result.block_size, result.repeats, result.seconds, result.equal]
                )

    return 0


def get_parser() -> ArgumentParser:
    parser = ArgumentParser(
        prog="filedigest",
        description="Check if two files are byte-identical by comparing them block by block",
        formatter_class=ArgumentDefaultsHelpFormatter,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug output")
    subparsers = parser.add_subparsers(dest="action", required=True)

    subparser_a = subparsers.add_parser(
        "compare", formatter_class=ArgumentDefaultsHelpFormatter, help="Compare two files once"
    )
    subparser_a.set_defaults(func=compare_cmd)
    subparser_a.add_argument("file_a", type=is_file, help="First file")
    subparser_a.add_argument("file_b", type=is_file, help="Second file")
    subparser_a.add_argument(
        "--strategy", choices=STRATEGY_NAMES, default=Strategy.BYTE.value, help="Block comparison method"
    )
    subparser_a.add_argument(
        "--block-size",
        metavar="N",
        type=in_range(1, MAX_BLOCK_SIZE + 1),
        default=DEFAULT_BLOCK_SIZE,
        help="Read files in blocks of N bytes",
    )

    subparser_b = subparsers.add_parser(
        "bench",
        formatter_class=ArgumentDefaultsHelpFormatter,
        help="Time repeated comparisons for all combinations of strategies and block sizes",
    )
    subparser_b.set_defaults(func=bench_cmd)
    subparser_b.add_argument("file_a", type=is_file, help="First file")
    subparser_b.add_argument("file_b", type=is_file, help="Second file")
    subparser_b.add_argument(
        "--strategies", nargs="+", choices=STRATEGY_NAMES, default=STRATEGY_NAMES, help="Strategies to benchmark"
    )
    subparser_b.add_argument(
        "--block-sizes",
        metavar="N",
        nargs="+",
        type=in_range(1, MAX_BLOCK_SIZE + 1),
        default=list(DEFAULT_BLOCK_SIZES),
        help="Block sizes in bytes to benchmark",
    )
    subparser_b.add_argument(
        "--repeats",
        metavar="N",
        type=in_range(1, MAX_REPEATS + 1),
        default=DEFAULT_REPEATS,
        help="Number of comparisons per run",
    )
    subparser_b.add_argument(
        "--no-rehearsal", action="store_true", help="Don't run each combination once before timing it"
    )
    subparser_b.add_argument("-p", "--progress", action="store_true", help="Show progress bar")
    subparser_b.add_argument(
        "-o", "--out", metavar="PATH", help="Write results as CSV to this file. If not given a table is printed."
    )

    return parser


def main(args: Namespace) -> int:
    setup_logging(args.verbose)

    try:
        return args.func(args)
    except InvalidArgument as e:
        logger.error("Invalid argument: %s", e)
        return 2
    except IOFailure as e:
        logger.error("Failed to read files: %s", e)
        return 2


def cli(argv: Optional[List[str]] = None) -> None:
    sys.exit(main(get_parser().parse_args(argv)))


if __name__ == "__main__":
    cli()
