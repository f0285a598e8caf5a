import hashlib
import logging
from enum import Enum
from pathlib import Path
from typing import Any, BinaryIO, Callable, Dict, Iterator, NamedTuple, Optional, Tuple

from genutility.filesystem import PathType
from genutility.hash import HashobjCRC

logger = logging.getLogger(__name__)

DEFAULT_BLOCK_SIZE = 100 * 1024


class InvalidArgument(ValueError):
    def __init__(self, msg: str, path: Optional[PathType] = None) -> None:
        ValueError.__init__(self, msg)
        self.path = path


class IOFailure(OSError):
    pass


class UnequalLength(Exception):
    pass


class Strategy(Enum):
    BYTE = "byte"
    CRC32 = "crc32"
    MD5 = "md5"

    @classmethod
    def _missing_(cls, value: Any):
        if not isinstance(value, str):
            return None
        value = value.lower()
        for member in cls:
            if member.value == value:
                return member
        return None


class BlockParams(NamedTuple):
    block_size: int = DEFAULT_BLOCK_SIZE

    def validate(self) -> None:
        if isinstance(self.block_size, bool) or not isinstance(self.block_size, int) or self.block_size <= 0:
            raise InvalidArgument(f"block_size must be a positive integer, not {self.block_size!r}")


def _read_block(fp: BinaryIO, size: int) -> bytes:
    data = fp.read(size)
    if not data or len(data) == size:
        return data

    # raw streams are allowed to return less than requested before the end
    parts = [data]
    remaining = size - len(data)
    while remaining > 0:
        data = fp.read(remaining)
        if not data:
            break
        parts.append(data)
        remaining -= len(data)

    return b"".join(parts)


def step_blocks(file_a: BinaryIO, file_b: BinaryIO, block_size: int) -> Iterator[Tuple[bytes, bytes]]:
    """Reads `file_a` and `file_b` in lock-step and yields the blocks as pairs.
    Iteration stops when `file_a` is exhausted. Both streams are required to have the same length,
    `UnequalLength` is raised as soon as the two reads of one step return a different number of bytes.
    This includes `file_b` ending before `file_a` and `file_b` still returning data after `file_a` ended.
    Only one pair of blocks is held at any time.
    """

    if block_size <= 0:
        raise InvalidArgument(f"block_size must be positive, not {block_size}")

    offset = 0
    while True:
        if file_a.closed or file_b.closed:
            raise IOFailure(f"Stream closed at offset {offset}")

        a = _read_block(file_a, block_size)
        b = _read_block(file_b, block_size)

        if len(a) != len(b):
            raise UnequalLength(f"Streams differ in length after offset {offset} ({len(a)} vs {len(b)} bytes)")

        if not a:
            break

        yield a, b
        offset += len(a)


def crc32_digest(data: bytes) -> bytes:
    m = HashobjCRC()
    m.update(data)
    return m.digest()


def md5_digest(data: bytes) -> bytes:
    return hashlib.md5(data).digest()  # nosec: B303


def _equal_by(digest: Callable[[bytes], bytes], file_a: BinaryIO, file_b: BinaryIO, block_size: int) -> bool:
    for a, b in step_blocks(file_a, file_b, block_size):
        if digest(a) != digest(b):
            return False
    return True


def bytes_equal(file_a: BinaryIO, file_b: BinaryIO, params: BlockParams) -> bool:
    for a, b in step_blocks(file_a, file_b, params.block_size):
        if a != b:
            return False
    return True


def crc32_equal(file_a: BinaryIO, file_b: BinaryIO, params: BlockParams) -> bool:
    """Compares the CRC32 checksums of each pair of blocks. The checksum is not carried over between blocks."""

    return _equal_by(crc32_digest, file_a, file_b, params.block_size)


def md5_equal(file_a: BinaryIO, file_b: BinaryIO, params: BlockParams) -> bool:
    """Compares the MD5 digests of each pair of blocks. The digest is not carried over between blocks."""

    return _equal_by(md5_digest, file_a, file_b, params.block_size)


StrategyFunc = Callable[[BinaryIO, BinaryIO, BlockParams], bool]

STRATEGIES: Dict[Strategy, StrategyFunc] = {
    Strategy.BYTE: bytes_equal,
    Strategy.CRC32: crc32_equal,
    Strategy.MD5: md5_equal,
}

assert set(STRATEGIES) == set(Strategy), "Every strategy needs a comparison function"


def get_strategy_func(strategy: Strategy) -> StrategyFunc:
    try:
        return STRATEGIES[strategy]
    except (KeyError, TypeError):
        raise InvalidArgument(f"Invalid strategy: {strategy!r}") from None


def compare_streams(
    file_a: BinaryIO, file_b: BinaryIO, strategy: Strategy = Strategy.BYTE, params: BlockParams = BlockParams()
) -> bool:
    """Compares two open binary streams from their current position to the end.
    Streams of different length are reported as not equal.
    """

    func = get_strategy_func(strategy)
    params.validate()

    try:
        return func(file_a, file_b, params)
    except UnequalLength as e:
        logger.debug("Not equal: %s", e)
        return False
    except IOFailure:
        raise
    except OSError as e:
        raise IOFailure(f"Failed to read block: {e}") from e


def compare(
    path_a: PathType, path_b: PathType, strategy: Strategy = Strategy.BYTE, params: BlockParams = BlockParams()
) -> bool:
    """Checks if the files at `path_a` and `path_b` have the same content using `strategy`.

    Files of different size are not equal and are not opened at all. Otherwise both files are read
    block by block until the first mismatch. Both files are closed before returning or raising.

    Raises `InvalidArgument` if a path doesn't refer to an existing file or the parameters are invalid,
    and `IOFailure` if the files cannot be read.
    """

    get_strategy_func(strategy)
    params.validate()

    path_a = Path(path_a)
    path_b = Path(path_b)

    for path in (path_a, path_b):
        if not path.is_file():
            raise InvalidArgument(f"Not an existing file: `{path}`", path)

    try:
        size_a = path_a.stat().st_size
        size_b = path_b.stat().st_size
    except OSError as e:
        raise IOFailure(f"Failed to read size: {e}") from e

    if size_a != size_b:
        logger.debug("Size differs for `%s` (%d) and `%s` (%d)", path_a, size_a, path_b, size_b)
        return False

    logger.debug(
        "Comparing `%s` and `%s` using %s with %d byte blocks", path_a, path_b, strategy.value, params.block_size
    )

    try:
        with path_a.open("rb") as file_a, path_b.open("rb") as file_b:
            return compare_streams(file_a, file_b, strategy, params)
    except IOFailure:
        raise
    except OSError as e:
        raise IOFailure(f"Failed to open file: {e}") from e
