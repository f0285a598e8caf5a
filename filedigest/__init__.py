from .digest import (
    DEFAULT_BLOCK_SIZE,
    STRATEGIES,
    BlockParams,
    IOFailure,
    InvalidArgument,
    Strategy,
    UnequalLength,
    bytes_equal,
    compare,
    compare_streams,
    crc32_equal,
    md5_equal,
    step_blocks,
)

__version__ = "0.1.0"

__all__ = [
    "DEFAULT_BLOCK_SIZE",
    "STRATEGIES",
    "BlockParams",
    "IOFailure",
    "InvalidArgument",
    "Strategy",
    "UnequalLength",
    "bytes_equal",
    "compare",
    "compare_streams",
    "crc32_equal",
    "md5_equal",
    "step_blocks",
]
